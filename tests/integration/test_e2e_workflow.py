"""
End-to-end workflow through the HTTP API, including application lifespan.
"""

import asyncio

import numpy as np
import pytest
from httpx import AsyncClient, ASGITransport

from speech_orchestrator.engine.fake import FakeEngine
from speech_orchestrator.main import create_app

pytestmark = pytest.mark.integration

COMMANDS = 'root ::= command\ncommand ::= "start" | "stop" | "pause"\n'


@pytest.fixture
def startup_settings(test_settings, model_file):
    """Settings that load a model (and grammar) at startup."""
    return test_settings.model_copy(
        update={"MODEL_PATH": model_file, "GRAMMAR": COMMANDS, "GRAMMAR_RULE": "command"}
    )


async def test_complete_e2e_workflow(startup_settings, second_model_file, audio):
    """Startup load -> transcribe -> reconfigure -> transcribe -> shutdown."""
    engine = FakeEngine()
    app = create_app(engine=engine, settings=startup_settings)
    speech = audio.payload(audio.tone(440.0, seconds=2.0))

    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            # Step 1: the startup model is active with its grammar bound
            health = (await client.get("/health")).json()
            assert health["status"] == "healthy"
            assert health["model_loaded"] is True

            status = (await client.get("/api/v1/model")).json()
            assert status["grammar_rule"] == "command"
            assert status["grammar_rules"] == 2

            # Step 2: grammar-constrained transcription
            response = await client.post("/api/v1/transcribe", json={"lang": "en", "wavdata": speech})
            assert response.status_code == 200
            first = response.json()
            assert len(first["segments"]) == 2
            assert engine.configs[-1].grammar_active is True

            # Step 3: swap to another model without grammar
            response = await client.post(
                "/init_model", json={"modelpath": second_model_file, "lang": "auto"}
            )
            assert response.status_code == 200
            assert (await client.get("/api/v1/model")).json()["model_path"] == second_model_file

            # Step 4: same audio, unconstrained, plain-text route
            response = await client.post("/run_detection", json={"lang": "auto", "wavdata": speech})
            assert response.status_code == 200
            assert response.text == first["text"]
            assert engine.configs[-1].grammar_active is False

        handles = list(engine.loaded)

    # Step 5: shutdown released every handle
    assert all(handle.released for handle in handles)


async def test_startup_failure_keeps_service_up(test_settings, tmp_path, model_file, audio):
    """A broken startup model leaves the service running and reconfigurable."""
    settings = test_settings.model_copy(update={"MODEL_PATH": str(tmp_path / "missing.bin")})
    app = create_app(engine=FakeEngine(), settings=settings)

    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            assert (await client.get("/health")).json()["model_loaded"] is False

            response = await client.post(
                "/run_detection",
                json={"lang": "en", "wavdata": audio.payload(audio.tone(440.0))},
            )
            assert response.status_code == 503

            response = await client.post("/init_model", json={"modelpath": model_file, "lang": "en"})
            assert response.status_code == 200


async def test_concurrent_requests_and_reconfiguration(
    test_settings, model_file, second_model_file, audio
):
    """Many transcriptions racing model swaps all see a consistent model."""
    app = create_app(engine=FakeEngine(latency_ms=2), settings=test_settings)
    payloads = [audio.payload(audio.tone(300.0 + 50.0 * i, seconds=2.0)) for i in range(8)]

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.post("/init_model", json={"modelpath": model_file, "lang": "en"})

        expected = []
        for payload in payloads:
            response = await client.post("/run_detection", json={"lang": "en", "wavdata": payload})
            expected.append(response.text)

        requests = [
            client.post("/run_detection", json={"lang": "en", "wavdata": payload})
            for payload in payloads
        ]
        swaps = [
            client.post("/init_model", json={"modelpath": path, "lang": "en"})
            for path in (second_model_file, model_file)
        ]
        responses = await asyncio.gather(*requests, *swaps)

    assert all(r.status_code == 200 for r in responses)
    assert [r.text for r in responses[: len(payloads)]] == expected


async def test_stereo_diarization_roundtrip(async_client, model_file, audio):
    """Structured output carries per-segment speakers."""
    await async_client.post("/init_model", json={"modelpath": model_file, "lang": "en"})
    left = np.concatenate([audio.tone(250.0), audio.silence(), audio.tone(250.0)])
    right = np.concatenate([audio.silence(), audio.tone(600.0), audio.silence()])

    response = await async_client.post(
        "/api/v1/transcribe",
        json={
            "lang": "en",
            "wavdata": audio.payload(np.stack([left, right], axis=1)),
            "diarize": True,
        },
    )

    assert response.status_code == 200
    assert [s["speaker"] for s in response.json()["segments"]] == ["0", "1", "0"]
