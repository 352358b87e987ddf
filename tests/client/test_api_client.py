"""
Tests for the HTTP API client.

The client talks to an in-process app through httpx's ASGI transport.
"""

import httpx
import pytest
from httpx import ASGITransport
from unittest.mock import AsyncMock, MagicMock, patch

from speech_orchestrator.client import ASRClient, encode_wav


@pytest.fixture
async def client(app):
    api = ASRClient(base_url="http://test", transport=ASGITransport(app=app))
    yield api
    await api.close()


def test_encode_wav_from_bytes_and_path(tmp_path):
    path = tmp_path / "clip.wav"
    path.write_bytes(b"RIFF....WAVE")

    assert encode_wav(b"RIFF....WAVE") == "UklGRi4uLi5XQVZF"
    assert encode_wav(path) == "UklGRi4uLi5XQVZF"
    assert encode_wav(str(path)) == "UklGRi4uLi5XQVZF"


class TestASRClient:
    """Test ASRClient against the application."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        health = await client.health()

        assert health["status"] == "healthy"
        assert health["model_loaded"] is False

    @pytest.mark.asyncio
    async def test_init_model_and_status(self, client, model_file):
        status = await client.init_model(model_file, lang="en", grammar='root ::= "a"', grammar_rule="root")

        assert status["loaded"] is True
        assert status["grammar_rule"] == "root"
        assert (await client.model_status())["model_path"] == model_file

    @pytest.mark.asyncio
    async def test_transcribe_file(self, client, model_file, audio, tmp_path):
        path = tmp_path / "tone.wav"
        path.write_bytes(audio.wav(audio.tone(440.0, seconds=2.0)))
        await client.init_model(model_file)

        result = await client.transcribe(path, lang="en", request_id="file-1", beam_size=1)

        assert result["request_id"] == "file-1"
        assert len(result["segments"]) == 2

    @pytest.mark.asyncio
    async def test_errors_raise_http_status_error(self, client, audio):
        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await client.transcribe(audio.wav(audio.tone(440.0)), lang="en")

        assert exc_info.value.response.status_code == 503
        assert exc_info.value.response.json()["error"] == "model_not_loaded"

    @pytest.mark.asyncio
    async def test_cancel_unknown_request(self, client):
        assert await client.cancel("never-started") is False

    @pytest.mark.asyncio
    async def test_cancel_posts_to_request_route(self, client):
        with patch.object(client.client, "post", new_callable=AsyncMock) as mock_post:
            mock_response = MagicMock()
            mock_response.status_code = 200
            mock_response.json.return_value = {"request_id": "abc", "cancelled": True}
            mock_response.raise_for_status = MagicMock()
            mock_post.return_value = mock_response

            assert await client.cancel("abc") is True

            mock_post.assert_called_once_with("/api/v1/transcriptions/abc/cancel")
