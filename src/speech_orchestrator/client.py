"""
HTTP client for the speech orchestrator REST API.

Provides async methods for model configuration, transcription and
cancellation.
"""

import base64
import os
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

DEFAULT_BASE_URL = os.getenv("SPEECH_ORCHESTRATOR_URL", "http://127.0.0.1:8080")


def encode_wav(source: Path | str | bytes) -> str:
    """
    Base64-encode WAV data for the ``wavdata`` field.

    Args:
        source: Path to a WAV file or raw WAV bytes

    Returns:
        ASCII base64 string
    """
    data = source if isinstance(source, bytes) else Path(source).read_bytes()
    return base64.b64encode(data).decode("ascii")


class ASRClient:
    """Async HTTP client for the speech orchestrator API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        # Long default timeout: large files on CPU can take minutes
        self.client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def health(self) -> Dict[str, Any]:
        """
        GET /health

        Returns:
            Health status
        """
        response = await self.client.get("/health")
        response.raise_for_status()
        return response.json()

    async def init_model(
        self,
        model_path: str,
        lang: str = "en",
        grammar: Optional[str] = None,
        grammar_rule: Optional[str] = None,
        **options: Any,
    ) -> Dict[str, Any]:
        """
        Load or replace the active model.

        PUT /api/v1/model

        Args:
            model_path: Model path on the server
            lang: Default language ("auto" permitted)
            grammar: Inline GBNF grammar or server-side grammar file path
            grammar_rule: Default grammar start rule
            **options: use_gpu, flash_attn, dtw

        Returns:
            Model status
        """
        payload: Dict[str, Any] = {"modelpath": model_path, "lang": lang, **options}
        if grammar is not None:
            payload["grammar"] = grammar
        if grammar_rule is not None:
            payload["grammar_rule"] = grammar_rule

        response = await self.client.put("/api/v1/model", json=payload)
        response.raise_for_status()
        return response.json()

    async def model_status(self) -> Dict[str, Any]:
        """GET /api/v1/model"""
        response = await self.client.get("/api/v1/model")
        response.raise_for_status()
        return response.json()

    async def transcribe(
        self,
        audio: Path | str | bytes,
        lang: str = "en",
        diarize: bool = False,
        request_id: Optional[str] = None,
        **overrides: Any,
    ) -> Dict[str, Any]:
        """
        Transcribe a WAV file.

        POST /api/v1/transcribe

        Args:
            audio: Path to a 16 kHz WAV file or raw WAV bytes
            lang: Language code
            diarize: Request speaker labels (stereo input)
            request_id: Id usable with ``cancel`` while the request runs
            **overrides: Decoding parameter overrides (beam_size, temperature, ...)

        Returns:
            Structured transcription response
        """
        payload: Dict[str, Any] = {
            "lang": lang,
            "wavdata": encode_wav(audio),
            "diarize": diarize,
            **overrides,
        }
        if request_id is not None:
            payload["request_id"] = request_id

        response = await self.client.post("/api/v1/transcribe", json=payload)
        response.raise_for_status()
        return response.json()

    async def cancel(self, request_id: str) -> bool:
        """
        Cancel an in-flight transcription.

        POST /api/v1/transcriptions/{request_id}/cancel

        Returns:
            True if the request was in flight, False if it was unknown
        """
        response = await self.client.post(f"/api/v1/transcriptions/{request_id}/cancel")
        if response.status_code == 404:
            return False
        response.raise_for_status()
        return response.json()["cancelled"]

    async def close(self):
        """Close HTTP client connection."""
        await self.client.aclose()
