"""
Routes compatible with the original whisper.cpp server.

POST /init_model     -> empty 200 body on success
POST /run_detection  -> plain-text transcript
"""

import uuid

from fastapi import APIRouter, Depends, Response
from fastapi.responses import PlainTextResponse

from ..core.config import Settings
from ..schemas.transcription import ModelConfigRequest, TranscribeRequest
from ..services.cancellation import CancellationRegistry
from ..services.model_registry import ModelRegistry
from ..services.transcriber import Transcriber
from .deps import get_cancellations, get_model_registry, get_settings, get_transcriber, to_model_config
from .v1.endpoints.transcribe import run_transcription

router = APIRouter(tags=["legacy"])


@router.post("/init_model")
async def init_model(
    body: ModelConfigRequest,
    registry: ModelRegistry = Depends(get_model_registry),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Load (or replace) the active model."""
    await registry.reconfigure_async(to_model_config(body, settings))
    return Response(status_code=200)


@router.post("/run_detection", response_class=PlainTextResponse)
async def run_detection(
    body: TranscribeRequest,
    transcriber: Transcriber = Depends(get_transcriber),
    cancellations: CancellationRegistry = Depends(get_cancellations),
) -> PlainTextResponse:
    """Transcribe and return the segment texts joined by a single space."""
    request_id = body.request_id or str(uuid.uuid4())
    result = await run_transcription(body, request_id, transcriber, cancellations)
    return PlainTextResponse(result.render_text(annotate_speakers=body.diarize))
