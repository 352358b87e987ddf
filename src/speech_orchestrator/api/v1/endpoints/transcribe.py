"""
Transcription endpoints.

Structured transcription plus cancellation of in-flight requests.
"""

import asyncio
import uuid

from fastapi import APIRouter, Depends

from ....core.exceptions import RequestNotFoundError
from ....core.logging import logger
from ....schemas.transcription import (
    CancelResponse,
    TranscribeRequest,
    TranscriptionResponse,
    TranscriptSegmentResponse,
)
from ....services.cancellation import CancellationRegistry
from ....services.transcriber import Transcriber, TranscriptionResult
from ...deps import get_cancellations, get_transcriber

router = APIRouter()


async def run_transcription(
    body: TranscribeRequest,
    request_id: str,
    transcriber: Transcriber,
    cancellations: CancellationRegistry,
) -> TranscriptionResult:
    """
    Run one transcription with a fresh cancellation token tracked under ``request_id``.

    If the awaiting task is cancelled (client gone, server shutting down) the
    token is set before the id is untracked, so the decode in the executor
    thread aborts instead of running on unreachable.
    """
    with cancellations.track(request_id) as token:
        try:
            return await transcriber.transcribe_async(
                body.wavdata,
                body.lang,
                overrides=body.decoding_overrides(),
                diarize=body.diarize,
                token=token,
            )
        except asyncio.CancelledError:
            token.cancel()
            logger.info(f"Request {request_id} dropped, inference cancelled")
            raise


@router.post("/transcribe", response_model=TranscriptionResponse, tags=["transcription"])
async def transcribe(
    body: TranscribeRequest,
    transcriber: Transcriber = Depends(get_transcriber),
    cancellations: CancellationRegistry = Depends(get_cancellations),
) -> TranscriptionResponse:
    """
    Transcribe base64-encoded 16 kHz WAV audio.

    Returns ordered segments with timestamps (and speaker labels when
    ``diarize`` is set and the input is stereo).
    """
    request_id = body.request_id or str(uuid.uuid4())
    result = await run_transcription(body, request_id, transcriber, cancellations)

    return TranscriptionResponse(
        request_id=request_id,
        text=result.text,
        segments=[
            TranscriptSegmentResponse(
                start=segment.start,
                end=segment.end,
                text=segment.text,
                speaker=segment.speaker,
            )
            for segment in result.segments
        ],
        language=result.language,
        warnings=list(result.warnings),
        processing_time=result.processing_time,
    )


@router.post(
    "/transcriptions/{request_id}/cancel",
    response_model=CancelResponse,
    tags=["transcription"],
)
async def cancel_transcription(
    request_id: str,
    cancellations: CancellationRegistry = Depends(get_cancellations),
) -> CancelResponse:
    """Abort an in-flight transcription. Unknown or finished ids return 404."""
    if not cancellations.cancel(request_id):
        raise RequestNotFoundError(request_id)
    return CancelResponse(request_id=request_id, cancelled=True)
