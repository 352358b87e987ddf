"""
Error mapping.

Every service exception becomes a JSON ErrorResponse with its stable code
and a distinct HTTP status.
"""

from typing import Dict, Type

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..core.exceptions import (
    ASRServiceError,
    GrammarCompileError,
    InferenceCancelledError,
    InvalidRequestError,
    ModelLoadingError,
    ModelNotLoadedError,
    RequestNotFoundError,
    TranscriptionError,
)
from ..core.logging import logger
from ..schemas.transcription import ErrorResponse

# Looked up along the exception's MRO, most specific class first
ERROR_STATUS: Dict[Type[ASRServiceError], int] = {
    InvalidRequestError: status.HTTP_400_BAD_REQUEST,
    GrammarCompileError: 422,  # Unprocessable Content; the constant name varies across Starlette releases
    ModelLoadingError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ModelNotLoadedError: status.HTTP_503_SERVICE_UNAVAILABLE,
    InferenceCancelledError: status.HTTP_409_CONFLICT,
    TranscriptionError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    RequestNotFoundError: status.HTTP_404_NOT_FOUND,
}


def status_for(exc: ASRServiceError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def service_error_handler(request: Request, exc: ASRServiceError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    body = ErrorResponse(error=exc.code, detail=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ASRServiceError, service_error_handler)
