"""
FastAPI dependency injection.

The model registry, transcriber and cancellation registry are created once
per application and stored on ``app.state``; routes receive them via Depends().
"""

from fastapi import Request

from ..core.config import Settings, settings
from ..services.cancellation import CancellationRegistry
from ..services.model_registry import ModelConfig, ModelRegistry
from ..services.transcriber import Transcriber
from ..schemas.transcription import ModelConfigRequest


def get_model_registry(request: Request) -> ModelRegistry:
    return request.app.state.model_registry


def get_transcriber(request: Request) -> Transcriber:
    return request.app.state.transcriber


def get_cancellations(request: Request) -> CancellationRegistry:
    return request.app.state.cancellations


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", settings)


def to_model_config(body: ModelConfigRequest, settings: Settings) -> ModelConfig:
    """Merge a reconfigure body with configured defaults."""
    return ModelConfig(
        model_path=body.modelpath,
        language=body.lang,
        grammar=body.grammar if body.grammar is not None else settings.GRAMMAR,
        grammar_rule=body.grammar_rule if body.grammar_rule is not None else settings.GRAMMAR_RULE,
        use_gpu=body.use_gpu if body.use_gpu is not None else settings.USE_GPU,
        flash_attn=body.flash_attn if body.flash_attn is not None else settings.FLASH_ATTN,
        dtw=body.dtw if body.dtw is not None else settings.DTW,
        device=settings.get_device(),
    )
