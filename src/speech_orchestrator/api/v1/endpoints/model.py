"""
Model lifecycle endpoints.

Load or replace the active model and inspect its status.
"""

from fastapi import APIRouter, Depends

from ....core.config import Settings
from ....schemas.transcription import ModelConfigRequest, ModelStatusResponse
from ....services.model_registry import ModelRegistry
from ...deps import get_model_registry, get_settings, to_model_config

router = APIRouter()


@router.get("/model", response_model=ModelStatusResponse, tags=["model"])
async def get_model(registry: ModelRegistry = Depends(get_model_registry)):
    """Return the active model's configuration (``loaded`` is false before the first load)."""
    return ModelStatusResponse(**registry.status())


@router.put("/model", response_model=ModelStatusResponse, tags=["model"])
async def put_model(
    body: ModelConfigRequest,
    registry: ModelRegistry = Depends(get_model_registry),
    settings: Settings = Depends(get_settings),
):
    """
    Load a model and make it the active one.

    Language, DTW preset and grammar are validated and the model is loaded
    before the swap; on any failure the previous model keeps serving.

    Request body:
        {
            "modelpath": "models/ggml-base.en.bin",
            "lang": "en",
            "grammar": "root ::= \\"yes\\" | \\"no\\"",  // Optional
            "grammar_rule": "root"                    // Optional
        }
    """
    await registry.reconfigure_async(to_model_config(body, settings))
    return ModelStatusResponse(**registry.status())
