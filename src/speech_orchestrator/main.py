"""
FastAPI application entry point.

Main application with lifespan management, CORS, and API routing.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .core.config import Settings, settings as default_settings
from .core.exceptions import ASRServiceError
from .core.logging import logger
from .api.errors import register_exception_handlers
from .api.legacy import router as legacy_router
from .api.v1.router import api_router
from .engine.factory import create_engine
from .engine.protocol import InferenceEngine
from .services.cancellation import CancellationRegistry
from .services.model_registry import ModelConfig, ModelRegistry
from .services.transcriber import Transcriber


@asynccontextmanager
async def lifespan(app: FastAPI):  # pylint: disable=redefined-outer-name
    """
    Application lifespan manager.

    Loads the configured model on startup (if MODEL_PATH is set) and releases
    the active model on shutdown.
    """
    settings: Settings = app.state.settings
    registry: ModelRegistry = app.state.model_registry

    # Startup
    logger.info("=" * 80)
    logger.info("Speech Orchestrator starting...")
    logger.info(f"Engine: {registry.engine.name}")
    logger.info(f"Device: {settings.get_device()}")
    logger.info(f"Model: {settings.MODEL_PATH or '(none, waiting for /init_model)'}")
    logger.info("=" * 80)

    if settings.MODEL_PATH:
        try:
            await registry.reconfigure_async(ModelConfig.from_settings(settings))
        except ASRServiceError as e:
            # The service stays up; a model can still be loaded via /init_model
            logger.error(f"Startup model load failed: {e}")

    yield

    # Shutdown
    logger.info("Speech Orchestrator shutting down...")
    registry.shutdown()
    logger.info("Shutdown complete")


def create_app(
    engine: InferenceEngine | None = None,
    settings: Settings = default_settings,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        engine: Inference engine to use (default: created from settings.ENGINE)
        settings: Settings instance

    Returns:
        Configured FastAPI app with registry, transcriber and cancellation
        registry on ``app.state``
    """
    app = FastAPI(
        title="Speech Orchestrator",
        description="Speech recognition with grammar-constrained decoding and two-channel diarization",
        version=__version__,
        lifespan=lifespan,
    )

    registry = ModelRegistry(engine or create_engine(settings.ENGINE), settings)
    app.state.settings = settings
    app.state.model_registry = registry
    app.state.transcriber = Transcriber(registry, settings)
    app.state.cancellations = CancellationRegistry()

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(legacy_router)
    app.include_router(api_router)

    @app.get("/", tags=["root"])
    async def root():
        """
        Root endpoint.

        Returns service information.
        """
        return {
            "service": "Speech Orchestrator",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
            "health": "/health",
        }

    @app.get("/health", tags=["health"])
    async def health():
        """
        Health check endpoint.

        Returns basic health status.
        """
        return {
            "status": "healthy",
            "model_loaded": registry.is_loaded(),
            "engine": registry.engine.name,
            "device": settings.get_device(),
            "in_flight": len(app.state.cancellations.in_flight()),
        }

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "speech_orchestrator.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
    )
