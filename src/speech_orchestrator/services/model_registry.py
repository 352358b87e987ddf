"""
Model registry - owner of the active model handle and its bound grammar.

Exactly one model is active at a time. Reconfiguration validates everything
and loads the new handle before touching the active one, then swaps under
the inference lock and releases the previous handle. Transcriptions hold the
inference lock for the whole decode, so at most one inference runs per model
and a swap never interleaves with an in-flight call.
"""

import asyncio
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator

from ..core.config import Settings, settings as default_settings
from ..core.exceptions import (
    GrammarCompileError,
    ModelLoadingError,
    ModelNotLoadedError,
    UnknownAlignmentPresetError,
    UnknownLanguageError,
)
from ..core.logging import logger
from ..engine.languages import AUTO_LANGUAGE
from ..engine.protocol import AlignmentHeadsPreset, ContextParams, InferenceEngine
from ..grammar.parser import GrammarRuleSet, format_grammar, load_grammar


@dataclass(frozen=True)
class ModelConfig:
    """Reconfiguration request: which model to load and how."""

    model_path: str
    language: str = "en"
    grammar: str = ""
    grammar_rule: str = ""
    use_gpu: bool = True
    flash_attn: bool = False
    dtw: str = ""
    device: str = "cpu"

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelConfig":
        return cls(
            model_path=settings.MODEL_PATH or "",
            language=settings.MODEL_LANGUAGE,
            grammar=settings.GRAMMAR,
            grammar_rule=settings.GRAMMAR_RULE,
            use_gpu=settings.USE_GPU,
            flash_attn=settings.FLASH_ATTN,
            dtw=settings.DTW,
            device=settings.get_device(),
        )


@dataclass(frozen=True)
class LoadedModel:
    handle: Any
    config: ModelConfig
    context: ContextParams
    grammar: GrammarRuleSet = field(default_factory=GrammarRuleSet)
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def grammar_rule(self) -> str:
        return self.config.grammar_rule


class ModelRegistry:
    """
    Explicit owner of the single active model.

    Created once per application (FastAPI lifespan) and passed to every
    operation that needs the model.
    """

    def __init__(self, engine: InferenceEngine, settings: Settings = default_settings):
        self.engine = engine
        self._settings = settings
        self._active: LoadedModel | None = None

        # Serializes whole reconfigurations (validate, load, swap, release)
        self._reconfigure_lock = threading.Lock()
        # One critical section per handle: decodes and the swap itself
        self._inference_lock = threading.Lock()

        logger.info(f"ModelRegistry initialized (engine={engine.name})")

    def validate_language(self, language: str) -> None:
        """
        Raises:
            UnknownLanguageError: If the language is neither "auto" nor known to the engine
        """
        if language != AUTO_LANGUAGE and self.engine.lang_id(language) == -1:
            raise UnknownLanguageError(language)

    def resolve_context_params(self, config: ModelConfig) -> ContextParams:
        """
        Translate device/precision options into engine load parameters.

        Raises:
            UnknownAlignmentPresetError: If ``config.dtw`` names no known preset
        """
        preset = None
        if config.dtw:
            try:
                preset = AlignmentHeadsPreset(config.dtw)
            except ValueError:
                raise UnknownAlignmentPresetError(config.dtw) from None

        return ContextParams(
            use_gpu=config.use_gpu,
            flash_attn=config.flash_attn,
            device=config.device,
            compute_type=self._settings.COMPUTE_TYPE,
            n_threads=self._settings.N_THREADS,
            n_processors=self._settings.N_PROCESSORS,
            dtw_token_timestamps=preset is not None,
            dtw_aheads_preset=preset,
        )

    def _compile_grammar(self, source: str) -> GrammarRuleSet:
        if not source:
            return GrammarRuleSet()
        try:
            grammar = load_grammar(source)
        except GrammarCompileError as e:
            logger.error(f"Grammar rejected: {e}")
            raise
        logger.info(f"Grammar compiled ({len(grammar)} rules):\n{format_grammar(grammar)}")
        return grammar

    def reconfigure(self, config: ModelConfig) -> LoadedModel:
        """
        Load a model and make it the active one.

        The operation is transactional: language, alignment preset and grammar
        are validated and the new handle is loaded before anything changes.
        On any failure the previously active model (if any) keeps serving.

        Raises:
            UnknownLanguageError, UnknownAlignmentPresetError,
            GrammarCompileError, ModelLoadingError
        """
        self.validate_language(config.language)
        context = self.resolve_context_params(config)

        with self._reconfigure_lock:
            grammar = self._compile_grammar(config.grammar)

            logger.info(f"Loading model: {config.model_path}")
            try:
                handle = self.engine.load_model(config.model_path, context)
            except ModelLoadingError as e:
                logger.error(f"Model loading failed: {e}")
                raise

            loaded = LoadedModel(handle=handle, config=config, context=context, grammar=grammar)

            with self._inference_lock:
                previous, self._active = self._active, loaded

            if previous is not None:
                logger.info(f"Releasing previous model: {previous.config.model_path}")
                self.engine.release_model(previous.handle)

        logger.info(f"Model ready: {config.model_path} (language={config.language})")
        return loaded

    async def reconfigure_async(self, config: ModelConfig) -> LoadedModel:
        """Run ``reconfigure`` in an executor to not block the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.reconfigure, config)

    @contextmanager
    def use(self) -> Iterator[LoadedModel]:
        """
        Hold the active model for one inference call.

        Raises:
            ModelNotLoadedError: If no model has been loaded yet
        """
        with self._inference_lock:
            if self._active is None:
                raise ModelNotLoadedError()
            yield self._active

    @property
    def active(self) -> LoadedModel | None:
        return self._active

    def is_loaded(self) -> bool:
        return self._active is not None

    def status(self) -> Dict[str, Any]:
        """
        Get registry status.

        Returns:
            Dictionary with the active model's configuration
        """
        active = self._active
        if active is None:
            return {"loaded": False, "engine": self.engine.name}

        return {
            "loaded": True,
            "engine": self.engine.name,
            "model_path": active.config.model_path,
            "language": active.config.language,
            "device": active.context.device,
            "use_gpu": active.context.use_gpu,
            "flash_attn": active.context.flash_attn,
            "dtw": active.config.dtw or None,
            "grammar_rules": len(active.grammar),
            "grammar_rule": active.grammar_rule or None,
            "loaded_at": active.loaded_at.isoformat(),
        }

    def shutdown(self) -> None:
        """Release the active model for graceful shutdown."""
        with self._reconfigure_lock, self._inference_lock:
            previous, self._active = self._active, None

        if previous is not None:
            logger.info(f"Releasing model: {previous.config.model_path}")
            self.engine.release_model(previous.handle)
