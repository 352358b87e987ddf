"""faster-whisper inference engine adapter."""

from importlib import import_module
from inspect import Parameter, signature
from typing import Any, Callable, Dict, List

import numpy as np

from ..core.exceptions import ModelLoadingError
from ..core.logging import logger
from ..services.decoding import DecodingConfiguration, SamplingStrategy
from . import languages
from .protocol import (
    STATUS_ABORTED,
    STATUS_FAILED,
    STATUS_OK,
    ContextParams,
    EngineSegment,
    window_samples,
)


def _filter_supported_kwargs(
    target: Callable[..., Any], candidate_kwargs: Dict[str, Any]
) -> Dict[str, Any]:
    """Keep only kwargs accepted by ``target``'s signature."""
    try:
        target_signature = signature(target)
    except (TypeError, ValueError):
        return dict(candidate_kwargs)

    if any(
        parameter.kind == Parameter.VAR_KEYWORD
        for parameter in target_signature.parameters.values()
    ):
        return dict(candidate_kwargs)

    supported = {
        key: value
        for key, value in candidate_kwargs.items()
        if key in target_signature.parameters
    }
    dropped = sorted(set(candidate_kwargs).difference(supported))
    if dropped:
        logger.debug(f"faster-whisper: ignoring unsupported options: {', '.join(dropped)}")
    return supported


def temperature_schedule(temperature: float, increment: float) -> float | tuple:
    """Fallback temperatures from ``temperature`` up to 1.0, or a single value."""
    if increment <= 0:
        return temperature

    temperatures = []
    current = temperature
    while current <= 1.0 + 1e-6:
        temperatures.append(round(current, 4))
        current += increment
    return tuple(temperatures) or temperature


class FasterWhisperHandle:
    def __init__(self, model_path: str, model: Any, device: str, word_timestamps: bool):
        self.model_path = model_path
        self.model = model
        self.device = device
        self.word_timestamps = word_timestamps
        self.segments: List[EngineSegment] = []


class FasterWhisperEngine:
    """Engine backed by faster-whisper (CTranslate2 Whisper models).

    Cancellation hooks are honoured at the granularity faster-whisper
    exposes: the encoder hook is polled before decoding starts, the abort
    hook before every step of the lazy segment generator (one 30-second
    window each). Grammar-constrained sampling is not available in
    faster-whisper; grammar settings are logged and otherwise ignored.
    """

    name = "faster-whisper"

    def lang_id(self, language: str) -> int:
        return languages.lang_id(language)

    def load_model(self, model_path: str, params: ContextParams) -> FasterWhisperHandle:
        try:
            faster_whisper_module = import_module("faster_whisper")
        except ModuleNotFoundError as e:
            raise ModelLoadingError(
                model_path,
                "faster-whisper is not installed. "
                "Install it with: pip install 'speech-orchestrator[faster-whisper]'",
            ) from e

        whisper_model_class = getattr(faster_whisper_module, "WhisperModel", None)
        if whisper_model_class is None:
            raise ModelLoadingError(model_path, "installed faster-whisper is missing WhisperModel")

        device = "cuda" if params.use_gpu and params.device == "cuda" else "cpu"
        model_kwargs = _filter_supported_kwargs(
            whisper_model_class,
            {
                "device": device,
                "compute_type": params.compute_type,
                "cpu_threads": params.n_threads,
                "num_workers": params.n_processors,
                "flash_attention": params.flash_attn,
            },
        )

        logger.info(f"Loading faster-whisper model {model_path} on {device}")
        try:
            model = whisper_model_class(model_path, **model_kwargs)
        except (OSError, RuntimeError, ValueError) as e:
            raise ModelLoadingError(model_path, str(e)) from e

        return FasterWhisperHandle(
            model_path=model_path,
            model=model,
            device=device,
            word_timestamps=params.dtw_token_timestamps,
        )

    def release_model(self, handle: FasterWhisperHandle) -> None:
        handle.model = None
        handle.segments = []

    def _transcribe_kwargs(
        self, handle: FasterWhisperHandle, config: DecodingConfiguration
    ) -> Dict[str, Any]:
        language = None
        if config.language != languages.AUTO_LANGUAGE and not config.detect_language:
            # faster-whisper only takes codes; full names ("english") are accepted upstream
            language = languages.lang_code(languages.lang_id(config.language))

        beam_size = config.beam_size if config.strategy == SamplingStrategy.BEAM_SEARCH else 1

        kwargs: Dict[str, Any] = {
            "language": language,
            "task": "translate" if config.translate else "transcribe",
            "beam_size": max(1, beam_size),
            "best_of": config.best_of,
            "temperature": temperature_schedule(config.temperature, config.temperature_inc),
            "compression_ratio_threshold": config.entropy_thold,
            "log_prob_threshold": config.logprob_thold,
            "condition_on_previous_text": config.max_context != 0,
            "word_timestamps": handle.word_timestamps or config.split_on_word,
        }
        if config.initial_prompt:
            kwargs["initial_prompt"] = config.initial_prompt
        return _filter_supported_kwargs(handle.model.transcribe, kwargs)

    def decode(
        self,
        handle: FasterWhisperHandle,
        config: DecodingConfiguration,
        samples: np.ndarray,
        n_processors: int = 1,
    ) -> int:
        handle.segments = []
        if handle.model is None:
            return STATUS_FAILED

        if not config.encoder_begin_callback():
            logger.info("faster-whisper: decode aborted before encoding")
            return STATUS_ABORTED

        if config.grammar_active:
            logger.warning(
                "faster-whisper does not support grammar-constrained sampling; decoding unconstrained"
            )

        offset = max(0, config.offset_ms) / 1000.0
        audio = window_samples(samples, config.offset_ms, config.duration_ms)

        try:
            raw_segments, _info = handle.model.transcribe(
                audio, **self._transcribe_kwargs(handle, config)
            )
            pending = iter(raw_segments)
            while not config.abort_callback():
                segment = next(pending, None)
                if segment is None:
                    return STATUS_OK
                handle.segments.append(
                    EngineSegment(
                        start=float(segment.start) + offset,
                        end=float(segment.end) + offset,
                        text=str(segment.text),
                    )
                )
        except (RuntimeError, ValueError) as e:
            logger.error(f"faster-whisper decode failed: {e}")
            return STATUS_FAILED

        logger.info("faster-whisper: decode aborted")
        return STATUS_ABORTED

    def n_segments(self, handle: FasterWhisperHandle) -> int:
        return len(handle.segments)

    def segment(self, handle: FasterWhisperHandle, index: int) -> EngineSegment:
        return handle.segments[index]
