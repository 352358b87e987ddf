"""
Transcription orchestrator.

ingest audio -> build decoding configuration -> decode with the active
model -> copy segments out -> optional per-segment speaker attribution.
"""

import asyncio
import dataclasses
import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Mapping, Tuple

from ..core.config import Settings, settings as default_settings
from ..core.exceptions import InferenceCancelledError, TranscriptionError
from ..core.logging import logger
from ..engine.protocol import STATUS_OK
from .audio_ingest import AudioBuffers, ingest
from .cancellation import CancellationToken
from .decoding import DecodingParams, build_decoding_config
from .diarization import estimate_speaker, format_speaker
from .model_registry import ModelRegistry


@dataclass(frozen=True)
class TranscriptSegment:
    start: float
    end: float
    text: str
    speaker: str | None = None


@dataclass(frozen=True)
class TranscriptionResult:
    """Ordered transcript segments plus request-level metadata."""

    segments: Tuple[TranscriptSegment, ...]
    language: str
    warnings: Tuple[str, ...] = ()
    processing_time: float = 0.0

    @property
    def text(self) -> str:
        return " ".join(segment.text for segment in self.segments)

    def render_text(self, annotate_speakers: bool = False) -> str:
        """Plain-text transcript, optionally prefixing "(speaker X)" labels."""
        if not annotate_speakers:
            return self.text
        return " ".join(
            f"{format_speaker(segment.speaker)} {segment.text}" if segment.speaker else segment.text
            for segment in self.segments
        )


class Transcriber:
    """Runs one inference request against the registry's active model."""

    def __init__(self, registry: ModelRegistry, settings: Settings = default_settings):
        self.registry = registry
        self._settings = settings

    def transcribe(
        self,
        payload: str | bytes,
        language: str,
        overrides: Mapping[str, Any] | None = None,
        diarize: bool = False,
        token: CancellationToken | None = None,
    ) -> TranscriptionResult:
        """
        Transcribe a base64 WAV payload.

        Args:
            payload: Base64-encoded 16 kHz WAV bytes
            language: Language code for this request ("auto" allowed)
            overrides: Decoding parameter overrides (None values keep defaults)
            diarize: Attach a speaker label to each segment (stereo input only)
            token: The request's cancellation token

        Returns:
            TranscriptionResult

        Raises:
            AudioDecodeError: If the payload cannot be decoded
            UnknownLanguageError: If the language is unknown
            ModelNotLoadedError: If no model is active
            InferenceCancelledError: If the token aborted the decode
            TranscriptionError: If the engine reported a failure
        """
        start_time = time.time()
        token = token if token is not None else CancellationToken()

        audio = ingest(payload)
        self.registry.validate_language(language)
        params = DecodingParams.from_settings(self._settings, overrides)
        rule_overridden = bool(overrides) and overrides.get("grammar_rule") is not None

        engine = self.registry.engine
        with self.registry.use() as model:
            if not rule_overridden and model.grammar_rule:
                params = dataclasses.replace(params, grammar_rule=model.grammar_rule)

            config = build_decoding_config(params, language, model.grammar, token)
            logger.info(
                f"Transcribing {audio.duration:.2f}s of audio "
                f"(language={language}, strategy={config.strategy.value}, "
                f"grammar={'on' if config.grammar_active else 'off'})"
            )

            status = engine.decode(model.handle, config, audio.mono, self._settings.N_PROCESSORS)
            if status != STATUS_OK:
                if token.is_cancelled:
                    logger.info(f"Inference cancelled (request={token.request_id})")
                    raise InferenceCancelledError(token.request_id)
                logger.error(f"Failed to process audio (status={status})")
                raise TranscriptionError("failed to process audio", status=status)

            # Result buffers belong to the handle; copy them out before releasing it
            raw_segments = [
                engine.segment(model.handle, i) for i in range(engine.n_segments(model.handle))
            ]

        warnings = list(config.warnings)
        if diarize and not audio.is_stereo:
            warnings.append("diarization requires stereo input - speaker labels omitted")

        segments = tuple(
            TranscriptSegment(
                start=segment.start,
                end=segment.end,
                text=segment.text,
                speaker=self._speaker(audio, segment.start, segment.end) if diarize else None,
            )
            for segment in raw_segments
        )

        processing_time = time.time() - start_time
        logger.info(f"Transcription completed in {processing_time:.2f}s ({len(segments)} segments)")
        return TranscriptionResult(
            segments=segments,
            language=language,
            warnings=tuple(warnings),
            processing_time=processing_time,
        )

    async def transcribe_async(
        self,
        payload: str | bytes,
        language: str,
        overrides: Mapping[str, Any] | None = None,
        diarize: bool = False,
        token: CancellationToken | None = None,
    ) -> TranscriptionResult:
        """Run ``transcribe`` in an executor to not block the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            partial(
                self.transcribe,
                payload,
                language,
                overrides=overrides,
                diarize=diarize,
                token=token,
            ),
        )

    @staticmethod
    def _speaker(audio: AudioBuffers, t0: float, t1: float) -> str | None:
        if audio.channels is None:
            return None
        return estimate_speaker(audio.channels, t0, t1)
