"""Fake engine for CPU-based testing and offline development.

Returns deterministic output based on audio characteristics, allowing
reliable tests of the full orchestration pipeline without model weights.
"""

import hashlib
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import numpy as np

from ..core.exceptions import ModelLoadingError
from ..services.decoding import DecodingConfiguration
from . import languages
from .protocol import (
    STATUS_ABORTED,
    STATUS_FAILED,
    STATUS_OK,
    WHISPER_SAMPLE_RATE,
    ContextParams,
    EngineSegment,
    window_samples,
)


@dataclass
class FakeModelHandle:
    model_path: str
    params: ContextParams
    segments: List[EngineSegment] = field(default_factory=list)
    released: bool = False


class FakeEngine:
    """Deterministic engine that emits one segment per non-silent window.

    Segment text is derived from a hash of the window's samples, so two
    different inputs never produce the same transcript. Results are written
    to the handle window by window, like a real engine's result buffers;
    unsynchronized concurrent decodes on one handle would interleave them.
    """

    name = "fake"

    def __init__(
        self,
        latency_ms: float = 0.0,
        window_seconds: float = 1.0,
        silence_threshold: float = 1e-3,
    ):
        """Initialize the fake engine.

        Args:
            latency_ms: Simulated compute time per window in milliseconds.
            window_seconds: Length of the window mapped to one segment.
            silence_threshold: RMS below which a window yields no segment.
        """
        self._latency_ms = latency_ms
        self._window = max(1, int(window_seconds * WHISPER_SAMPLE_RATE))
        self._silence_threshold = silence_threshold
        self.configs: List[DecodingConfiguration] = []
        self.loaded: List[FakeModelHandle] = []
        self.released: List[FakeModelHandle] = []

    def lang_id(self, language: str) -> int:
        return languages.lang_id(language)

    def load_model(self, model_path: str, params: ContextParams) -> FakeModelHandle:
        if not Path(model_path).is_file():
            raise ModelLoadingError(model_path, "model file not found")
        handle = FakeModelHandle(model_path=model_path, params=params)
        self.loaded.append(handle)
        return handle

    def release_model(self, handle: FakeModelHandle) -> None:
        handle.released = True
        handle.segments = []
        self.released.append(handle)

    def decode(
        self,
        handle: FakeModelHandle,
        config: DecodingConfiguration,
        samples: np.ndarray,
        n_processors: int = 1,
    ) -> int:
        if handle.released:
            return STATUS_FAILED

        self.configs.append(config)
        handle.segments = []

        offset = max(0, config.offset_ms) / 1000.0
        audio = window_samples(samples, config.offset_ms, config.duration_ms)

        for start in range(0, len(audio), self._window):
            if not config.encoder_begin_callback():
                return STATUS_ABORTED

            chunk = audio[start : start + self._window]
            if self._latency_ms > 0:
                time.sleep(self._latency_ms / 1000.0)

            if config.abort_callback():
                return STATUS_ABORTED

            if self._rms(chunk) < self._silence_threshold:
                continue

            t0 = offset + start / WHISPER_SAMPLE_RATE
            t1 = t0 + len(chunk) / WHISPER_SAMPLE_RATE
            handle.segments.append(
                EngineSegment(start=t0, end=t1, text=self._describe(chunk))
            )

        return STATUS_OK

    def n_segments(self, handle: FakeModelHandle) -> int:
        return len(handle.segments)

    def segment(self, handle: FakeModelHandle, index: int) -> EngineSegment:
        return handle.segments[index]

    @property
    def call_count(self) -> int:
        """Number of decode calls made."""
        return len(self.configs)

    @staticmethod
    def _rms(chunk: np.ndarray) -> float:
        if len(chunk) == 0:
            return 0.0
        return float(np.sqrt(np.mean(np.square(chunk, dtype=np.float64))))

    @staticmethod
    def _describe(chunk: np.ndarray) -> str:
        digest = hashlib.sha256(chunk.astype(np.float32).tobytes()).hexdigest()
        duration_s = len(chunk) / WHISPER_SAMPLE_RATE
        return f"[fake:{digest[:8]}|{duration_s:.2f}s]"
