"""Engine protocol defining the interface for speech-recognition backends.

This is the boundary between the orchestration layer and the inference
engine. The orchestrator only ever talks to an ``InferenceEngine``; real
backends and the deterministic fake used in tests both implement it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import numpy as np

from ..services.decoding import DecodingConfiguration

# Sample rate fixed by contract with the engine
WHISPER_SAMPLE_RATE = 16000


class AlignmentHeadsPreset(str, Enum):
    """Alignment-head presets for DTW token-level timestamps."""

    TINY = "tiny"
    TINY_EN = "tiny.en"
    BASE = "base"
    BASE_EN = "base.en"
    SMALL = "small"
    SMALL_EN = "small.en"
    MEDIUM = "medium"
    MEDIUM_EN = "medium.en"
    LARGE_V1 = "large.v1"
    LARGE_V2 = "large.v2"
    LARGE_V3 = "large.v3"
    LARGE_V3_TURBO = "large.v3.turbo"


@dataclass(frozen=True)
class ContextParams:
    """Load-time options: device, precision/attention mode, timestamp alignment."""

    use_gpu: bool = True
    flash_attn: bool = False
    device: str = "cpu"
    compute_type: str = "default"
    n_threads: int = 4
    n_processors: int = 1
    dtw_token_timestamps: bool = False
    dtw_aheads_preset: AlignmentHeadsPreset | None = None


@dataclass(frozen=True)
class EngineSegment:
    """One decoded segment; times in seconds."""

    start: float
    end: float
    text: str


class ModelHandle(Protocol):
    """Opaque engine-owned model instance."""

    model_path: str


class InferenceEngine(Protocol):
    """Protocol for full-context speech-recognition engines.

    ``decode`` returns 0 on success and a non-zero status on failure,
    including aborts requested through the configuration hooks. Results of
    the last decode are kept on the handle and read back with
    ``n_segments`` / ``segment``; they are only valid until the next decode
    on the same handle.
    """

    name: str

    def lang_id(self, language: str) -> int:
        """Return the language id, or -1 for unknown languages."""
        ...

    def load_model(self, model_path: str, params: ContextParams) -> ModelHandle:
        """Materialize a handle.

        Raises:
            ModelLoadingError: If the model cannot be loaded
        """
        ...

    def release_model(self, handle: Any) -> None:
        ...

    def decode(
        self,
        handle: Any,
        config: DecodingConfiguration,
        samples: np.ndarray,
        n_processors: int = 1,
    ) -> int:
        ...

    def n_segments(self, handle: Any) -> int:
        ...

    def segment(self, handle: Any, index: int) -> EngineSegment:
        ...


STATUS_OK = 0
STATUS_FAILED = -1
STATUS_ABORTED = -6


def window_samples(samples: np.ndarray, offset_ms: int, duration_ms: int) -> np.ndarray:
    """Restrict samples to the [offset, offset + duration) window; duration 0 = to the end."""
    start = max(0, offset_ms) * WHISPER_SAMPLE_RATE // 1000
    if duration_ms > 0:
        stop = start + duration_ms * WHISPER_SAMPLE_RATE // 1000
        return samples[start:stop]
    return samples[start:]
