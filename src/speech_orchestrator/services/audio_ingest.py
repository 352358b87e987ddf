"""
Audio ingestion.

Turns a base64-encoded WAV payload into the float32 PCM buffers used for
inference (mono mixdown) and diarization (per-channel samples).
"""

import base64
import binascii
import io
from dataclasses import dataclass
from typing import Tuple

import numpy as np
import soundfile as sf

from ..core.exceptions import AudioDecodeError
from ..core.logging import logger
from ..engine.protocol import WHISPER_SAMPLE_RATE


@dataclass(frozen=True)
class AudioBuffers:
    """
    Decoded audio.

    Attributes:
        mono: Mono float32 samples at 16 kHz, never empty
        channels: Per-channel samples for stereo input, None for mono input
    """

    mono: np.ndarray
    channels: Tuple[np.ndarray, np.ndarray] | None = None

    @property
    def is_stereo(self) -> bool:
        return self.channels is not None

    @property
    def duration(self) -> float:
        return len(self.mono) / WHISPER_SAMPLE_RATE


def decode_transport(payload: str | bytes) -> bytes:
    """
    Reverse the base64 transport encoding.

    Raises:
        AudioDecodeError: If the payload is not valid base64
    """
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AudioDecodeError(f"invalid base64 payload: {e}") from e


def read_wav(data: bytes) -> AudioBuffers:
    """
    Parse WAV bytes into mono and per-channel sample buffers.

    Args:
        data: Raw WAV container bytes

    Returns:
        AudioBuffers with the stereo split populated for 2-channel input

    Raises:
        AudioDecodeError: On malformed containers, wrong sample rate,
            more than two channels, or zero samples
    """
    if not data:
        raise AudioDecodeError("empty audio payload")

    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (sf.SoundFileError, RuntimeError, TypeError) as e:
        raise AudioDecodeError(f"failed to read WAV data: {e}") from e

    if sample_rate != WHISPER_SAMPLE_RATE:
        raise AudioDecodeError(
            f"WAV data must be {WHISPER_SAMPLE_RATE // 1000} kHz, got {sample_rate} Hz"
        )

    n_samples, n_channels = samples.shape
    if n_channels not in (1, 2):
        raise AudioDecodeError(f"WAV data must be mono or stereo, got {n_channels} channels")
    if n_samples == 0:
        raise AudioDecodeError("WAV data contains no samples")

    if n_channels == 1:
        return AudioBuffers(mono=np.ascontiguousarray(samples[:, 0]))

    left = np.ascontiguousarray(samples[:, 0])
    right = np.ascontiguousarray(samples[:, 1])
    mono = ((left + right) / 2.0).astype(np.float32)
    return AudioBuffers(mono=mono, channels=(left, right))


def ingest(payload: str | bytes) -> AudioBuffers:
    """
    Decode a base64 WAV payload into AudioBuffers.

    Raises:
        AudioDecodeError: If any decoding step fails
    """
    audio = read_wav(decode_transport(payload))
    logger.debug(
        f"Ingested audio: {len(audio.mono)} samples "
        f"({audio.duration:.2f}s, {'stereo' if audio.is_stereo else 'mono'})"
    )
    return audio
