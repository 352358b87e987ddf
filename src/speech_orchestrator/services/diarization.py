"""
Two-channel speaker diarization.

Attributes a time window to the louder of two channels by comparing the
summed absolute amplitude of each channel inside the window.
"""

from typing import Sequence

import numpy as np

from ..engine.protocol import WHISPER_SAMPLE_RATE

SPEAKER_0 = "0"
SPEAKER_1 = "1"
SPEAKER_UNKNOWN = "?"

# A channel must carry this much more energy than the other to win
ENERGY_RATIO = 1.1


def timestamp_to_sample(t: float, n_samples: int, sample_rate: int = WHISPER_SAMPLE_RATE) -> int:
    """Map a time in seconds to a sample index clamped to [0, n_samples - 1]."""
    return max(0, min(n_samples - 1, int(t * sample_rate)))


def format_speaker(label: str) -> str:
    return f"(speaker {label})"


def classify_energy(energy0: float, energy1: float) -> str:
    if energy0 > ENERGY_RATIO * energy1:
        return SPEAKER_0
    if energy1 > ENERGY_RATIO * energy0:
        return SPEAKER_1
    return SPEAKER_UNKNOWN


def estimate_speaker(
    channels: Sequence[np.ndarray],
    t0: float,
    t1: float,
    id_only: bool = True,
) -> str:
    """
    Estimate which channel dominates the window [t0, t1).

    Args:
        channels: Two per-channel sample buffers of equal length
        t0: Window start in seconds
        t1: Window end in seconds
        id_only: Return the bare label ("0", "1", "?") instead of "(speaker X)"

    Returns:
        Speaker label
    """
    n_samples = len(channels[0])
    is0 = timestamp_to_sample(t0, n_samples)
    is1 = timestamp_to_sample(t1, n_samples)

    energy0 = float(np.abs(channels[0][is0:is1]).sum(dtype=np.float64))
    energy1 = float(np.abs(channels[1][is0:is1]).sum(dtype=np.float64))

    speaker = classify_energy(energy0, energy1)
    return speaker if id_only else format_speaker(speaker)
