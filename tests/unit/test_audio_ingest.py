"""
Tests for WAV payload decoding.
"""

import base64

import numpy as np
import pytest

from speech_orchestrator.core.exceptions import AudioDecodeError, InvalidRequestError
from speech_orchestrator.services.audio_ingest import (
    AudioBuffers,
    decode_transport,
    ingest,
    read_wav,
)


class TestDecodeTransport:
    def test_round_trip(self):
        assert decode_transport(base64.b64encode(b"RIFF1234")) == b"RIFF1234"

    @pytest.mark.parametrize("payload", ["not base64!!", "abc"])
    def test_invalid_base64(self, payload):
        with pytest.raises(AudioDecodeError):
            decode_transport(payload)


class TestReadWav:
    def test_mono(self, audio):
        samples = audio.tone(440.0, seconds=0.5)

        buffers = read_wav(audio.wav(samples))

        assert isinstance(buffers, AudioBuffers)
        assert buffers.is_stereo is False
        assert buffers.channels is None
        assert buffers.mono.dtype == np.float32
        assert len(buffers.mono) == 8000
        assert buffers.duration == pytest.approx(0.5)
        # 16-bit quantization only
        np.testing.assert_allclose(buffers.mono, samples, atol=1e-3)

    def test_stereo_mixdown_is_channel_mean(self, audio):
        left = np.full(1600, 0.5, dtype=np.float32)
        right = np.full(1600, -0.25, dtype=np.float32)

        buffers = read_wav(audio.wav(np.stack([left, right], axis=1)))

        assert buffers.is_stereo is True
        left_out, right_out = buffers.channels
        assert len(left_out) == len(right_out) == len(buffers.mono) == 1600
        np.testing.assert_allclose(left_out, 0.5, atol=1e-3)
        np.testing.assert_allclose(right_out, -0.25, atol=1e-3)
        np.testing.assert_allclose(buffers.mono, 0.125, atol=1e-3)

    def test_float_samples_stay_in_unit_range(self, audio):
        buffers = read_wav(audio.wav(np.full(160, 0.999, dtype=np.float32)))

        assert np.all(np.abs(buffers.mono) <= 1.0)

    def test_empty_payload(self):
        with pytest.raises(AudioDecodeError, match="empty"):
            read_wav(b"")

    def test_not_a_wav(self):
        with pytest.raises(AudioDecodeError):
            read_wav(b"definitely not a RIFF container")

    def test_wrong_sample_rate(self, audio):
        data = audio.wav(np.zeros(4410, dtype=np.float32), sample_rate=44100)

        with pytest.raises(AudioDecodeError, match="16 kHz"):
            read_wav(data)

    def test_more_than_two_channels(self, audio):
        data = audio.wav(np.zeros((160, 3), dtype=np.float32))

        with pytest.raises(AudioDecodeError, match="3 channels"):
            read_wav(data)

    def test_zero_samples(self, audio):
        data = audio.wav(np.zeros(0, dtype=np.float32))

        with pytest.raises(AudioDecodeError):
            read_wav(data)


class TestIngest:
    def test_ingest_payload(self, audio):
        buffers = ingest(audio.payload(audio.silence(0.25)))

        assert len(buffers.mono) == 4000
        assert not np.any(buffers.mono)

    def test_decode_errors_are_invalid_requests(self):
        with pytest.raises(InvalidRequestError):
            ingest("%%%")
