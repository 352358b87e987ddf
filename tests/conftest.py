import base64
import io
from types import SimpleNamespace

import numpy as np
import pytest
import soundfile as sf
from httpx import AsyncClient, ASGITransport

from speech_orchestrator.core.config import Settings
from speech_orchestrator.engine.fake import FakeEngine
from speech_orchestrator.main import create_app
from speech_orchestrator.services.model_registry import ModelConfig, ModelRegistry
from speech_orchestrator.services.transcriber import Transcriber

SAMPLE_RATE = 16000


def make_wav(samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Encode float samples (1-D mono or (n, channels)) as 16-bit PCM WAV bytes."""
    buffer = io.BytesIO()
    sf.write(buffer, samples, sample_rate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


def make_payload(samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> str:
    """Base64 WAV payload as sent in ``wavdata``."""
    return base64.b64encode(make_wav(samples, sample_rate)).decode("ascii")


def tone(frequency: float, seconds: float = 1.0, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(SAMPLE_RATE * seconds), dtype=np.float32) / SAMPLE_RATE
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


def silence(seconds: float = 1.0) -> np.ndarray:
    return np.zeros(int(SAMPLE_RATE * seconds), dtype=np.float32)


@pytest.fixture
def test_settings():
    """Settings pinned for tests (no startup model, fake engine)."""
    return Settings(
        ENGINE="fake",
        MODEL_PATH=None,
        MODEL_LANGUAGE="en",
        GRAMMAR="",
        GRAMMAR_RULE="",
        DEVICE="cpu",
        BEAM_SIZE=5,
        N_PROCESSORS=1,
    )


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def model_file(tmp_path):
    """A model file the fake engine accepts."""
    path = tmp_path / "ggml-test.bin"
    path.write_bytes(b"fake model weights")
    return str(path)


@pytest.fixture
def second_model_file(tmp_path):
    path = tmp_path / "ggml-other.bin"
    path.write_bytes(b"other fake model weights")
    return str(path)


@pytest.fixture
def registry(fake_engine, test_settings):
    return ModelRegistry(fake_engine, test_settings)


@pytest.fixture
def loaded_registry(registry, model_file):
    registry.reconfigure(ModelConfig(model_path=model_file, language="en"))
    return registry


@pytest.fixture
def transcriber(loaded_registry, test_settings):
    return Transcriber(loaded_registry, test_settings)


@pytest.fixture
def app(fake_engine, test_settings):
    return create_app(engine=fake_engine, settings=test_settings)


@pytest.fixture
async def async_client(app):
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def silent_payload():
    """1 second of 16 kHz mono silence."""
    return make_payload(silence(1.0))


@pytest.fixture
def tone_payload():
    """3 seconds of a 440 Hz tone."""
    return make_payload(tone(440.0, seconds=3.0))


@pytest.fixture
def audio():
    """Audio helpers: tone(), silence(), wav(), payload()."""
    return SimpleNamespace(tone=tone, silence=silence, wav=make_wav, payload=make_payload)
