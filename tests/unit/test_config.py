from speech_orchestrator.core.config import Settings


def test_settings_loads_from_environment(monkeypatch):
    """Test that Settings correctly loads values from environment variables."""
    monkeypatch.setenv("MODEL_PATH", "/models/ggml-base.en.bin")
    monkeypatch.setenv("MODEL_LANGUAGE", "de")
    monkeypatch.setenv("DEVICE", "cuda")
    monkeypatch.setenv("BEAM_SIZE", "1")
    monkeypatch.setenv("NO_FALLBACK", "true")

    settings = Settings()

    assert settings.MODEL_PATH == "/models/ggml-base.en.bin"
    assert settings.MODEL_LANGUAGE == "de"
    assert settings.DEVICE == "cuda"
    assert settings.BEAM_SIZE == 1
    assert settings.NO_FALLBACK is True


def test_settings_defaults_are_correct(monkeypatch):
    """Test that Settings has correct default values."""
    for name in ("ENGINE", "MODEL_LANGUAGE", "BEAM_SIZE", "BEST_OF", "HOST", "PORT", "GRAMMAR"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    # Model defaults
    assert settings.ENGINE == "faster-whisper"
    assert settings.MODEL_LANGUAGE == "en"
    assert settings.GRAMMAR == ""

    # Decoding defaults
    assert settings.BEAM_SIZE == 5
    assert settings.BEST_OF == 5
    assert settings.ENTROPY_THOLD == 2.40
    assert settings.LOGPROB_THOLD == -1.0
    assert settings.TEMPERATURE_INC == 0.2
    assert 1 <= settings.N_THREADS <= 4

    # Server settings
    assert settings.HOST == "127.0.0.1"
    assert settings.PORT == 8080


def test_get_device_returns_valid_device():
    """Test that get_device() returns a valid device string."""
    settings = Settings(DEVICE="auto")

    device = settings.get_device()
    assert device in ["cpu", "cuda", "mps"]


def test_get_device_respects_explicit_setting(monkeypatch):
    """Test that get_device() returns explicit DEVICE setting when not 'auto'."""
    monkeypatch.setenv("DEVICE", "cpu")

    settings = Settings()
    assert settings.get_device() == "cpu"
