"""Engine registry: maps the ENGINE setting to an implementation."""

from typing import Callable, Dict

from .protocol import InferenceEngine


def _faster_whisper() -> InferenceEngine:
    from .faster_whisper import FasterWhisperEngine

    return FasterWhisperEngine()


def _fake() -> InferenceEngine:
    from .fake import FakeEngine

    return FakeEngine()


_ENGINES: Dict[str, Callable[[], InferenceEngine]] = {
    "faster-whisper": _faster_whisper,
    "fake": _fake,
}


def available_engines() -> list[str]:
    return sorted(_ENGINES)


def create_engine(name: str) -> InferenceEngine:
    """
    Instantiate an inference engine by name.

    Raises:
        ValueError: If the name is not registered
    """
    try:
        factory = _ENGINES[name]
    except KeyError:
        raise ValueError(
            f"Unknown engine '{name}'. Expected one of: {', '.join(available_engines())}"
        ) from None
    return factory()
