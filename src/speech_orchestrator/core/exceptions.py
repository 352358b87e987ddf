"""
Custom exceptions for the speech orchestrator.

Every exception carries a stable ``code`` so that callers (and automated
retries) can tell "fix the request" from "reconfigure the model" from
"retry the same request".
"""


class ASRServiceError(Exception):
    """Base exception for all service errors."""

    code = "service_error"


class InvalidRequestError(ASRServiceError):
    """Raised when request input is rejected before touching shared state."""

    code = "invalid_request"


class UnknownLanguageError(InvalidRequestError):
    """Raised when a language code does not resolve to a known language."""

    code = "unknown_language"

    def __init__(self, language: str):
        self.language = language
        super().__init__(f"Unknown language: '{language}'")


class UnknownAlignmentPresetError(InvalidRequestError):
    """Raised when an alignment-heads (DTW) preset name is not recognized."""

    code = "unknown_alignment_preset"

    def __init__(self, preset: str):
        self.preset = preset
        super().__init__(f"Unknown DTW preset: '{preset}'")


class AudioDecodeError(InvalidRequestError):
    """Raised when the audio payload cannot be turned into PCM samples."""

    code = "audio_decode_failed"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to read audio: {reason}")


class GrammarCompileError(ASRServiceError):
    """Raised when a grammar source does not compile to a non-empty rule set."""

    code = "grammar_compile_failed"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to parse grammar: {reason}")


class ModelLoadingError(ASRServiceError):
    """Raised when model loading fails."""

    code = "model_load_failed"

    def __init__(self, model_name: str, reason: str):
        self.model_name = model_name
        self.reason = reason
        super().__init__(f"Failed to load model '{model_name}': {reason}")


class ModelNotLoadedError(ASRServiceError):
    """Raised when inference is requested before any model was loaded."""

    code = "model_not_loaded"

    def __init__(self):
        super().__init__("No model loaded. Configure a model first.")


class TranscriptionError(ASRServiceError):
    """Raised when the inference engine reports a failed decode."""

    code = "inference_failed"

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        if status is not None:
            super().__init__(f"Transcription error (status {status}): {message}")
        else:
            super().__init__(f"Transcription error: {message}")


class InferenceCancelledError(TranscriptionError):
    """Raised when an in-flight decode was aborted through its cancellation token."""

    code = "inference_cancelled"

    def __init__(self, request_id: str | None = None):
        self.request_id = request_id
        super().__init__("inference cancelled")


class RequestNotFoundError(ASRServiceError):
    """Raised when cancelling a request id that is not in flight."""

    code = "request_not_found"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"No in-flight request: {request_id}")
