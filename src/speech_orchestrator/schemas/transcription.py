"""
Request and response schemas.

Pydantic models for model reconfiguration, transcription and cancellation.
Field names of the reconfigure/transcribe bodies (``modelpath``, ``lang``,
``wavdata``) match the original whisper.cpp server contract.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ModelConfigRequest(BaseModel):
    """
    Body for /init_model and PUT /api/v1/model.

    Attributes:
        modelpath: Path to the model to load
        lang: Default language code ("auto" permitted)
        grammar: Inline GBNF grammar text or path to a grammar file
        grammar_rule: Default start rule for grammar sampling
        use_gpu: Run on GPU when available
        flash_attn: Enable flash attention
        dtw: Alignment-heads preset for token-level timestamps
    """

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "modelpath": "models/ggml-base.en.bin",
                "lang": "en",
                "grammar": 'root ::= "yes" | "no"',
                "grammar_rule": "root",
            }
        },
    )

    modelpath: str = Field(..., min_length=1, description="Model path")
    lang: str = Field(..., min_length=1, description="Language code or 'auto'")
    grammar: Optional[str] = Field(None, description="GBNF grammar text or file path")
    grammar_rule: Optional[str] = Field(None, description="Grammar start rule")
    use_gpu: Optional[bool] = Field(None, description="Use GPU")
    flash_attn: Optional[bool] = Field(None, description="Use flash attention")
    dtw: Optional[str] = Field(None, description="DTW alignment-heads preset")


class DecodingOverrides(BaseModel):
    """Per-request decoding parameters; unset fields use the configured defaults."""

    model_config = ConfigDict(extra="forbid")

    n_threads: Optional[int] = Field(None, ge=1)
    offset_ms: Optional[int] = Field(None, ge=0)
    duration_ms: Optional[int] = Field(None, ge=0)
    max_context: Optional[int] = Field(None, ge=-1)
    max_len: Optional[int] = Field(None, ge=0)
    best_of: Optional[int] = Field(None, ge=1)
    beam_size: Optional[int] = Field(None, ge=1)
    audio_ctx: Optional[int] = Field(None, ge=0)
    word_thold: Optional[float] = None
    entropy_thold: Optional[float] = None
    logprob_thold: Optional[float] = None
    grammar_penalty: Optional[float] = None
    temperature: Optional[float] = Field(None, ge=0.0, le=1.0)
    temperature_inc: Optional[float] = Field(None, ge=0.0)
    no_fallback: Optional[bool] = None
    translate: Optional[bool] = None
    detect_language: Optional[bool] = None
    split_on_word: Optional[bool] = None
    prompt: Optional[str] = None
    suppress_regex: Optional[str] = None
    grammar_rule: Optional[str] = None

    def decoding_overrides(self) -> Dict[str, Any]:
        return self.model_dump(include=set(DecodingOverrides.model_fields), exclude_none=True)


class TranscribeRequest(DecodingOverrides):
    """
    Body for /run_detection and POST /api/v1/transcribe.

    Attributes:
        lang: Language code for this request ("auto" permitted)
        wavdata: Base64-encoded 16 kHz WAV bytes
        diarize: Attach speaker labels (stereo input only)
        request_id: Client-chosen id used to cancel the request while in flight
    """

    lang: str = Field(..., min_length=1, description="Language code")
    wavdata: str = Field(..., min_length=1, description="Base64-encoded WAV data")
    diarize: bool = Field(False, description="Two-channel speaker diarization")
    request_id: Optional[str] = Field(None, min_length=1, max_length=128, description="Request id")


class TranscriptSegmentResponse(BaseModel):
    """
    Single transcript segment.

    Attributes:
        start: Start time in seconds
        end: End time in seconds
        text: Transcribed text
        speaker: Speaker label ("0", "1" or "?") when diarization ran
    """

    start: float = Field(..., description="Start time (seconds)")
    end: float = Field(..., description="End time (seconds)")
    text: str = Field(..., description="Transcribed text")
    speaker: Optional[str] = Field(None, description="Speaker label")


class TranscriptionResponse(BaseModel):
    """Structured transcription result."""

    request_id: str = Field(..., description="Request id")
    text: str = Field(..., description="Segment texts joined by a single space")
    segments: List[TranscriptSegmentResponse] = Field(..., description="Segments in order")
    language: str = Field(..., description="Language code")
    warnings: List[str] = Field(default_factory=list, description="Non-fatal warnings")
    processing_time: float = Field(..., description="Processing time in seconds")


class ModelStatusResponse(BaseModel):
    """Active model status."""

    model_config = ConfigDict(protected_namespaces=())

    loaded: bool
    engine: str
    model_path: Optional[str] = None
    language: Optional[str] = None
    device: Optional[str] = None
    use_gpu: Optional[bool] = None
    flash_attn: Optional[bool] = None
    dtw: Optional[str] = None
    grammar_rules: int = 0
    grammar_rule: Optional[str] = None
    loaded_at: Optional[str] = None


class CancelResponse(BaseModel):
    request_id: str
    cancelled: bool


class ErrorResponse(BaseModel):
    """Error body: stable classification code plus a human-readable detail."""

    error: str = Field(..., description="Error code")
    detail: str = Field(..., description="Error message")
