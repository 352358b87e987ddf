"""
Configuration settings for the speech orchestrator.

Uses Pydantic Settings to load from environment variables with .env file support.
"""

import os
from pathlib import Path
from typing import List
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from ..utils.file_ops import get_project_root

# Compute .env file path using project root utility
try:
    _PROJECT_ROOT = get_project_root()
    _ENV_FILE = _PROJECT_ROOT / ".env"
except FileNotFoundError:
    # Fallback if project root not found
    _ENV_FILE = Path(__file__).parent.parent.parent.parent / ".env"


class Settings(BaseSettings):
    """Application configuration settings loaded from environment."""

    model_config = ConfigDict(
        env_file=_ENV_FILE,
        case_sensitive=True,
        extra="ignore",  # Allow extra fields in .env
        protected_namespaces=(),
    )

    # Inference engine ("faster-whisper" or "fake")
    ENGINE: str = "faster-whisper"

    # Model loaded at startup (optional, /init_model can load one later)
    MODEL_PATH: str | None = None
    MODEL_LANGUAGE: str = "en"
    GRAMMAR: str = ""  # Inline GBNF text or path to a .gbnf file
    GRAMMAR_RULE: str = ""  # Default start rule for grammar sampling

    # Device configuration
    DEVICE: str = "auto"  # auto, mps, cuda, cpu
    USE_GPU: bool = True
    FLASH_ATTN: bool = False
    DTW: str = ""  # Alignment heads preset for token timestamps (e.g. "base.en")
    COMPUTE_TYPE: str = "default"

    # Threads
    N_THREADS: int = min(4, os.cpu_count() or 1)
    N_PROCESSORS: int = 1

    # Decoding defaults
    OFFSET_T_MS: int = 0
    DURATION_MS: int = 0
    MAX_CONTEXT: int = -1
    MAX_LEN: int = 0
    BEST_OF: int = 5
    BEAM_SIZE: int = 5
    AUDIO_CTX: int = 0
    WORD_THOLD: float = 0.01
    ENTROPY_THOLD: float = 2.40
    LOGPROB_THOLD: float = -1.00
    GRAMMAR_PENALTY: float = 100.0
    TEMPERATURE: float = 0.0
    TEMPERATURE_INC: float = 0.2
    NO_FALLBACK: bool = False
    TRANSLATE: bool = False
    DETECT_LANGUAGE: bool = False
    SPLIT_ON_WORD: bool = False
    INITIAL_PROMPT: str = ""
    SUPPRESS_REGEX: str = ""

    # Server settings
    HOST: str = (
        "127.0.0.1"  # Bind to localhost by default (set to 0.0.0.0 to expose publicly)
    )
    PORT: int = 8080

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    def get_device(self) -> str:
        """
        Auto-detect optimal device if DEVICE="auto".

        Returns:
            Device string: "mps", "cuda", or "cpu"
        """
        if self.DEVICE != "auto":
            return self.DEVICE

        # Auto-detection
        try:
            import torch

            if torch.backends.mps.is_available():
                return "mps"
            elif torch.cuda.is_available():
                return "cuda"
            else:
                return "cpu"
        except ImportError:
            return "cpu"


# Global settings instance
settings = Settings()
