"""
Speech orchestrator.

Request-driven speech recognition service: model lifecycle, grammar-constrained
decoding, cancellable inference and two-channel diarization.
"""

__version__ = "1.0.0"
