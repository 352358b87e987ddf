"""
Per-request cancellation.

Each inference call gets its own CancellationToken; the decoding
configuration closes over that token only, so cancelling one request can
never abort another one running concurrently.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from ..core.exceptions import InvalidRequestError
from ..core.logging import logger


class CancellationToken:
    """Thread-safe one-shot cancellation flag."""

    def __init__(self, request_id: str | None = None):
        self.request_id = request_id
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(request_id={self.request_id!r}, cancelled={self.is_cancelled})"


class CancellationRegistry:
    """
    Tracks tokens of in-flight requests so the transport layer can cancel them.

    Tokens are registered only for the duration of a call: cancelling an id
    that has not started yet or has already finished is reported as "not found".
    """

    def __init__(self):
        self._tokens: Dict[str, CancellationToken] = {}
        self._lock = threading.Lock()

    @contextmanager
    def track(self, request_id: str) -> Iterator[CancellationToken]:
        """
        Register a fresh token for ``request_id`` while the block runs.

        Raises:
            InvalidRequestError: If a request with the same id is already in flight
        """
        token = CancellationToken(request_id)
        with self._lock:
            if request_id in self._tokens:
                raise InvalidRequestError(f"Request already in flight: {request_id}")
            self._tokens[request_id] = token
        try:
            yield token
        finally:
            with self._lock:
                self._tokens.pop(request_id, None)

    def cancel(self, request_id: str) -> bool:
        """
        Cancel an in-flight request.

        Returns:
            True if a matching in-flight request was found
        """
        with self._lock:
            token = self._tokens.get(request_id)
        if token is None:
            return False
        token.cancel()
        logger.info(f"Cancellation requested for {request_id}")
        return True

    def in_flight(self) -> list[str]:
        with self._lock:
            return list(self._tokens)
