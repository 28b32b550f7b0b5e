"""Cancellable call context (cancel token + optional deadline)."""

from __future__ import annotations

import threading
import time
from typing import Optional

CANCELED = "context canceled"
DEADLINE_EXCEEDED = "context deadline exceeded"


class CallContext:
    """
    Passed into every client operation.

    Thread-safe: `cancel()` may be called from any thread while a call is in flight.
    """

    def __init__(self, *, timeout: Optional[float] = None) -> None:
        self._cancelled = threading.Event()
        self._deadline: Optional[float] = None if timeout is None else time.monotonic() + timeout

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def err(self) -> Optional[str]:
        """Return why the context is done, or None while it is still live."""
        if self._cancelled.is_set():
            return CANCELED
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DEADLINE_EXCEEDED
        return None


def background() -> CallContext:
    return CallContext()
