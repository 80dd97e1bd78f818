"""Cooperative cancellation shared by a whole upload walk or prune sweep."""

from __future__ import annotations

import threading

from baxfer.core.exceptions import CancelledError


class CancellationToken:
    """Thread-safe flag polled at well-defined checkpoints.

    Checkpoints: before each directory entry of an upload walk, before each
    key of a prune sweep, and on every chunk moved by the transfer tees. An
    in-flight transfer therefore fails at its next chunk; work already
    committed to the backend is never rolled back.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = "Operation cancelled"

    def cancel(self, reason: str | None = None) -> None:
        if reason:
            self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError(self._reason)

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)
