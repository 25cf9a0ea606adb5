"""Caller-driven cancellation for blocking operations."""

from __future__ import annotations

import threading
import time


class CancelScope:
    """A cancellation signal with an optional deadline and parent.

    Operations that talk to the server accept ``cancel=`` and poll
    :attr:`cancelled` while they wait. A scope is cancelled when
    :meth:`cancel` was called, its deadline passed, or its parent was
    cancelled.
    """

    def __init__(self, *, timeout: float | None = None, parent: CancelScope | None = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._cause: BaseException | str | None = None
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._parent = parent

    def cancel(self, cause: BaseException | str | None = None) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._cause = cause if cause is not None else "cancelled by caller"
            self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("deadline exceeded")
            return True
        if self._parent is not None and self._parent.cancelled:
            self.cancel(self._parent.cause)
            return True
        return False

    @property
    def cause(self) -> BaseException | str | None:
        return self._cause

    def child(self) -> CancelScope:
        return CancelScope(parent=self)

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when this scope has none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())


__all__ = ["CancelScope"]
