"""Common transport abstractions."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..errors import ExasolError


class TransportError(ExasolError):
    """Raised by channels for any network-level read or write failure."""

    code = "W-EXA-16"


@runtime_checkable
class Channel(Protocol):
    """One framed, duplex connection to a server.

    Frames are whole messages; ``binary`` selects a binary frame over a
    text frame. ``wait_readable`` returns True once a frame can be read
    without blocking for longer than the read timeout.
    """

    def send(self, payload: bytes, *, binary: bool = False) -> None: ...

    def wait_readable(self, timeout: float | None) -> bool: ...

    def recv(self) -> bytes: ...

    def close(self) -> None: ...


__all__ = ["Channel", "TransportError"]
