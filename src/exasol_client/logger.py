"""Injectable logging wrapper used by every client component.

Nothing is logged unless the caller hands a logger to ``connect()``; the
default sink drops every record and no handler is installed globally.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Protocol

LogLevel = Literal["trace", "debug", "info", "warn", "error"]

TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

_LEVELS: dict[LogLevel, tuple[int, int]] = {
    # name: (priority, stdlib level)
    "trace": (0, TRACE_LEVEL),
    "debug": (1, logging.DEBUG),
    "info": (2, logging.INFO),
    "warn": (3, logging.WARNING),
    "error": (4, logging.ERROR),
}


class LoggerProtocol(Protocol):
    def trace(self, msg: str, *args: Any) -> None: ...

    def debug(self, msg: str, *args: Any) -> None: ...

    def info(self, msg: str, *args: Any) -> None: ...

    def warn(self, msg: str, *args: Any) -> None: ...

    def error(self, msg: str, *args: Any) -> None: ...


class NullLogger:
    """Sink that discards every record."""

    def log(self, level: int, msg: str, *args: Any, **kwargs: Any) -> None:
        return None


class BoundLogger:
    """Adapts a logging.Logger (or any object with level methods) to the client's levels."""

    def __init__(self, logger: Any | None = None, *, level: LogLevel = "info") -> None:
        self._target = logger if logger is not None else NullLogger()
        self._threshold = _LEVELS[level][0]
        self._level = level

    def trace(self, msg: str, *args: Any) -> None:
        self._emit("trace", msg, args)

    def debug(self, msg: str, *args: Any) -> None:
        self._emit("debug", msg, args)

    def info(self, msg: str, *args: Any) -> None:
        self._emit("info", msg, args)

    def warn(self, msg: str, *args: Any) -> None:
        self._emit("warn", msg, args)

    def error(self, msg: str, *args: Any) -> None:
        self._emit("error", msg, args)

    def child(self, name: str) -> "BoundLogger":
        """Per-component logger; stdlib loggers get a dotted child name."""
        target = self._target
        if isinstance(target, logging.Logger):
            target = target.getChild(name)
        return BoundLogger(target, level=self._level)

    def _emit(self, name: LogLevel, msg: str, args: tuple[Any, ...]) -> None:
        priority, stdlib_level = _LEVELS[name]
        if priority < self._threshold:
            return
        try:
            if hasattr(self._target, "log"):
                self._target.log(stdlib_level, msg, *args)
                return
            method = getattr(self._target, name, None)
            if method is not None:
                method(msg, *args)
        except Exception:
            # Logging failures never reach client code
            pass


def create_logger(*, logger: Any | None = None, level: LogLevel = "info") -> BoundLogger:
    if isinstance(logger, BoundLogger):
        return logger
    return BoundLogger(logger, level=level)


__all__ = ["BoundLogger", "LogLevel", "LoggerProtocol", "NullLogger", "TRACE_LEVEL", "create_logger"]
