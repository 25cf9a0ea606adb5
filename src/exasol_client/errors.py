"""Custom exceptions raised by the Exasol Python client."""

from __future__ import annotations

from typing import Any


class ExasolError(Exception):
    """Base error for all client failures."""

    code = "E-EXA-0"

    def __init__(self, message: str, *, context: Any | None = None) -> None:
        super().__init__(f"{self.code}: {message}")
        self.message = message
        self.context = context


class ConnectFailed(ExasolError):
    """Raised when no candidate host accepted a connection."""

    code = "E-EXA-14"


class HandshakeFailed(ExasolError):
    """Raised when login is rejected or the transport fails during login."""

    code = "E-EXA-13"


class CertificateRejected(ExasolError):
    """Raised when the server certificate is missing, untrusted or does not match the pinned fingerprint."""

    code = "E-EXA-10"

    def __init__(
        self,
        reason: str,
        *,
        actual: str | None = None,
        expected: str | None = None,
        detail: str | None = None,
    ) -> None:
        if reason == "missing":
            message = "server did not return certificates"
        elif reason == "mismatch":
            message = (
                f"the server's certificate fingerprint '{actual}' does not match "
                f"the expected fingerprint '{expected}'"
            )
        elif reason == "validation":
            message = f"server certificate failed validation: {detail}"
        else:
            message = f"server certificate rejected: {reason}"
        super().__init__(message)
        self.reason = reason
        self.actual = actual
        self.expected = expected
        self.detail = detail


class BadConnection(ExasolError):
    """Raised when the session cannot be used; it must be discarded and recreated."""

    code = "E-EXA-1"


class ClosedConnection(BadConnection):
    code = "E-EXA-2"


class NotConnected(BadConnection):
    code = "E-EXA-29"


class SqlExecutionError(ExasolError):
    """Raised when the server reports a failed statement."""

    code = "E-EXA-11"

    def __init__(self, sql_code: str, text: str) -> None:
        super().__init__(f"execution failed with SQL error code '{sql_code}' and message '{text}'")
        self.sql_code = sql_code
        self.text = text


class ProtocolViolation(ExasolError):
    """Raised when a reply does not follow the protocol."""

    code = "E-EXA-19"

    def __init__(self, message: str, *, status: str | None = None, context: Any | None = None) -> None:
        super().__init__(message, context=context)
        self.status = status


class ParseError(ProtocolViolation):
    """Raised when a response payload cannot be decoded."""


class MalformedResult(ExasolError):
    code = "E-EXA-3"


class AutocommitEnabled(ExasolError):
    code = "E-EXA-4"


class InvalidValuesCount(ExasolError):
    code = "E-EXA-5"


class NoLastInsertId(ExasolError):
    code = "E-EXA-6"


class InvalidArgType(ExasolError):
    """Raised when a parameter cannot be converted to its column's type."""

    code = "E-EXA-30"

    def __init__(self, value: Any, data_type: str) -> None:
        super().__init__(f"cannot convert argument {value!r} of type {type(value).__name__} to {data_type} type")
        self.value = value
        self.data_type = data_type


class InvalidConnection(ExasolError):
    """Raised when a transaction is used after it was committed or rolled back."""

    code = "E-EXA-7"


class InvalidHostRange(ExasolError):
    code = "E-EXA-20"

    def __init__(self, host: str) -> None:
        super().__init__(f"invalid host range limits: '{host}'")
        self.host = host


class InvalidConnectionString(ExasolError):
    code = "E-EXA-21"


class InvalidProxyConnection(ExasolError):
    code = "E-EXA-26"


class InvalidImportQuery(ExasolError):
    code = "E-EXA-27"


class FileNotFound(ExasolError):
    code = "E-EXA-28"

    def __init__(self, path: str) -> None:
        super().__init__(f"file '{path}' not found")
        self.path = path


class Cancelled(ExasolError):
    """Raised when an outstanding exchange was cancelled by the caller."""

    code = "E-EXA-31"

    def __init__(self, cause: BaseException | str | None = None) -> None:
        super().__init__(f"operation cancelled: {cause or 'cancelled by caller'}")
        self.cause = cause


class CouldNotAbort(ExasolError):
    """Raised when the abort command after a cancellation could not be sent."""

    code = "E-EXA-12"

    def __init__(self, cause: BaseException | str | None = None) -> None:
        super().__init__(f"could not abort query: {cause}")
        self.cause = cause


__all__ = [
    "AutocommitEnabled",
    "BadConnection",
    "Cancelled",
    "CertificateRejected",
    "ClosedConnection",
    "ConnectFailed",
    "CouldNotAbort",
    "ExasolError",
    "FileNotFound",
    "HandshakeFailed",
    "InvalidArgType",
    "InvalidConnection",
    "InvalidConnectionString",
    "InvalidHostRange",
    "InvalidImportQuery",
    "InvalidProxyConnection",
    "InvalidValuesCount",
    "MalformedResult",
    "NoLastInsertId",
    "NotConnected",
    "ParseError",
    "ProtocolViolation",
    "SqlExecutionError",
]
