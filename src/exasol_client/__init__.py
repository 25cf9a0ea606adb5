"""Public surface for the Exasol Python client."""

from .cancel import CancelScope
from .client import Connection, connect
from .config import ConnectionConfig
from .dsn import format_dsn, parse_dsn
from .errors import (
    AutocommitEnabled,
    BadConnection,
    Cancelled,
    CertificateRejected,
    ClosedConnection,
    ConnectFailed,
    CouldNotAbort,
    ExasolError,
    FileNotFound,
    HandshakeFailed,
    InvalidArgType,
    InvalidConnection,
    InvalidConnectionString,
    InvalidHostRange,
    InvalidImportQuery,
    InvalidProxyConnection,
    InvalidValuesCount,
    MalformedResult,
    NoLastInsertId,
    NotConnected,
    ParseError,
    ProtocolViolation,
    SqlExecutionError,
)
from .result import ColumnInfo, ResultCursor, RowCount
from .statement import PreparedStatement
from .transaction import Transaction
from .version import __version__

__all__ = [
    "__version__",
    "AutocommitEnabled",
    "BadConnection",
    "CancelScope",
    "Cancelled",
    "CertificateRejected",
    "ClosedConnection",
    "ColumnInfo",
    "ConnectFailed",
    "Connection",
    "ConnectionConfig",
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
    "PreparedStatement",
    "ProtocolViolation",
    "ResultCursor",
    "RowCount",
    "SqlExecutionError",
    "Transaction",
    "connect",
    "format_dsn",
    "parse_dsn",
]
