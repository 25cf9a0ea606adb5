"""Typed views over the JSON payloads the server sends back."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, TypeVar

from .errors import MalformedResult, ParseError

T = TypeVar("T", bound="Decodable")


class Decodable(Protocol):
    @classmethod
    def from_dict(cls: type[T], data: Mapping[str, Any]) -> T: ...


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ParseError(f"expected a JSON object for {what}, got {type(data).__name__}")
    return data


@dataclass
class ColumnType:
    type: str
    precision: int | None = None
    scale: int | None = None
    size: int | None = None
    character_set: str | None = None
    with_local_time_zone: bool | None = None
    fraction: int | None = None
    srid: int | None = None

    _WIRE_NAMES = (
        ("precision", "precision"),
        ("scale", "scale"),
        ("size", "size"),
        ("character_set", "characterSet"),
        ("with_local_time_zone", "withLocalTimeZone"),
        ("fraction", "fraction"),
        ("srid", "srid"),
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ColumnType:
        data = _require_mapping(data, "column type")
        kwargs = {attr: data.get(wire) for attr, wire in cls._WIRE_NAMES}
        return cls(type=str(data.get("type", "")), **kwargs)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type}
        for attr, wire in self._WIRE_NAMES:
            value = getattr(self, attr)
            if value is not None:
                payload[wire] = value
        return payload


@dataclass
class Column:
    name: str
    data_type: ColumnType

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Column:
        data = _require_mapping(data, "column")
        return cls(name=str(data.get("name", "")), data_type=ColumnType.from_dict(data.get("dataType") or {}))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "dataType": self.data_type.to_dict()}


@dataclass
class ResultSetData:
    """One page of a result set; ``data`` is column-major."""

    result_set_handle: int = 0
    num_columns: int = 0
    num_rows: int = 0
    num_rows_in_message: int = 0
    columns: list[Column] = field(default_factory=list)
    data: list[list[Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ResultSetData:
        data = _require_mapping(data, "result set")
        return cls(
            result_set_handle=int(data.get("resultSetHandle") or 0),
            num_columns=int(data.get("numColumns") or 0),
            num_rows=int(data.get("numRows") or 0),
            num_rows_in_message=int(data.get("numRowsInMessage") or 0),
            columns=[Column.from_dict(column) for column in data.get("columns") or []],
            data=[list(values) for values in data.get("data") or []],
        )


@dataclass
class SqlQueriesResponse:
    num_results: int
    results: list[Mapping[str, Any]]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SqlQueriesResponse:
        data = _require_mapping(data, "execution result")
        results = data.get("results") or []
        return cls(num_results=int(data.get("numResults") or 0), results=list(results))

    def first(self) -> Mapping[str, Any]:
        if self.num_results == 0 or not self.results:
            raise MalformedResult("malformed result")
        return _require_mapping(self.results[0], "result")

    def first_result_set(self) -> ResultSetData:
        result = self.first()
        if result.get("resultType") != "resultSet":
            return ResultSetData()
        return ResultSetData.from_dict(result.get("resultSet") or {})

    def first_row_count(self) -> int:
        result = self.first()
        if result.get("resultType") == "resultSet":
            return int((result.get("resultSet") or {}).get("numRows") or 0)
        return int(result.get("rowCount") or 0)


@dataclass
class PreparedStatementResponse:
    statement_handle: int
    parameter_columns: list[Column]
    num_parameter_columns: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PreparedStatementResponse:
        data = _require_mapping(data, "prepared statement")
        parameters = data.get("parameterData") or {}
        columns = [Column.from_dict(column) for column in parameters.get("columns") or []]
        return cls(
            statement_handle=int(data.get("statementHandle") or 0),
            parameter_columns=columns,
            num_parameter_columns=int(parameters.get("numColumns") or len(columns)),
        )


@dataclass
class PublicKeyResponse:
    modulus: str
    exponent: str
    pem: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PublicKeyResponse:
        data = _require_mapping(data, "public key")
        return cls(
            modulus=str(data.get("publicKeyModulus") or ""),
            exponent=str(data.get("publicKeyExponent") or ""),
            pem=str(data.get("publicKeyPem") or ""),
        )


@dataclass
class AuthResponse:
    session_id: int = 0
    protocol_version: int = 0
    release_version: str = ""
    database_name: str = ""
    product_name: str = ""
    max_data_message_size: int = 0
    time_zone: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuthResponse:
        data = _require_mapping(data, "login")
        return cls(
            session_id=int(data.get("sessionId") or 0),
            protocol_version=int(data.get("protocolVersion") or 0),
            release_version=str(data.get("releaseVersion") or ""),
            database_name=str(data.get("databaseName") or ""),
            product_name=str(data.get("productName") or ""),
            max_data_message_size=int(data.get("maxDataMessageSize") or 0),
            time_zone=str(data.get("timeZone") or ""),
        )


__all__ = [
    "AuthResponse",
    "Column",
    "ColumnType",
    "Decodable",
    "PreparedStatementResponse",
    "PublicKeyResponse",
    "ResultSetData",
    "SqlQueriesResponse",
]
