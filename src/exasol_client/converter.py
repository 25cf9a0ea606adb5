"""Conversion of bound parameters and result values to and from the wire."""

from __future__ import annotations

import datetime
import decimal
import math
import numbers
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .errors import InvalidArgType, InvalidValuesCount
from .types import Column, ColumnType

TIMESTAMP_TYPES = ("TIMESTAMP", "TIMESTAMP WITH LOCAL TIME ZONE")


def convert_parameter(value: Any, column_type: ColumnType) -> Any:
    """Render ``value`` the way the server expects it for ``column_type``."""
    data_type = column_type.type
    if data_type == "DOUBLE":
        if isinstance(value, bool) or not isinstance(value, (numbers.Real, decimal.Decimal)):
            raise InvalidArgType(value, data_type)
        return double_literal(value)
    if data_type in TIMESTAMP_TYPES:
        if isinstance(value, str):
            return value
        if isinstance(value, datetime.datetime):
            return timestamp_literal(value)
        raise InvalidArgType(value, data_type)
    if data_type == "DATE":
        if isinstance(value, str):
            return value
        if isinstance(value, datetime.date):
            return date_literal(value)
        raise InvalidArgType(value, data_type)
    if data_type == "BOOLEAN":
        if isinstance(value, bool):
            return value
        raise InvalidArgType(value, data_type)
    return value


def double_literal(value: numbers.Real | decimal.Decimal) -> decimal.Decimal:
    """Fixed six-digit fraction, emitted as a bare JSON number: 123 -> 123.000000."""
    if isinstance(value, decimal.Decimal):
        finite = value.is_finite()
    else:
        try:
            value = float(value)
        except OverflowError as exc:
            raise InvalidArgType(value, "DOUBLE") from exc
        finite = math.isfinite(value)
    if not finite:
        # NaN and Infinity have no JSON number form
        raise InvalidArgType(value, "DOUBLE")
    return decimal.Decimal(format(value, ".6f"))


def timestamp_literal(value: datetime.datetime) -> str:
    # Wall-clock fields as given; any tzinfo is ignored
    return f"{date_literal(value)} {value.hour:02d}:{value.minute:02d}:{value.second:02d}.{value.microsecond:06d}"


def date_literal(value: datetime.date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def convert_result_value(value: Any, column_type: ColumnType) -> Any:
    if column_type.type == "DECIMAL" and column_type.scale == 0 and isinstance(value, float):
        return int(value)
    return value


@dataclass(frozen=True)
class ParameterBatch:
    """Values for N parameter columns, laid out column-major for the wire.

    The flat ``values`` sequence holds whole rows back to back, so column
    ``i`` receives the values at positions ``i, i+N, i+2N, ...``.
    """

    columns: tuple[Column, ...]
    data: tuple[tuple[Any, ...], ...]
    num_rows: int

    @classmethod
    def build(cls, columns: Sequence[Column], values: Sequence[Any]) -> ParameterBatch:
        if isinstance(values, Mapping):
            raise InvalidArgType(values, "named parameters")
        width = len(columns)
        if width == 0:
            if values:
                raise InvalidValuesCount("invalid value count for prepared statement")
            return cls(columns=(), data=(), num_rows=0)
        if len(values) % width != 0:
            raise InvalidValuesCount(
                f"invalid value count for prepared statement: {len(values)} values for {width} columns"
            )
        data = tuple(
            tuple(convert_parameter(value, column.data_type) for value in values[index::width])
            for index, column in enumerate(columns)
        )
        return cls(columns=tuple(columns), data=data, num_rows=len(values) // width)

    def wire_data(self) -> list[list[Any]]:
        return [list(column) for column in self.data]


__all__ = [
    "ParameterBatch",
    "TIMESTAMP_TYPES",
    "convert_parameter",
    "convert_result_value",
    "date_literal",
    "double_literal",
    "timestamp_literal",
]
