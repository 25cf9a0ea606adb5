"""Result handling: paginated row cursors and affected-row counts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

from . import commands
from .converter import convert_result_value
from .errors import MalformedResult, NoLastInsertId
from .logger import BoundLogger, create_logger
from .session import Session, SessionRef
from .types import Column, ResultSetData, SqlQueriesResponse

_RAW_BYTES_TYPES = frozenset(
    {
        "VARCHAR",
        "CHAR",
        "GEOMETRY",
        "HASHTYPE",
        "INTERVAL DAY TO SECOND",
        "INTERVAL YEAR TO MONTH",
    }
)


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    type_name: str
    precision: int | None
    scale: int | None
    length: int | None
    scan_type: type
    nullable: bool = True

    @classmethod
    def from_column(cls, column: Column) -> ColumnInfo:
        data_type = column.data_type
        return cls(
            name=column.name,
            type_name=data_type.type,
            precision=data_type.precision,
            scale=data_type.scale,
            length=data_type.size,
            scan_type=scan_type_for(data_type.type),
        )

    @property
    def precision_scale(self) -> tuple[int, int] | None:
        if self.precision is None or self.scale is None:
            return None
        return self.precision, self.scale


def scan_type_for(type_name: str) -> type:
    """Local representation a caller should read values of this type into."""
    if type_name in _RAW_BYTES_TYPES:
        return bytes
    if type_name == "BOOLEAN":
        return bool
    if type_name == "DOUBLE":
        return float
    return object


class ResultCursor:
    """Iterates a result set, fetching further pages from the server on demand."""

    def __init__(
        self,
        session: Session,
        data: ResultSetData,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self._session = SessionRef(session)
        self._fetch_bytes = session.config.fetch_size_bytes
        self._logger = (logger or create_logger()).child("cursor")
        self._columns = list(data.columns)
        self._info = [ColumnInfo.from_column(column) for column in self._columns]
        self.total_rows = data.num_rows
        self.result_set_handle = data.result_set_handle
        self._page = data.data
        self._page_pointer = 0
        self.row_pointer = 0
        self.fetched_rows = data.num_rows_in_message
        self.fetch_count = 0
        self._closed = False

    @classmethod
    def from_response(cls, session: Session, response: SqlQueriesResponse, **kwargs: Any) -> ResultCursor:
        return cls(session, response.first_result_set(), **kwargs)

    @property
    def columns(self) -> list[str]:
        return [column.name for column in self._columns]

    @property
    def column_info(self) -> list[ColumnInfo]:
        return list(self._info)

    def next_into(self, destination: list[Any]) -> bool:
        """Fill ``destination`` positionally with the next row; False at end of data."""
        if self.total_rows == 0 or self.row_pointer >= self.total_rows:
            return False
        if self.fetched_rows < self.total_rows and self.row_pointer == self.fetched_rows:
            self._fetch_next_page()
        for index in range(len(destination)):
            destination[index] = self._value(index)
        self._page_pointer += 1
        self.row_pointer += 1
        return True

    def __iter__(self) -> Iterator[tuple[Any, ...]]:
        return self

    def __next__(self) -> tuple[Any, ...]:
        row: list[Any] = [None] * len(self._columns)
        if not self.next_into(row):
            raise StopIteration
        return tuple(row)

    def fetchone(self) -> tuple[Any, ...] | None:
        return next(self, None)

    def fetchall(self) -> list[tuple[Any, ...]]:
        return list(self)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.result_set_handle == 0:
            return
        self._session.get().send(commands.close_result_set(self.result_set_handle))

    def __enter__(self) -> ResultCursor:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _value(self, column_index: int) -> Any:
        try:
            value = self._page[column_index][self._page_pointer]
        except IndexError as exc:
            raise MalformedResult(
                f"row {self.row_pointer} column {column_index} missing from result page"
            ) from exc
        return convert_result_value(value, self._columns[column_index].data_type)

    def _fetch_next_page(self) -> None:
        session = self._session.get()
        page = session.send(
            commands.fetch(self.result_set_handle, self.row_pointer, self._fetch_bytes),
            ResultSetData,
        )
        if page.num_rows == 0:
            raise MalformedResult(
                f"fetch at row {self.row_pointer} of result set {self.result_set_handle} returned no rows"
            )
        self._logger.trace(
            "Fetched %d rows from result set %d with fetch size %d bytes at start pos %d",
            page.num_rows,
            self.result_set_handle,
            self._fetch_bytes,
            self.row_pointer,
        )
        # Previous pages are dropped; callers keep rows they still need
        self._page = page.data
        self._page_pointer = 0
        self.fetched_rows += page.num_rows
        self.fetch_count += 1


@dataclass(frozen=True)
class RowCount:
    rows_affected: int

    @classmethod
    def from_response(cls, response: SqlQueriesResponse) -> RowCount:
        return cls(rows_affected=response.first_row_count())

    @property
    def last_insert_id(self) -> int:
        raise NoLastInsertId("no LastInsertId available")


__all__ = ["ColumnInfo", "ResultCursor", "RowCount", "scan_type_for"]
