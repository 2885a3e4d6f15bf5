"""Query results.

A :class:`QueryResult` wraps the native cursor of one executed statement and
converts rows as they are read, applying the column types declared in the
template.
"""

import contextlib
from collections.abc import Iterator, Sequence
from enum import IntEnum
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any, Optional

from mypy_extensions import mypyc_attr

from sqlbridge.core.type_conversion import convert_column
from sqlbridge.exceptions import wrap_database_errors

if TYPE_CHECKING:
    from sqlbridge.core.parameters import TypeCode

__all__ = ("FetchMode", "QueryResult")


class FetchMode(IntEnum):
    """Row representation.

    - ORDERED: tuple indexed by column position
    - ASSOC: dict keyed by column name
    - OBJECT: :class:`types.SimpleNamespace` with one attribute per column
    """

    ORDERED = 1
    ASSOC = 2
    OBJECT = 3


@mypyc_attr(allow_interpreted_subclasses=True)
class QueryResult:
    """Rows produced by an executed statement.

    Args:
        cursor: Native DB-API cursor the statement ran on.
        column_types: Declared kind of each result column.
        stringify: Stringify undeclared columns.
        driver_errors: Native exception classes to convert while fetching.
    """

    __slots__ = ("_closed", "_column_names", "_column_types", "_cursor", "_driver_errors", "_stringify", "sql")

    def __init__(
        self,
        cursor: Any,
        column_types: "Sequence[Optional[TypeCode]]" = (),
        stringify: bool = False,
        driver_errors: "tuple[type[BaseException], ...]" = (Exception,),
        sql: str = "",
    ) -> None:
        self._cursor = cursor
        self._column_types = tuple(column_types)
        self._stringify = stringify
        self._driver_errors = driver_errors
        self._closed = False
        self.sql = sql
        description = getattr(cursor, "description", None)
        self._column_names: tuple[str, ...] = tuple(col[0] for col in description) if description else ()

    @property
    def column_names(self) -> "tuple[str, ...]":
        return self._column_names

    @property
    def returns_rows(self) -> bool:
        """Whether the statement produced a result set."""
        return bool(self._column_names)

    @property
    def rows_affected(self) -> int:
        """Rows changed by an INSERT/UPDATE/DELETE, or 0 when unknown."""
        rowcount = getattr(self._cursor, "rowcount", None)
        if isinstance(rowcount, int) and rowcount > 0:
            return rowcount
        return 0

    @property
    def last_row_id(self) -> Any:
        return getattr(self._cursor, "lastrowid", None)

    def _convert(self, raw: "Sequence[Any]") -> "tuple[Any, ...]":
        types = self._column_types
        width = len(types)
        return tuple(
            convert_column(value, types[i] if i < width else None, self._stringify) for i, value in enumerate(raw)
        )

    def _shape(self, row: "tuple[Any, ...]", mode: FetchMode) -> Any:
        if mode is FetchMode.ORDERED:
            return row
        mapping = dict(zip(self._column_names, row))
        if mode is FetchMode.ASSOC:
            return mapping
        return SimpleNamespace(**mapping)

    def fetch_row(self, mode: FetchMode = FetchMode.ORDERED) -> Any:
        """Fetch the next row, or None when the result is exhausted.

        Raises:
            DatabaseError: The driver failed while fetching.
        """
        if self._closed or not self.returns_rows:
            return None
        with wrap_database_errors("Failed fetching row", self._driver_errors):
            raw = self._cursor.fetchone()
        if raw is None:
            return None
        return self._shape(self._convert(raw), mode)

    def fetch_all(self, mode: FetchMode = FetchMode.ORDERED) -> "list[Any]":
        """Fetch all remaining rows.

        Raises:
            DatabaseError: The driver failed while fetching.
        """
        if self._closed or not self.returns_rows:
            return []
        with wrap_database_errors("Failed fetching rows", self._driver_errors):
            raw_rows = self._cursor.fetchall()
        return [self._shape(self._convert(raw), mode) for raw in raw_rows]

    def free(self) -> None:
        """Release the native cursor."""
        if self._closed:
            return
        self._closed = True
        with contextlib.suppress(Exception):
            self._cursor.close()

    def __iter__(self) -> "Iterator[tuple[Any, ...]]":
        while True:
            row = self.fetch_row()
            if row is None:
                return
            yield row

    def __enter__(self) -> "QueryResult":
        return self

    def __exit__(self, *_: Any) -> None:
        self.free()

    def __repr__(self) -> str:
        return f"QueryResult(columns={list(self._column_names)!r}, closed={self._closed})"
