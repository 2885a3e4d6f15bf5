# pyright: reportAttributeAccessIssue=false
"""Fetch helpers that run a query and materialize part of its result."""

from typing import Any, Optional, Union

from mypy_extensions import trait

from sqlbridge.core.result import FetchMode
from sqlbridge.exceptions import InconsistentParametersError

__all__ = ("FetchMixin",)


def _resolve_fetch_mode(mode: Optional[FetchMode], column: "Optional[Union[int, str]]") -> FetchMode:
    if mode is None:
        if column is None or isinstance(column, int):
            return FetchMode.ORDERED
        return FetchMode.ASSOC
    if column is not None:
        if mode is FetchMode.OBJECT:
            msg = "The 'column' option cannot be combined with FetchMode.OBJECT"
            raise InconsistentParametersError(msg)
        if isinstance(column, int) != (mode is FetchMode.ORDERED):
            expected = "int" if mode is FetchMode.ORDERED else "str"
            msg = f"Invalid 'column' option: expected {expected}; found {column!r}"
            raise InconsistentParametersError(msg)
    return mode


def _select_column(row: Any, column: "Union[int, str]") -> Any:
    if isinstance(column, int):
        return row[column] if -len(row) <= column < len(row) else None
    return row.get(column)


@trait
class FetchMixin:
    __slots__ = ()

    def fetch_first_row(self, template: str, *args: Any, mode: FetchMode = FetchMode.ORDERED) -> Any:
        """Run a query and return its first row, or None when it returns no rows."""
        with self.query(template, *args) as result:
            return result.fetch_row(mode)

    def fetch_value(self, template: str, *args: Any) -> Any:
        """Run a query and return the first column of its first row, or None."""
        row = self.fetch_first_row(template, *args)
        return row[0] if row else None

    def fetch_first_array(self, template: str, *args: Any) -> "Optional[dict[str, Any]]":
        return self.fetch_first_row(template, *args, mode=FetchMode.ASSOC)

    def fetch_first_object(self, template: str, *args: Any) -> Any:
        return self.fetch_first_row(template, *args, mode=FetchMode.OBJECT)

    def fetch_all(
        self,
        template: str,
        *args: Any,
        mode: Optional[FetchMode] = None,
        column: "Optional[Union[int, str]]" = None,
    ) -> "list[Any]":
        """Run a query and return all rows.

        Args:
            template: SQL template
            *args: Placeholder values
            mode: Row representation; defaults to ORDERED, or ASSOC when
                ``column`` is a name
            column: Position or name of a single column to return in place of each row

        Raises:
            InconsistentParametersError: ``column`` does not match ``mode``.

        Returns:
            List of rows, or of column values when ``column`` is given.
        """
        resolved = _resolve_fetch_mode(mode, column)
        with self.query(template, *args) as result:
            rows = result.fetch_all(resolved)
        if column is None:
            return rows
        return [_select_column(row, column) for row in rows]
