# pyright: reportAttributeAccessIssue=false
"""Single-table insert, update, upsert and delete helpers.

Statements are assembled as templates, so table and column names are
quoted by the connection's dialect and every value is bound as a
parameter whose kind is inferred from the value.
"""

import time
from collections.abc import Mapping
from typing import Any, Union

from mypy_extensions import trait

from sqlbridge.core.parameters import TypeCode, placeholder_for
from sqlbridge.exceptions import InvalidParameterError, ObjectDoesNotExistError, SQLBridgeError
from sqlbridge.utils.logging import get_logger
from sqlbridge.utils.type_guards import is_valid_column_name

__all__ = ("CrudMixin", "WhereClause")

logger = get_logger("driver.crud")

RECORD_ID: str = "RecordID"
CREATION_DATE: str = "CreationDate"

WhereClause = Union[int, Mapping[str, Any]]


def _normalize_where(where: Any) -> "Mapping[str, Any]":
    if isinstance(where, Mapping):
        return where
    return {RECORD_ID: where}


def _check_column(name: Any) -> str:
    if not is_valid_column_name(name):
        msg = f"Invalid column name: {name}"
        raise InvalidParameterError(msg)
    return name


def _assignments(values: "Mapping[str, Any]", separator: str) -> "tuple[str, list[Any]]":
    parts: list[str] = []
    args: list[Any] = []
    for column, value in values.items():
        parts.append(f"[{_check_column(column)}] = {placeholder_for(value)}")
        args.append(value)
    return separator.join(parts), args


@trait
class CrudMixin:
    """CRUD helpers for tables keyed by an integer ``RecordID`` column."""

    __slots__ = ()

    def insert(self, table: str, values: "Mapping[str, Any]") -> int:
        """Insert a row and return its generated ``RecordID``.

        ``CreationDate`` is set to the current Unix time unless ``values``
        supplies it.

        Raises:
            DatabaseError: The insert failed.
        """
        columns: list[str] = []
        placeholders: list[str] = []
        args: list[Any] = []
        if CREATION_DATE not in values:
            columns.append(CREATION_DATE)
            placeholders.append(TypeCode.INTEGER.placeholder)
            args.append(int(time.time()))
        for column, value in values.items():
            columns.append(column)
            placeholders.append(placeholder_for(value))
            args.append(value)
        sql = f"INSERT INTO [{table}] ([{'],['.join(columns)}]) VALUES ({','.join(placeholders)})"
        self.query(sql, *args).free()
        return self.last_insert_id()

    def update(self, table: str, values: "Mapping[str, Any]", where: WhereClause) -> None:
        """Update every row matching ``where``.

        Args:
            table: Table name
            values: New column values
            where: A ``RecordID`` or a mapping of column names to required values

        Raises:
            InvalidParameterError: A column name is not ASCII alphanumeric.
            ObjectDoesNotExistError: No row matches ``where``.
        """
        conditions, where_args = _assignments(_normalize_where(where), " AND ")
        if not self.fetch_value(f"SELECT COUNT(*){{i}} FROM [{table}] WHERE {conditions}", *where_args):
            msg = f"Failed updating {table}: no such record"
            raise ObjectDoesNotExistError(msg)
        assignments, set_args = _assignments(values, ", ")
        self.query(f"UPDATE [{table}] SET {assignments} WHERE {conditions}", *set_args, *where_args).free()

    def insert_or_update(
        self, table: str, values: "Mapping[str, Any]", where: WhereClause
    ) -> "Union[int, list[int]]":
        """Update the rows matching ``where``, or insert one if there are none.

        An inserted row receives the union of ``values`` and ``where``, with
        ``values`` taking precedence.

        Returns:
            The new ``RecordID`` after an insert, the ``RecordID`` of the single
            updated row, or the list of ``RecordID`` values when several rows
            were updated.
        """
        where = _normalize_where(where)
        conditions, where_args = _assignments(where, " AND ")
        record_ids = self.fetch_all(
            f"SELECT [{RECORD_ID}]{{i}} FROM [{table}] WHERE {conditions}", *where_args, column=0
        )
        if not record_ids:
            merged = dict(values)
            for column, value in where.items():
                merged.setdefault(column, value)
            return self.insert(table, merged)
        if values:
            assignments, set_args = _assignments(values, ", ")
            self.query(f"UPDATE [{table}] SET {assignments} WHERE {conditions}", *set_args, *where_args).free()
        return record_ids if len(record_ids) > 1 else record_ids[0]

    def delete(self, table: str, where: WhereClause, nothrow: bool = False) -> bool:
        """Delete every row matching ``where``.

        Args:
            table: Table name
            where: A ``RecordID`` or a mapping of column names to required values
            nothrow: Report failure by returning False instead of raising

        Returns:
            True on success.
        """
        try:
            conditions, args = _assignments(_normalize_where(where), " AND ")
            self.query(f"DELETE FROM [{table}] WHERE {conditions}", *args).free()
        except SQLBridgeError:
            if not nothrow:
                raise
            logger.debug("Delete from %s failed", table, exc_info=True)
            return False
        return True
