"""SQLite adapter built on the standard library ``sqlite3`` module."""

import datetime
from collections.abc import Mapping
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlbridge.adapters.base import DriverAdapter

if TYPE_CHECKING:
    from sqlbridge.config import ConnectionParams

__all__ = ("SqliteAdapter",)


class SqliteAdapter(DriverAdapter):
    """Reference adapter for SQLite.

    Connections are opened with ``isolation_level=None`` so that statements
    outside an explicit transaction commit immediately.
    """

    __slots__ = ()

    driver_module = "sqlite3"
    connect_options = frozenset({"timeout", "detect_types", "check_same_thread", "cached_statements", "uri"})
    last_insert_id_sql = "SELECT last_insert_rowid()"
    type_coercion_map = {
        bool: int,
        Decimal: str,
        datetime.datetime: lambda v: v.isoformat(),
        datetime.date: lambda v: v.isoformat(),
        datetime.time: lambda v: v.isoformat(),
    }

    def build_connect_kwargs(self, params: "ConnectionParams", options: "Mapping[str, Any]") -> "dict[str, Any]":
        kwargs: dict[str, Any] = {"database": params.database, "isolation_level": None}
        kwargs.update(options)
        if str(params.database).startswith("file:"):
            kwargs.setdefault("uri", True)
        return kwargs

    def begin(self, connection: Any) -> None:
        connection.execute("BEGIN")

    def commit(self, connection: Any) -> None:
        connection.commit()

    def rollback(self, connection: Any) -> None:
        connection.rollback()
