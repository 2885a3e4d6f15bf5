"""Firebird adapter built on firebird-driver."""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlbridge.adapters.base import DriverAdapter

if TYPE_CHECKING:
    from sqlbridge.config import ConnectionParams

__all__ = ("FirebirdAdapter",)


class FirebirdAdapter(DriverAdapter):
    """firebird-driver has no autocommit mode.

    Statements run outside an explicit transaction are committed with
    ``retaining=True`` right after execution so open cursors stay readable.
    """

    __slots__ = ()

    driver_module = "firebird.driver"
    install_package = "firebird"
    connect_options = frozenset({"charset", "no_db_triggers", "no_gc", "role", "session_time_zone"})
    native_prepare = True

    def build_connect_kwargs(self, params: "ConnectionParams", options: "Mapping[str, Any]") -> "dict[str, Any]":
        location = f"{params.host}/{params.port}" if params.port else params.host
        kwargs: dict[str, Any] = {
            "database": f"{location}:{params.database}",
            "user": params.username,
            "password": params.password,
        }
        kwargs.update(options)
        return kwargs

    def after_execute(self, connection: Any, in_transaction: bool) -> None:
        if not in_transaction and connection.main_transaction.is_active():
            connection.commit(retaining=True)

    def begin(self, connection: Any) -> None:
        if connection.main_transaction.is_active():
            connection.commit()
        connection.begin()

    def commit(self, connection: Any) -> None:
        connection.commit()

    def rollback(self, connection: Any) -> None:
        connection.rollback()

    def prepare_native(self, connection: Any, sql: str) -> None:
        cursor = connection.cursor()
        try:
            cursor.prepare(sql).free()
        finally:
            cursor.close()
