"""MySQL adapter built on PyMySQL."""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlbridge.adapters.base import DriverAdapter

if TYPE_CHECKING:
    from sqlbridge.config import ConnectionParams

__all__ = ("MysqlAdapter",)

DEFAULT_PORT = 3306


class MysqlAdapter(DriverAdapter):
    __slots__ = ()

    driver_module = "pymysql"
    install_package = "mysql"
    connect_options = frozenset({
        "charset",
        "connect_timeout",
        "init_command",
        "read_timeout",
        "sql_mode",
        "ssl",
        "unix_socket",
        "write_timeout",
    })
    last_insert_id_sql = "SELECT LAST_INSERT_ID()"

    def build_connect_kwargs(self, params: "ConnectionParams", options: "Mapping[str, Any]") -> "dict[str, Any]":
        kwargs: dict[str, Any] = {
            "host": params.host,
            "port": params.port or DEFAULT_PORT,
            "user": params.username,
            "password": params.password or "",
            "database": params.database,
            "autocommit": True,
        }
        kwargs.update(options)
        return kwargs

    def begin(self, connection: Any) -> None:
        connection.begin()

    def commit(self, connection: Any) -> None:
        connection.commit()

    def rollback(self, connection: Any) -> None:
        connection.rollback()

    def quote_literal(self, value: str) -> str:
        return "'" + value.replace("\\", "\\\\").replace("'", "''") + "'"
