"""Oracle adapter built on python-oracledb."""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlbridge.adapters.base import AutocommitToggleMixin, DriverAdapter

if TYPE_CHECKING:
    from sqlbridge.config import ConnectionParams

__all__ = ("OracleAdapter",)

DEFAULT_PORT = 1521


class OracleAdapter(AutocommitToggleMixin, DriverAdapter):
    """The database name is used as the service name."""

    __slots__ = ()

    driver_module = "oracledb"
    install_package = "oracledb"
    connect_options = frozenset({"config_dir", "expire_time", "stmtcachesize", "tcp_connect_timeout"})
    native_prepare = True

    def build_connect_kwargs(self, params: "ConnectionParams", options: "Mapping[str, Any]") -> "dict[str, Any]":
        kwargs: dict[str, Any] = {
            "user": params.username,
            "password": params.password,
            "dsn": self.module.makedsn(params.host, params.port or DEFAULT_PORT, service_name=params.database),
        }
        kwargs.update(options)
        return kwargs

    def connect(self, params: "ConnectionParams", options: "Mapping[str, Any]") -> Any:
        connection = super().connect(params, options)
        connection.autocommit = True
        return connection

    def prepare_native(self, connection: Any, sql: str) -> None:
        cursor = connection.cursor()
        try:
            cursor.parse(sql)
        finally:
            cursor.close()
