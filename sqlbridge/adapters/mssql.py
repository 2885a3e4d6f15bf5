"""Microsoft SQL Server adapter built on pymssql."""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlbridge.adapters.base import DriverAdapter

if TYPE_CHECKING:
    from sqlbridge.config import ConnectionParams

__all__ = ("MssqlAdapter",)

DEFAULT_PORT = 1433


class MssqlAdapter(DriverAdapter):
    __slots__ = ()

    driver_module = "pymssql"
    install_package = "mssql"
    connect_options = frozenset({"appname", "charset", "login_timeout", "tds_version", "timeout"})
    begin_sql = "BEGIN TRANSACTION"
    commit_sql = "COMMIT TRANSACTION"
    rollback_sql = "ROLLBACK TRANSACTION"
    last_insert_id_sql = "SELECT CAST(@@IDENTITY AS BIGINT)"

    def build_connect_kwargs(self, params: "ConnectionParams", options: "Mapping[str, Any]") -> "dict[str, Any]":
        kwargs: dict[str, Any] = {
            "server": params.host,
            "port": str(params.port or DEFAULT_PORT),
            "user": params.username,
            "password": params.password,
            "database": params.database,
            "autocommit": True,
        }
        kwargs.update(options)
        return kwargs
