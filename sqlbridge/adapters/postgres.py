"""PostgreSQL adapter built on psycopg 3."""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from sqlbridge.adapters.base import DriverAdapter

if TYPE_CHECKING:
    from sqlbridge.config import ConnectionParams

__all__ = ("PostgresAdapter",)


class PostgresAdapter(DriverAdapter):
    """psycopg connections run in autocommit mode; transactions are explicit ``BEGIN``/``COMMIT``."""

    __slots__ = ()

    driver_module = "psycopg"
    install_package = "psycopg"
    connect_options = frozenset({"application_name", "connect_timeout", "options", "sslmode", "sslrootcert"})
    last_insert_id_sql = "SELECT lastval()"

    def build_connect_kwargs(self, params: "ConnectionParams", options: "Mapping[str, Any]") -> "dict[str, Any]":
        kwargs: dict[str, Any] = {
            "host": params.host,
            "dbname": params.database,
            "user": params.username,
            "password": params.password,
            "autocommit": True,
        }
        if params.port is not None:
            kwargs["port"] = params.port
        kwargs.update(options)
        return {k: v for k, v in kwargs.items() if v is not None}
