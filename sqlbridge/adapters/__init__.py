"""Native driver adapters, one per DB-API module."""

import threading
from typing import TYPE_CHECKING, Final

from sqlbridge.adapters.base import AutocommitToggleMixin, DriverAdapter
from sqlbridge.adapters.firebird import FirebirdAdapter
from sqlbridge.adapters.mssql import MssqlAdapter
from sqlbridge.adapters.mysql import MysqlAdapter
from sqlbridge.adapters.odbc import OdbcAdapter
from sqlbridge.adapters.oracle import OracleAdapter
from sqlbridge.adapters.postgres import PostgresAdapter
from sqlbridge.adapters.sqlite import SqliteAdapter
from sqlbridge.dialects import get_dialect
from sqlbridge.exceptions import ImproperConfigurationError

if TYPE_CHECKING:
    from sqlbridge.dialects import DialectSpec

__all__ = (
    "ADAPTER_TYPES",
    "AutocommitToggleMixin",
    "DriverAdapter",
    "FirebirdAdapter",
    "MssqlAdapter",
    "MysqlAdapter",
    "OdbcAdapter",
    "OracleAdapter",
    "PostgresAdapter",
    "SqliteAdapter",
    "get_adapter",
)

ADAPTER_TYPES: Final[dict[str, type[DriverAdapter]]] = {
    "firebird": FirebirdAdapter,
    "mssql": MssqlAdapter,
    "mysql": MysqlAdapter,
    "odbc": OdbcAdapter,
    "oracle": OracleAdapter,
    "postgres": PostgresAdapter,
    "sqlite": SqliteAdapter,
}

_instances: dict[str, DriverAdapter] = {}
_lock = threading.Lock()


def get_adapter(dialect: "str | DialectSpec") -> DriverAdapter:
    """Return the shared adapter for a dialect name, dialect spec or adapter key.

    Raises:
        ImproperConfigurationError: No adapter is registered under the key.
    """
    key = dialect if isinstance(dialect, str) and dialect in ADAPTER_TYPES else get_dialect(dialect).driver
    with _lock:
        adapter = _instances.get(key)
        if adapter is None:
            adapter_type = ADAPTER_TYPES.get(key)
            if adapter_type is None:
                msg = f"No driver adapter registered for {key!r}"
                raise ImproperConfigurationError(msg)
            adapter = _instances[key] = adapter_type()
    return adapter
