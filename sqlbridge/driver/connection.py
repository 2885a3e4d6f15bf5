"""Connection entries and the process-wide connection registry.

A :class:`ConnectionEntry` pairs connection parameters with a lazily opened
native connection. Entries built from the project configuration are cached
in a :class:`ConnectionRegistry` under a fingerprint of that configuration,
so every :class:`~sqlbridge.base.Database` created from the same
configuration shares one native connection.
"""

import itertools
import logging
import threading
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Final, Optional

from sqlbridge._serialization import encode_json
from sqlbridge.adapters import get_adapter
from sqlbridge.config import DB_PREFIX, BuiltinConfig
from sqlbridge.exceptions import DatabaseError, ImproperConfigurationError
from sqlbridge.utils.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from sqlbridge.adapters.base import DriverAdapter
    from sqlbridge.config import ConnectionParams, ProjectConfig
    from sqlbridge.driver.transaction import TransactionTracker
    from sqlbridge.hooks import Hook

__all__ = (
    "BASELINE_DRIVER_OPTIONS",
    "ConnectionEntry",
    "ConnectionHandle",
    "ConnectionRegistry",
    "compute_fingerprint",
    "get_default_registry",
    "resolve_driver_options",
)

logger = get_logger("driver.connection")

BASELINE_DRIVER_OPTIONS: Final[Mapping[str, Any]] = {"stringify_fetches": True, "emulate_prepares": False}

_handle_ids = itertools.count(1)
_FALSE_STRINGS: Final = frozenset({"", "0", "false", "no", "off"})


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


class ConnectionHandle:
    """An open native connection.

    Attributes:
        id: Process-unique identifier, used to track transaction depth
        connection: Native DB-API connection
        adapter: Adapter of the driver that opened it
        last_row_id: ``cursor.lastrowid`` of the most recent statement
    """

    __slots__ = ("adapter", "connection", "id", "last_row_id")

    def __init__(self, connection: Any, adapter: "DriverAdapter") -> None:
        self.id = next(_handle_ids)
        self.connection = connection
        self.adapter = adapter
        self.last_row_id: Any = None

    def __repr__(self) -> str:
        return f"ConnectionHandle(id={self.id}, adapter={self.adapter!r})"


class ConnectionEntry:
    """Connection parameters, the native connection once opened, and its hooks."""

    __slots__ = ("handle", "hooks", "nestable", "params")

    def __init__(self, params: "ConnectionParams", nestable: bool = True) -> None:
        self.params = params
        self.handle: Optional[ConnectionHandle] = None
        self.nestable = nestable
        self.hooks: list[Hook] = []

    @property
    def adapter(self) -> "DriverAdapter":
        return get_adapter(self.params.dialect)

    @property
    def is_connected(self) -> bool:
        return self.handle is not None

    def option(self, name: str) -> bool:
        """Effective value of a baseline driver option."""
        return _as_bool(self.params.options.get(name, BASELINE_DRIVER_OPTIONS[name]))

    def __repr__(self) -> str:
        return f"ConnectionEntry(dbms={self.params.dbms!r}, connected={self.is_connected}, nestable={self.nestable})"


def resolve_driver_options(params: "ConnectionParams", adapter: "DriverAdapter") -> "dict[str, Any]":
    """Split baseline options from the options passed to the native driver.

    Raises:
        ImproperConfigurationError: An option is neither a baseline option nor
            supported by the driver.

    Returns:
        The options to pass to ``connect()``.
    """
    native: dict[str, Any] = {}
    for name, value in params.options.items():
        if name in BASELINE_DRIVER_OPTIONS:
            continue
        if name not in adapter.connect_options:
            msg = f"Unsupported driver option for {params.dbms}: {name}"
            raise ImproperConfigurationError(msg)
        native[name] = value
    return native


def compute_fingerprint(config: "ProjectConfig") -> str:
    """Cache key of the connection described by ``config``.

    The builtin configuration always maps to ``""``; any other configuration
    maps to the key-sorted JSON of its ``db.*`` properties.
    """
    if isinstance(config, BuiltinConfig):
        return ""
    properties = {name: config.get_property(name) for name in config.property_names() if name.startswith(DB_PREFIX)}
    return str(encode_json(properties))


class ConnectionRegistry:
    """Thread-safe map of configuration fingerprints to connection entries.

    Entries live as long as the registry; disconnecting an entry closes its
    native connection but keeps the entry.
    """

    __slots__ = ("_entries", "_lock")

    def __init__(self) -> None:
        self._entries: dict[str, ConnectionEntry] = {}
        self._lock = threading.RLock()

    def get(self, fingerprint: str) -> Optional[ConnectionEntry]:
        with self._lock:
            return self._entries.get(fingerprint)

    def put(self, fingerprint: str, entry: ConnectionEntry) -> None:
        with self._lock:
            self._entries[fingerprint] = entry

    def get_or_create(self, fingerprint: str, factory: "Callable[[], ConnectionEntry]") -> ConnectionEntry:
        """Return the entry cached under ``fingerprint``, creating it with ``factory`` if absent."""
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None:
                entry = factory()
                self._entries[fingerprint] = entry
            return entry

    def connect(self, entry: ConnectionEntry) -> ConnectionHandle:
        """Open the native connection of ``entry`` unless it is already open.

        Raises:
            ImproperConfigurationError: An unsupported driver option is configured.
            MissingDependencyError: The driver package is not installed.
            DatabaseError: The driver failed to connect; the entry stays unconnected.

        Returns:
            The connection handle.
        """
        with self._lock:
            if entry.handle is not None:
                return entry.handle
            params = entry.params
            adapter = entry.adapter
            options = resolve_driver_options(params, adapter)
            driver_errors = adapter.driver_errors
            try:
                connection = adapter.connect(params, options)
            except driver_errors as e:
                msg = "Failed connecting to database"
                raise DatabaseError(msg) from e
            entry.handle = ConnectionHandle(connection, adapter)
            log_with_context(
                logger,
                logging.INFO,
                "Connected to %s database %r",
                params.dialect.native_name,
                params.database,
                connection_id=entry.handle.id,
                dbms=params.dbms,
            )
            return entry.handle

    def disconnect(self, entry: ConnectionEntry, tracker: "Optional[TransactionTracker]" = None) -> None:
        """Close the native connection of ``entry``, if open.

        Raises:
            DatabaseError: The driver failed to close the connection.
        """
        with self._lock:
            handle = entry.handle
            if handle is None:
                return
            entry.handle = None
            if tracker is not None:
                tracker.forget(handle)
            try:
                handle.adapter.close(handle.connection)
            except handle.adapter.driver_errors as e:
                msg = "Failed closing database connection"
                raise DatabaseError(msg) from e
            logger.info("Disconnected connection %d", handle.id)

    def clear(self) -> None:
        """Forget all entries without closing their connections."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, fingerprint: str) -> bool:
        with self._lock:
            return fingerprint in self._entries


_default_registry: Optional[ConnectionRegistry] = None
_default_lock = threading.Lock()


def get_default_registry() -> ConnectionRegistry:
    """Return the process-lifetime connection registry."""
    global _default_registry
    if _default_registry is None:
        with _default_lock:
            if _default_registry is None:
                _default_registry = ConnectionRegistry()
    return _default_registry
