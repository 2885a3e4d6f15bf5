"""Unit tests for connection entries and the registry."""

import sqlite3
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock, patch

import pytest

from sqlbridge.config import BuiltinConfig, Config, ConnectionParams
from sqlbridge.driver.connection import (
    BASELINE_DRIVER_OPTIONS,
    ConnectionEntry,
    ConnectionRegistry,
    compute_fingerprint,
    get_default_registry,
    resolve_driver_options,
)
from sqlbridge.driver.transaction import TransactionTracker
from sqlbridge.exceptions import DatabaseError, ImproperConfigurationError

pytestmark = pytest.mark.xdist_group("driver")


def _sqlite_entry(**options: object) -> ConnectionEntry:
    return ConnectionEntry(ConnectionParams(dbms="sqlite", database=":memory:", options=options))


def test_fingerprint_of_builtin_config_is_empty() -> None:
    assert compute_fingerprint(BuiltinConfig({"db.dbms": "sqlite", "db.database": "x"})) == ""


def test_fingerprint_is_order_independent_and_ignores_other_properties() -> None:
    first = Config({"db.dbms": "pgsql", "db.host": "h", "app.name": "a"})
    second = Config({"db.host": "h", "db.dbms": "pgsql", "app.name": "b"})

    assert compute_fingerprint(first) == compute_fingerprint(second)
    assert compute_fingerprint(first) == '{"db.dbms":"pgsql","db.host":"h"}'


def test_fingerprint_differs_per_database() -> None:
    assert compute_fingerprint(Config({"db.database": "a"})) != compute_fingerprint(Config({"db.database": "b"}))


def test_get_or_create_calls_factory_once() -> None:
    registry = ConnectionRegistry()
    factory = Mock(side_effect=_sqlite_entry)

    first = registry.get_or_create("fp", factory)
    second = registry.get_or_create("fp", factory)

    assert first is second
    factory.assert_called_once()
    assert registry.get("fp") is first
    assert "fp" in registry
    assert len(registry) == 1


def test_put_and_get() -> None:
    registry = ConnectionRegistry()
    entry = _sqlite_entry()

    registry.put("x", entry)

    assert registry.get("x") is entry
    assert registry.get("y") is None


def test_connect_is_idempotent() -> None:
    registry = ConnectionRegistry()
    entry = _sqlite_entry()

    handle = registry.connect(entry)

    assert registry.connect(entry) is handle
    assert isinstance(handle.connection, sqlite3.Connection)
    registry.disconnect(entry)


def test_disconnect_clears_handle_and_reconnects() -> None:
    registry = ConnectionRegistry()
    tracker = TransactionTracker()
    entry = _sqlite_entry()
    handle = registry.connect(entry)
    tracker.begin(handle, True, handle.adapter.begin)

    registry.disconnect(entry, tracker)

    assert entry.handle is None
    assert tracker.depth(handle) == 0
    assert registry.connect(entry).id != handle.id
    registry.disconnect(entry)


def test_unknown_driver_option_is_rejected() -> None:
    entry = _sqlite_entry(bogus=True)

    with pytest.raises(ImproperConfigurationError, match="bogus"):
        ConnectionRegistry().connect(entry)
    assert entry.handle is None


def test_resolve_driver_options_drops_baseline_options() -> None:
    params = ConnectionParams(
        dbms="sqlite", database=":memory:", options={"stringify_fetches": False, "timeout": 3}
    )
    adapter = _sqlite_entry().adapter

    assert resolve_driver_options(params, adapter) == {"timeout": 3}


def test_entry_options_overlay_baseline() -> None:
    assert BASELINE_DRIVER_OPTIONS == {"stringify_fetches": True, "emulate_prepares": False}
    assert _sqlite_entry().option("stringify_fetches") is True
    assert _sqlite_entry(stringify_fetches=False).option("stringify_fetches") is False
    assert _sqlite_entry(emulate_prepares="1").option("emulate_prepares") is True
    assert _sqlite_entry(emulate_prepares="false").option("emulate_prepares") is False


def test_connect_failure_is_wrapped_and_not_cached() -> None:
    registry = ConnectionRegistry()
    entry = _sqlite_entry()
    error = sqlite3.OperationalError("unable to open database file")

    with patch.object(entry.adapter.module, "connect", side_effect=error):
        with pytest.raises(DatabaseError, match="Failed connecting to database") as exc_info:
            registry.connect(entry)

    assert exc_info.value.inner is error
    assert entry.handle is None
    assert registry.connect(entry) is entry.handle
    registry.disconnect(entry)


def test_default_registry_is_process_wide() -> None:
    assert get_default_registry() is get_default_registry()


def test_concurrent_get_or_create_builds_one_entry() -> None:
    registry = ConnectionRegistry()
    barrier = threading.Barrier(8)
    calls: list[int] = []

    def slow_factory() -> ConnectionEntry:
        calls.append(threading.get_ident())
        time.sleep(0.05)
        return _sqlite_entry()

    def worker() -> ConnectionEntry:
        barrier.wait()
        return registry.get_or_create("fp", slow_factory)

    with ThreadPoolExecutor(max_workers=8) as executor:
        entries = [future.result() for future in [executor.submit(worker) for _ in range(8)]]

    assert len(calls) == 1
    assert all(entry is entries[0] for entry in entries)
    assert len(registry) == 1
