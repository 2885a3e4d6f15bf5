"""End-to-end tests of the Database façade against in-memory SQLite."""

import sqlite3

import pytest

from sqlbridge.base import Database
from sqlbridge.config import Config, ConnectionParams, set_current_config
from sqlbridge.core.result import QueryResult
from sqlbridge.core.statement import PreparedStatement
from sqlbridge.driver.connection import ConnectionRegistry
from sqlbridge.driver.transaction import TransactionTracker
from sqlbridge.exceptions import (
    DatabaseError,
    ImproperConfigurationError,
    InconsistentParametersError,
    InvalidParameterError,
    MissingParameterError,
    StateError,
    TemplateSyntaxError,
)
from sqlbridge.hooks import Hook

SQLITE_CONFIG = {"db.dbms": "sqlite", "db.database": ":memory:"}


# -- construction --
def test_params_and_dbms_are_incompatible() -> None:
    params = ConnectionParams(dbms="sqlite", database=":memory:")

    with pytest.raises(InconsistentParametersError):
        Database(params, dbms="sqlite")


def test_use_cache_rejected_with_explicit_params() -> None:
    with pytest.raises(InvalidParameterError):
        Database(dbms="sqlite", database=":memory:", use_cache=True)
    with pytest.raises(InvalidParameterError):
        Database(ConnectionParams(dbms="sqlite", database=":memory:"), use_cache=False)


def test_connection_fields_require_dbms() -> None:
    with pytest.raises(InvalidParameterError):
        Database(database=":memory:")


def test_unsupported_dialect_fails_before_connecting() -> None:
    with pytest.raises(ImproperConfigurationError, match="Unsupported DBMS"):
        Database(dbms="db2", database="x")


def test_params_from_mapping() -> None:
    db = Database({"dbms": "sqlite", "database": ":memory:"})
    assert db.params() == ConnectionParams(dbms="sqlite", database=":memory:")
    assert db.dialect.name == "sqlite"


def test_params_mapping_ignores_none_values() -> None:
    db = Database({"dbms": "sqlite", "database": ":memory:", "host": None, "options": None})
    assert db.params() == ConnectionParams(dbms="sqlite", database=":memory:")


def test_params_mapping_rejects_unknown_keys() -> None:
    with pytest.raises(InvalidParameterError, match="Unsupported option: bogus"):
        Database({"dbms": "sqlite", "database": ":memory:", "bogus": 1})


def test_params_mapping_requires_dbms() -> None:
    with pytest.raises(ImproperConfigurationError, match="dbms"):
        Database({"database": ":memory:"})


def test_configured_instances_share_cached_connection(registry: ConnectionRegistry) -> None:
    set_current_config(Config(SQLITE_CONFIG))

    first = Database(registry=registry)
    second = Database(registry=registry)
    uncached = Database(use_cache=False, registry=registry)

    assert first.connection() is second.connection()
    assert uncached.connection() is not first.connection()
    assert len(registry) == 1
    first.disconnect()
    uncached.disconnect()


def test_explicit_instances_do_not_share_connections(registry: ConnectionRegistry) -> None:
    first = Database(dbms="sqlite", database=":memory:", registry=registry)
    second = Database(dbms="sqlite", database=":memory:", registry=registry)

    assert first.connection() is not second.connection()
    assert len(registry) == 0
    first.disconnect()
    second.disconnect()


def test_non_nestable_instance_rejects_nested_transactions() -> None:
    set_current_config(Config(SQLITE_CONFIG))
    db = Database.non_nestable_instance()

    assert Database.non_nestable_instance() is db
    assert not db.nestable
    db.begin_transaction()
    with pytest.raises(StateError):
        db.begin_transaction()
    assert db.transaction_depth == 1
    db.rollback()
    db.disconnect()


# -- queries --
def test_query_with_typed_columns(sqlite_db: Database) -> None:
    result = sqlite_db.query("SELECT %i + 1 AS [n]{i}, %s AS [s], %d AS [price]{d}", 1, "x", "10.50")

    assert isinstance(result, QueryResult)
    assert result.column_names == ("n", "s", "price")
    row = result.fetch_row()
    assert row[0] == 2
    assert row[1] == "x"
    assert str(row[2]) == "10.50"


def test_undeclared_columns_are_stringified(sqlite_db: Database) -> None:
    assert sqlite_db.fetch_value("SELECT 42") == "42"
    assert sqlite_db.fetch_value("SELECT 42{i}") == 42


def test_stringify_can_be_disabled(registry: ConnectionRegistry) -> None:
    db = Database(dbms="sqlite", database=":memory:", options={"stringify_fetches": False}, registry=registry)

    assert db.fetch_value("SELECT 42") == 42
    db.disconnect()


def test_parameter_count_mismatch(sqlite_db: Database) -> None:
    with pytest.raises(MissingParameterError):
        sqlite_db.query("SELECT %i, %i", 1)


def test_template_error_raised_before_execution(sqlite_db: Database) -> None:
    with pytest.raises(TemplateSyntaxError):
        sqlite_db.query("SELECT 'oops")


def test_overflowing_integer_column_is_database_error(sqlite_db: Database) -> None:
    with pytest.raises(DatabaseError, match="Cannot convert column value"):
        sqlite_db.fetch_value("SELECT 9e999{i}")


def test_driver_failure_is_database_error(sqlite_db: Database) -> None:
    with pytest.raises(DatabaseError, match="Failed executing query") as exc_info:
        sqlite_db.query("SELECT * FROM [Missing]")

    assert isinstance(exc_info.value.inner, sqlite3.OperationalError)


def test_unknown_driver_option_fails_on_connect(registry: ConnectionRegistry) -> None:
    db = Database(dbms="sqlite", database=":memory:", options={"persistent": True}, registry=registry)

    with pytest.raises(ImproperConfigurationError):
        db.query("SELECT 1")


# -- prepared statements --
def test_prepare_and_execute_repeatedly(sqlite_db: Database) -> None:
    statement = sqlite_db.prepare("SELECT (%i * 2){i}")

    assert isinstance(statement, PreparedStatement)
    assert statement.parameter_count == 1
    assert statement.execute(2).fetch_row() == (4,)
    assert statement.execute(5).fetch_row() == (10,)


def test_prepare_reports_malformed_sql_at_prepare_time(sqlite_db: Database) -> None:
    with pytest.raises(DatabaseError, match="Failed preparing statement"):
        sqlite_db.prepare("SELECT (1")


def test_emulated_prepares_defer_errors_to_execution(registry: ConnectionRegistry) -> None:
    db = Database(dbms="sqlite", database=":memory:", options={"emulate_prepares": True}, registry=registry)

    statement = db.prepare("SELECT (1")
    with pytest.raises(DatabaseError, match="Failed executing query"):
        statement.execute()
    db.disconnect()


# -- hooks --
def test_hooks_run_around_each_query(sqlite_db: Database) -> None:
    calls: list[tuple[str, Hook, str]] = []
    hook = sqlite_db.register_hook(
        pre_query=lambda h, sql: calls.append(("pre", h, sql)),
        post_query=lambda h, sql: calls.append(("post", h, sql)),
    )

    sqlite_db.query("SELECT [x] FROM (SELECT 1 AS x)").free()

    assert calls == [("pre", hook, 'SELECT "x" FROM (SELECT 1 AS x)'), ("post", hook, 'SELECT "x" FROM (SELECT 1 AS x)')]

    sqlite_db.unregister_hook(hook)
    sqlite_db.query("SELECT 1").free()
    assert len(calls) == 2


def test_post_query_hook_skipped_on_failure(sqlite_db: Database) -> None:
    calls: list[str] = []
    sqlite_db.register_hook(pre_query=lambda h, sql: calls.append("pre"), post_query=lambda h, sql: calls.append("post"))

    with pytest.raises(DatabaseError):
        sqlite_db.query("SELECT * FROM [Missing]")

    assert calls == ["pre"]


def test_unregister_unknown_hook(sqlite_db: Database) -> None:
    with pytest.raises(InvalidParameterError, match="Unknown hook"):
        sqlite_db.unregister_hook(Hook())


# -- transactions --
def test_nested_transaction_commits_once(record_db: Database) -> None:
    record_db.begin_transaction()
    record_db.begin_transaction()
    record_db.insert("Record", {"Name": "a"})
    record_db.commit()
    assert record_db.transaction_depth == 1
    record_db.commit()

    assert record_db.transaction_depth == 0
    assert record_db.fetch_value("SELECT COUNT(*){i} FROM [Record]") == 1


def test_inner_rollback_discards_outer_work(record_db: Database) -> None:
    record_db.begin_transaction()
    record_db.insert("Record", {"Name": "a"})
    record_db.begin_transaction()
    record_db.rollback()
    record_db.commit()

    assert record_db.transaction_depth == 0
    assert record_db.fetch_value("SELECT COUNT(*){i} FROM [Record]") == 0


def test_instances_sharing_a_connection_share_depth(
    registry: ConnectionRegistry, tracker: TransactionTracker
) -> None:
    set_current_config(Config(SQLITE_CONFIG))
    first = Database(registry=registry, tracker=tracker)
    second = Database(registry=registry, tracker=tracker)

    first.begin_transaction()
    second.begin_transaction()
    assert first.transaction_depth == 2
    second.commit()
    first.commit()
    assert second.transaction_depth == 0
    first.disconnect()


# -- helpers --
def test_last_insert_id(record_db: Database) -> None:
    record_db.query("INSERT INTO [Record] ([CreationDate], [Name]) VALUES (%i, %s)", 0, "a").free()
    assert record_db.last_insert_id() == 1


def test_quote(sqlite_db: Database) -> None:
    assert sqlite_db.quote("O'Neil") == "'O''Neil'"
    assert sqlite_db.quote_identifier('we"ird') == '"we""ird"'
    assert Database.placeholder(1.5) == "%f"


def test_disconnect_and_reconnect(sqlite_db: Database) -> None:
    first = sqlite_db.connection()
    sqlite_db.disconnect()
    sqlite_db.disconnect()

    assert sqlite_db.connection() is not first
