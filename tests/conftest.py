from collections.abc import Generator

import pytest

from sqlbridge.base import Database
from sqlbridge.config import set_current_config
from sqlbridge.core.cache import clear_all_caches
from sqlbridge.driver.connection import ConnectionRegistry
from sqlbridge.driver.transaction import TransactionTracker

RECORD_TABLE_DDL = """
CREATE TABLE [Record] (
    [RecordID] INTEGER PRIMARY KEY AUTOINCREMENT,
    [CreationDate] INTEGER NOT NULL,
    [Name] TEXT,
    [Price] TEXT,
    [Payload] BLOB
)
"""


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    clear_all_caches()
    set_current_config(None)
    yield
    set_current_config(None)
    Database._non_nestable = None


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def tracker() -> TransactionTracker:
    return TransactionTracker()


@pytest.fixture
def sqlite_db(registry: ConnectionRegistry, tracker: TransactionTracker) -> Generator[Database, None, None]:
    db = Database(dbms="sqlite", database=":memory:", registry=registry, tracker=tracker)
    yield db
    db.disconnect()


@pytest.fixture
def record_db(sqlite_db: Database) -> Database:
    sqlite_db.query(RECORD_TABLE_DDL).free()
    return sqlite_db
