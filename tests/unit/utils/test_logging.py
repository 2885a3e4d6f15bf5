import io
import logging
from collections.abc import Generator

import msgspec
import pytest

from sqlbridge.utils.logging import (
    CorrelationIDFilter,
    StructuredFormatter,
    configure_logging,
    correlation_scope,
    get_correlation_id,
    get_logger,
    log_with_context,
    set_correlation_id,
)

pytestmark = pytest.mark.xdist_group("logging")


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    root = logging.getLogger("sqlbridge")
    handlers = list(root.handlers)
    level = root.level
    propagate = root.propagate
    yield
    set_correlation_id(None)
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    root.propagate = propagate


def _record(message: str = "hello %s", args: tuple = ("world",)) -> logging.LogRecord:
    return logging.LogRecord("sqlbridge.test", logging.INFO, __file__, 10, message, args, None)


def test_get_logger_prefixes_names() -> None:
    assert get_logger().name == "sqlbridge"
    assert get_logger("driver").name == "sqlbridge.driver"
    assert get_logger("sqlbridge.core").name == "sqlbridge.core"


def test_get_logger_adds_single_correlation_filter() -> None:
    logger = get_logger("filters")
    get_logger("filters")

    assert sum(isinstance(f, CorrelationIDFilter) for f in logger.filters) == 1


def test_correlation_scope_restores_previous_id() -> None:
    set_correlation_id("outer")

    with correlation_scope("inner") as value:
        assert value == "inner"
        assert get_correlation_id() == "inner"

    assert get_correlation_id() == "outer"


def test_structured_formatter_output() -> None:
    record = _record()
    record.extra_fields = {"connection_id": 3}

    with correlation_scope("req-42"):
        entry = msgspec.json.decode(StructuredFormatter().format(record))

    assert entry["message"] == "hello world"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "sqlbridge.test"
    assert entry["correlation_id"] == "req-42"
    assert entry["connection_id"] == 3


def test_structured_formatter_without_correlation_id() -> None:
    entry = msgspec.json.decode(StructuredFormatter().format(_record()))

    assert "correlation_id" not in entry


def test_correlation_filter_sets_attribute() -> None:
    record = _record()

    with correlation_scope("req-7"):
        assert CorrelationIDFilter().filter(record) is True

    assert record.correlation_id == "req-7"


def test_log_with_context_attaches_fields() -> None:
    stream = io.StringIO()
    configure_logging(level="debug", stream=stream)

    log_with_context(get_logger("driver"), logging.DEBUG, "Executing query", connection_id=1, sql="SELECT 1")

    entry = msgspec.json.decode(stream.getvalue().splitlines()[-1])
    assert entry["message"] == "Executing query"
    assert entry["logger"] == "sqlbridge.driver"
    assert entry["connection_id"] == 1
    assert entry["sql"] == "SELECT 1"


def test_log_with_context_skips_disabled_levels() -> None:
    stream = io.StringIO()
    configure_logging(level=logging.WARNING, stream=stream)

    log_with_context(get_logger("driver"), logging.DEBUG, "Executing query", sql="SELECT 1")

    assert stream.getvalue() == ""


def test_configure_logging_text_with_file(tmp_path) -> None:
    stream = io.StringIO()
    log_file = tmp_path / "sqlbridge.log"

    root = configure_logging(structured=False, stream=stream, log_file=str(log_file))
    get_logger("base").info("connected")

    assert root is logging.getLogger("sqlbridge")
    assert root.propagate is False
    assert len(root.handlers) == 2
    assert "INFO [sqlbridge.base] connected" in stream.getvalue()
    root.handlers[1].flush()
    assert msgspec.json.decode(log_file.read_text().splitlines()[0])["message"] == "connected"


def test_configure_logging_replaces_handlers() -> None:
    configure_logging(stream=io.StringIO())
    configure_logging(stream=io.StringIO())

    assert len(logging.getLogger("sqlbridge").handlers) == 1
