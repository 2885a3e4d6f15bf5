"""Unit tests for the template compiler."""

import re

import pytest

from sqlbridge.core.cache import TemplateCache
from sqlbridge.core.compiler import TemplateCompiler, compile_template
from sqlbridge.core.parameters import ParameterStyle, TypeCode
from sqlbridge.exceptions import ImproperConfigurationError, InvalidParameterError, TemplateSyntaxError

pytestmark = pytest.mark.xdist_group("core")

TEMPLATE = "SELECT [Name]{s}, [Price]{d} FROM [Record] WHERE [RecordID] = %i AND [Name] <> %s"


def test_compile_for_sqlite() -> None:
    parsed = compile_template(TEMPLATE, "sqlite")

    assert parsed.sql == 'SELECT "Name", "Price" FROM "Record" WHERE "RecordID" = ? AND "Name" <> ?'
    assert parsed.placeholders == (TypeCode.INTEGER, TypeCode.STRING)
    assert parsed.column_types == (TypeCode.STRING, TypeCode.DECIMAL)
    assert parsed.parameter_count == 2


def test_compile_for_mysql() -> None:
    parsed = compile_template(TEMPLATE, "mysql")
    assert parsed.sql == "SELECT `Name`, `Price` FROM `Record` WHERE `RecordID` = %s AND `Name` <> %s"


def test_compile_for_mssql() -> None:
    parsed = compile_template(TEMPLATE, "mssql")
    assert parsed.sql == "SELECT [Name], [Price] FROM [Record] WHERE [RecordID] = %s AND [Name] <> %s"


def test_compile_for_oracle_numbers_markers() -> None:
    parsed = compile_template("INSERT INTO [T] ([a], [b], [c]) VALUES (%i, %f, %b)", "oci8")

    assert parsed.sql == 'INSERT INTO "T" ("a", "b", "c") VALUES (:1, :2, :3)'
    assert parsed.placeholders == (TypeCode.INTEGER, TypeCode.FLOAT, TypeCode.BLOB)


@pytest.mark.parametrize("dialect", ["mysql", "mssql", "odbc", "ibase", "oci8", "pgsql", "sqlite"])
def test_marker_count_matches_placeholders(dialect: str) -> None:
    template = "UPDATE [T] SET [a] = %s, [b] = %d, [c] = %b WHERE [d] = %i AND [e] = %f"
    parsed = compile_template(template, dialect)

    markers = re.findall(r"\?|%s|:\d+", parsed.sql)
    assert len(markers) == 5
    assert parsed.placeholders == (TypeCode.STRING, TypeCode.DECIMAL, TypeCode.BLOB, TypeCode.INTEGER, TypeCode.FLOAT)
    if dialect == "oci8":
        assert markers == [":1", ":2", ":3", ":4", ":5"]


def test_literal_percent_is_doubled_for_pyformat_dialects() -> None:
    parsed = compile_template("SELECT [a] % 2, 'x%' FROM [T] WHERE [b] LIKE %s", "pgsql")

    assert parsed.sql == "SELECT \"a\" %% 2, 'x%%' FROM \"T\" WHERE \"b\" LIKE %s"
    assert parsed.placeholders == (TypeCode.STRING,)


@pytest.mark.parametrize(
    ("dialect", "expected"),
    [
        ("pgsql", 'SELECT "a%%b", "c%%s" FROM "T" WHERE "x" = %s'),
        ("mysql", "SELECT `a%%b`, `c%%s` FROM `T` WHERE `x` = %s"),
        ("mssql", "SELECT [a%%b], [c%%s] FROM [T] WHERE [x] = %s"),
        ("sqlite", 'SELECT "a%b", "c%s" FROM "T" WHERE "x" = ?'),
    ],
)
def test_percent_inside_identifier(dialect: str, expected: str) -> None:
    parsed = compile_template("SELECT [a%b], [c%s] FROM [T] WHERE [x] = %i", dialect)

    assert parsed.sql == expected
    assert parsed.placeholders == (TypeCode.INTEGER,)


def test_pyformat_output_survives_driver_interpolation() -> None:
    parsed = compile_template("SELECT [a%b], 'x%' FROM [T] WHERE [c] = %s", "pgsql")

    assert parsed.sql % ("?",) == "SELECT \"a%b\", 'x%' FROM \"T\" WHERE \"c\" = ?"


def test_literal_percent_is_kept_for_qmark_dialects() -> None:
    parsed = compile_template("SELECT [a] % 2 FROM [T] WHERE [b] LIKE '50%x'", "sqlite")
    assert parsed.sql == "SELECT \"a\" % 2 FROM \"T\" WHERE \"b\" LIKE '50%x'"
    assert parsed.placeholders == ()


def test_unknown_placeholder_letter_is_literal() -> None:
    parsed = compile_template("SELECT %x, 5 %", "sqlite")
    assert parsed.sql == "SELECT %x, 5 %"
    assert parsed.placeholders == ()


def test_string_literals_and_comments_are_verbatim() -> None:
    template = "SELECT 'it''s %s [x] {i}' -- %i [y]\n, /* %f */ [z] FROM [T]"
    parsed = compile_template(template, "sqlite")

    assert parsed.sql == "SELECT 'it''s %s [x] {i}' -- %i [y]\n, /* %f */ \"z\" FROM \"T\""
    assert parsed.placeholders == ()
    assert parsed.column_types == ()


def test_annotations_follow_top_level_select_columns() -> None:
    template = "SELECT [a]{i}, (SELECT [b], [c] FROM [U]){s}, COUNT(*), [d]{f} FROM [T]"
    parsed = compile_template(template, "sqlite")

    assert parsed.column_types == (TypeCode.INTEGER, TypeCode.STRING, None, TypeCode.FLOAT)
    assert parsed.column_type(2) is None
    assert parsed.column_type(3) is TypeCode.FLOAT
    assert parsed.column_type(10) is None
    assert "{" not in parsed.sql


def test_annotation_column_resets_at_each_select() -> None:
    parsed = compile_template("SELECT [a], [b] FROM [T] UNION SELECT [c]{i} FROM [U]", "sqlite")
    assert parsed.column_types == (TypeCode.INTEGER,)


@pytest.mark.parametrize(
    "template",
    [
        "SELECT 'unterminated",
        "SELECT [unterminated FROM T",
        "SELECT a{x} FROM T",
        "SELECT a{i FROM T",
        "SELECT COUNT(a{i}) FROM T",
    ],
)
def test_template_syntax_errors(template: str) -> None:
    with pytest.raises(TemplateSyntaxError):
        compile_template(template, "sqlite")


@pytest.mark.parametrize("template", ["SELECT {fn NOW()}", "SELECT [a] FROM [T] WHERE [d] = {d '2020-01-01'}"])
def test_odbc_escape_sequences_are_rejected(template: str) -> None:
    with pytest.raises(TemplateSyntaxError, match="Invalid column type annotation"):
        compile_template(template, "odbc")


def test_odbc_escape_inside_string_literal_is_verbatim() -> None:
    parsed = compile_template("SELECT '{fn NOW()}', CURRENT_TIMESTAMP{s}", "odbc")

    assert parsed.sql == "SELECT '{fn NOW()}', CURRENT_TIMESTAMP"
    assert parsed.column_types == (None, TypeCode.STRING)


def test_nested_bracket_depends_on_dialect() -> None:
    with pytest.raises(TemplateSyntaxError):
        compile_template("SELECT [a[b] FROM T", "mssql")

    assert compile_template("SELECT [a[b] FROM T", "pgsql").sql == 'SELECT "a[b" FROM T'


def test_firebird_identifier_with_quote_is_rejected() -> None:
    with pytest.raises(InvalidParameterError, match="cannot be quoted"):
        compile_template('SELECT [a"b] FROM T', "ibase")


def test_unsupported_dialect() -> None:
    with pytest.raises(ImproperConfigurationError):
        compile_template("SELECT 1", "db2")


def test_parameter_style_override() -> None:
    parsed = compile_template("SELECT %i, %s", "pgsql", ParameterStyle.QMARK)
    assert parsed.sql == "SELECT ?, ?"


def test_compiler_caches_per_template_dialect_and_style() -> None:
    cache = TemplateCache(max_size=10)
    compiler = TemplateCompiler(cache)

    first = compiler.compile("SELECT %i", "sqlite")
    second = compiler.compile("SELECT %i", "sqlite")
    other = compiler.compile("SELECT %i", "pgsql")

    assert first is second
    assert other is not first
    assert len(cache) == 2
    assert cache.get_stats().hits == 1
