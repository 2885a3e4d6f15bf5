"""Dialect registry.

Maps logical engine names to the native driver identifier, the native
parameter marker style and the identifier quoting rule of each engine.
Quoting values follow PEAR MDB2's ``quoteIdentifier()``.
"""

from dataclasses import dataclass
from typing import Final, Optional

from sqlbridge.core.parameters import ParameterStyle
from sqlbridge.exceptions import ImproperConfigurationError, InvalidParameterError

__all__ = (
    "DIALECTS",
    "DialectSpec",
    "get_dialect",
    "is_supported",
    "native_name",
    "quote_identifier",
    "supported_dialects",
)


@dataclass(frozen=True)
class DialectSpec:
    """Conventions of one database engine.

    Attributes:
        name: Logical engine name, e.g. ``"pgsql"``
        native_name: Native driver identifier
        quote_begin: Opening identifier quote
        quote_end: Closing identifier quote
        quote_escape: Prefix that escapes ``quote_end`` inside an identifier,
            or None when the engine cannot escape it
        parameter_style: Native parameter marker style
        sqlglot_dialect: sqlglot dialect used to validate prepared statements
        driver: Key of the adapter in :mod:`sqlbridge.adapters`
        requires_host: Whether connections need a server host
    """

    name: str
    native_name: str
    quote_begin: str
    quote_end: str
    quote_escape: Optional[str]
    parameter_style: ParameterStyle
    sqlglot_dialect: Optional[str]
    driver: str
    requires_host: bool = True

    def quote_identifier(self, identifier: str) -> str:
        """Quote ``identifier`` so that it names exactly ``identifier``.

        Raises:
            InvalidParameterError: The identifier contains the closing quote
                and the engine has no way to escape it.
        """
        if self.quote_escape is None:
            if self.quote_end in identifier:
                msg = f"Identifier {identifier!r} contains {self.quote_end!r}, which cannot be quoted for {self.name}"
                raise InvalidParameterError(msg)
            return f"{self.quote_begin}{identifier}{self.quote_end}"
        escaped = identifier.replace(self.quote_end, self.quote_escape + self.quote_end)
        return f"{self.quote_begin}{escaped}{self.quote_end}"


_MYSQL_QUOTES: Final = ("`", "`", "`")
_BRACKET_QUOTES: Final = ("[", "]", "]")
_ANSI_QUOTES: Final = ('"', '"', '"')

DIALECTS: Final[dict[str, DialectSpec]] = {
    "mysql": DialectSpec("mysql", "mysql", *_MYSQL_QUOTES, ParameterStyle.POSITIONAL_PYFORMAT, "mysql", "mysql"),
    "mysqli": DialectSpec("mysqli", "mysql", *_MYSQL_QUOTES, ParameterStyle.POSITIONAL_PYFORMAT, "mysql", "mysql"),
    "mssql": DialectSpec("mssql", "mssql", *_BRACKET_QUOTES, ParameterStyle.POSITIONAL_PYFORMAT, "tsql", "mssql"),
    "sqlsrv": DialectSpec("sqlsrv", "sqlsrv", *_BRACKET_QUOTES, ParameterStyle.POSITIONAL_PYFORMAT, "tsql", "mssql"),
    "odbc": DialectSpec("odbc", "odbc", *_BRACKET_QUOTES, ParameterStyle.QMARK, "tsql", "odbc"),
    "ibase": DialectSpec("ibase", "firebird", '"', '"', None, ParameterStyle.QMARK, None, "firebird"),
    "oci8": DialectSpec("oci8", "oci", *_ANSI_QUOTES, ParameterStyle.POSITIONAL_COLON, "oracle", "oracle"),
    "pgsql": DialectSpec("pgsql", "pgsql", *_ANSI_QUOTES, ParameterStyle.POSITIONAL_PYFORMAT, "postgres", "postgres"),
    "sqlite": DialectSpec(
        "sqlite", "sqlite", *_ANSI_QUOTES, ParameterStyle.QMARK, "sqlite", "sqlite", requires_host=False
    ),
}


def supported_dialects() -> "tuple[str, ...]":
    """Names of all supported dialects."""
    return tuple(DIALECTS)


def is_supported(dialect: str) -> bool:
    return dialect in DIALECTS


def get_dialect(dialect: "str | DialectSpec") -> DialectSpec:
    """Look up a dialect by name.

    Raises:
        ImproperConfigurationError: The dialect is not supported.
    """
    if isinstance(dialect, DialectSpec):
        return dialect
    spec = DIALECTS.get(dialect)
    if spec is None:
        msg = f"Unsupported DBMS: {dialect}"
        raise ImproperConfigurationError(msg)
    return spec


def native_name(dialect: str) -> str:
    """Return the native driver identifier for ``dialect``."""
    return get_dialect(dialect).native_name


def quote_identifier(dialect: "str | DialectSpec", identifier: str) -> str:
    """Quote ``identifier`` using the rule of ``dialect``."""
    return get_dialect(dialect).quote_identifier(identifier)
