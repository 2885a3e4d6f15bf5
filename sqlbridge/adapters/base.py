"""Base class for native driver adapters.

An adapter is the only place that touches a DB-API module: it loads the
driver, turns :class:`~sqlbridge.config.ConnectionParams` into ``connect()``
arguments, runs statements and drives the flat native transaction API.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from types import ModuleType
from typing import TYPE_CHECKING, Any, ClassVar, Optional

import sqlglot
from sqlglot.errors import ParseError, TokenError

from sqlbridge.exceptions import DatabaseError, NotSupportedError
from sqlbridge.utils.module_loader import import_driver

if TYPE_CHECKING:
    from sqlbridge.config import ConnectionParams
    from sqlbridge.dialects import DialectSpec

__all__ = ("AutocommitToggleMixin", "DriverAdapter")


class DriverAdapter(ABC):
    """Adapter around one DB-API 2.0 driver module.

    Class attributes:
        driver_module: Importable module name of the native driver
        install_package: Extra / distribution providing the driver
        connect_options: Driver options passed through to ``connect()``
        type_coercion_map: Conversions applied to bound values, keyed by exact type
        begin_sql / commit_sql / rollback_sql: Transaction control statements
        last_insert_id_sql: Query returning the last generated identity, if any
        native_prepare: Whether the driver can have the server parse a statement without running it
    """

    __slots__ = ("_module",)

    driver_module: ClassVar[str]
    install_package: ClassVar[Optional[str]] = None
    connect_options: ClassVar[frozenset[str]] = frozenset()
    type_coercion_map: ClassVar["Mapping[type, Callable[[Any], Any]]"] = {}
    begin_sql: ClassVar[str] = "BEGIN"
    commit_sql: ClassVar[str] = "COMMIT"
    rollback_sql: ClassVar[str] = "ROLLBACK"
    last_insert_id_sql: ClassVar[Optional[str]] = None
    native_prepare: ClassVar[bool] = False

    def __init__(self) -> None:
        self._module: Optional[ModuleType] = None

    @property
    def module(self) -> ModuleType:
        """The native driver module, imported on first use.

        Raises:
            MissingDependencyError: The driver is not installed.
        """
        if self._module is None:
            self._module = import_driver(self.driver_module, self.install_package)
        return self._module

    @property
    def driver_errors(self) -> "tuple[type[BaseException], ...]":
        """Exception classes raised by the native driver."""
        return (self.module.Error,)

    # -- connections --
    @abstractmethod
    def build_connect_kwargs(self, params: "ConnectionParams", options: "Mapping[str, Any]") -> "dict[str, Any]":
        """Translate connection parameters and pass-through options into ``connect()`` arguments."""

    def connect(self, params: "ConnectionParams", options: "Mapping[str, Any]") -> Any:
        """Open a native connection in autocommit mode."""
        return self.module.connect(**self.build_connect_kwargs(params, options))

    def close(self, connection: Any) -> None:
        connection.close()

    # -- statements --
    def execute(self, connection: Any, sql: str, parameters: "tuple[Any, ...]") -> Any:
        """Run ``sql`` with positional ``parameters`` and return the cursor."""
        cursor = connection.cursor()
        cursor.execute(sql, parameters)
        return cursor

    def validate(self, sql: str, dialect: "DialectSpec") -> None:
        """Check that ``sql`` parses in ``dialect``.

        ``sql`` must use ``?`` markers. DB-API has no prepare call, so sqlglot
        stands in for the server-side parse. Dialects sqlglot has no grammar
        for are not checked.

        Raises:
            DatabaseError: The statement is malformed.
        """
        if dialect.sqlglot_dialect is None:
            return
        try:
            sqlglot.parse(sql, read=dialect.sqlglot_dialect)
        except (ParseError, TokenError) as e:
            msg = f"Failed preparing statement: {e}"
            raise DatabaseError(msg) from e

    def prepare_native(self, connection: Any, sql: str) -> None:
        """Have the server parse native ``sql`` without executing it.

        Only called when :attr:`native_prepare` is set.
        """
        msg = f"{type(self).__name__} has no native prepare"
        raise NotSupportedError(msg)

    def after_execute(self, connection: Any, in_transaction: bool) -> None:
        """Called after each statement; drivers without autocommit commit here."""

    # -- transactions --
    def _run_control(self, connection: Any, sql: str) -> None:
        cursor = connection.cursor()
        try:
            cursor.execute(sql)
        finally:
            cursor.close()

    def begin(self, connection: Any) -> None:
        """Begin a native transaction."""
        self._run_control(connection, self.begin_sql)

    def commit(self, connection: Any) -> None:
        """Commit the native transaction."""
        self._run_control(connection, self.commit_sql)

    def rollback(self, connection: Any) -> None:
        """Roll back the native transaction."""
        self._run_control(connection, self.rollback_sql)

    # -- helpers --
    def last_insert_id(self, connection: Any, last_row_id: Any) -> int:
        """Return the value most recently generated for an identity column.

        Args:
            connection: Native connection
            last_row_id: ``cursor.lastrowid`` of the most recent statement

        Raises:
            NotSupportedError: The driver has no way to report it.
        """
        if self.last_insert_id_sql is None:
            if isinstance(last_row_id, int) and not isinstance(last_row_id, bool):
                return last_row_id
            msg = f"{type(self).__name__} cannot report the last inserted id"
            raise NotSupportedError(msg)
        cursor = connection.cursor()
        try:
            cursor.execute(self.last_insert_id_sql)
            row = cursor.fetchone()
        finally:
            cursor.close()
        if row is None or row[0] is None:
            msg = "No identity value has been generated on this connection"
            raise NotSupportedError(msg)
        return int(row[0])

    def quote_literal(self, value: str) -> str:
        """Quote ``value`` as a SQL string literal."""
        return "'" + value.replace("'", "''") + "'"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(driver={self.driver_module!r})"


class AutocommitToggleMixin:
    """Transactions for drivers that expose a writable ``autocommit`` attribute.

    The connection stays in autocommit mode between transactions; ``begin``
    switches it off and ``commit``/``rollback`` switch it back on.
    """

    __slots__ = ()

    def begin(self, connection: Any) -> None:
        connection.autocommit = False

    def commit(self, connection: Any) -> None:
        try:
            connection.commit()
        finally:
            connection.autocommit = True

    def rollback(self, connection: Any) -> None:
        try:
            connection.rollback()
        finally:
            connection.autocommit = True
