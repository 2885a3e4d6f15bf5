"""The execution façade.

:class:`Database` compiles templates for its connection's dialect, binds
parameters, runs hooks around each statement and returns typed results. It
owns no connection itself: it holds a :class:`ConnectionEntry` that is either
private (explicit parameters) or shared through a :class:`ConnectionRegistry`
(parameters from the project configuration).
"""

import logging
import threading
from collections.abc import Mapping, Sequence
from typing import Any, ClassVar, Optional, Union

from sqlbridge.config import ConnectionParams, get_current_config
from sqlbridge.core.compiler import ParsedQuery, TemplateCompiler, get_compiler
from sqlbridge.core.parameters import ParameterStyle, bind_parameters, placeholder_for
from sqlbridge.core.result import QueryResult
from sqlbridge.core.statement import PreparedStatement
from sqlbridge.dialects import DialectSpec
from sqlbridge.driver.connection import (
    ConnectionEntry,
    ConnectionHandle,
    ConnectionRegistry,
    compute_fingerprint,
    get_default_registry,
)
from sqlbridge.driver.mixins import CrudMixin, FetchMixin, TransactionMixin
from sqlbridge.driver.transaction import TransactionTracker, get_default_tracker
from sqlbridge.exceptions import InconsistentParametersError, InvalidParameterError, wrap_database_errors
from sqlbridge.hooks import Hook, HookCallback
from sqlbridge.utils.logging import get_logger, log_with_context

__all__ = ("Database",)

logger = get_logger("base")


class Database(CrudMixin, FetchMixin, TransactionMixin):
    """Entry point for running templated SQL against one connection.

    Args:
        params: Explicit connection parameters, as an object or a mapping
        dbms: Dialect name; with the other keyword fields, an alternative to ``params``
        host: Server host
        port: Server port
        username: Login name
        password: Login password
        database: Database name or file
        options: Driver options
        use_cache: With configuration-derived parameters, whether to share the
            connection through the registry (default True)
        registry: Connection registry; defaults to the process-wide one
        tracker: Transaction tracker; defaults to the process-wide one

    Raises:
        InconsistentParametersError: Both ``params`` and ``dbms`` were given.
        InvalidParameterError: ``use_cache`` was given with explicit parameters.
        ImproperConfigurationError: The parameters are invalid.
    """

    __slots__ = ("_compiler", "_entry", "_registry", "_tracker")

    _non_nestable: ClassVar[Optional["Database"]] = None
    _non_nestable_lock: ClassVar["threading.Lock"] = threading.Lock()

    def __init__(
        self,
        params: "Optional[Union[ConnectionParams, Mapping[str, Any]]]" = None,
        *,
        dbms: Optional[str] = None,
        host: Optional[str] = None,
        port: "Optional[Union[int, str]]" = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        database: Optional[str] = None,
        options: "Optional[Mapping[str, Any]]" = None,
        use_cache: Optional[bool] = None,
        registry: Optional[ConnectionRegistry] = None,
        tracker: Optional[TransactionTracker] = None,
    ) -> None:
        self._registry = registry if registry is not None else get_default_registry()
        self._tracker = tracker if tracker is not None else get_default_tracker()
        self._compiler: TemplateCompiler = get_compiler()

        fields = {"host": host, "port": port, "username": username, "password": password, "database": database}
        if params is not None and dbms is not None:
            msg = "The options 'params' and 'dbms' are incompatible"
            raise InconsistentParametersError(msg)
        if params is not None and (options is not None or any(v is not None for v in fields.values())):
            msg = "Connection fields cannot be combined with 'params'"
            raise InconsistentParametersError(msg)
        explicit = params is not None or dbms is not None
        if explicit and use_cache is not None:
            msg = "The option 'use_cache' is not supported when connection parameters are specified"
            raise InvalidParameterError(msg)

        if params is not None:
            if not isinstance(params, ConnectionParams):
                params = ConnectionParams.from_mapping(params)
            self._entry = ConnectionEntry(params)
        elif dbms is not None:
            values = {name: value for name, value in fields.items() if value is not None}
            values.setdefault("database", "")
            self._entry = ConnectionEntry(ConnectionParams(dbms=dbms, options=options or {}, **values))
        else:
            if options is not None or any(v is not None for v in fields.values()):
                msg = "Connection fields require the 'dbms' option"
                raise InvalidParameterError(msg)
            config = get_current_config()
            if use_cache is False:
                self._entry = ConnectionEntry(ConnectionParams.from_config(config))
            else:
                self._entry = self._registry.get_or_create(
                    compute_fingerprint(config), lambda: ConnectionEntry(ConnectionParams.from_config(config))
                )

    @classmethod
    def non_nestable_instance(cls) -> "Database":
        """Return the process-wide instance that rejects nested transactions.

        It is built from the current configuration but never shares its
        connection with cached instances.
        """
        with cls._non_nestable_lock:
            if cls._non_nestable is None:
                instance = cls(use_cache=False)
                instance._entry.nestable = False
                cls._non_nestable = instance
            return cls._non_nestable

    # -- connection --
    def params(self) -> ConnectionParams:
        """Connection parameters of this instance."""
        return self._entry.params

    @property
    def dialect(self) -> DialectSpec:
        return self._entry.params.dialect

    @property
    def nestable(self) -> bool:
        return self._entry.nestable

    def _handle(self) -> ConnectionHandle:
        return self._registry.connect(self._entry)

    def connection(self) -> Any:
        """Return the native DB-API connection, opening it on first use.

        Raises:
            ImproperConfigurationError: A driver option is not supported.
            DatabaseError: The driver failed to connect.
        """
        return self._handle().connection

    def disconnect(self) -> None:
        """Close the native connection; the next query reconnects."""
        self._registry.disconnect(self._entry, self._tracker)

    # -- statements --
    def execute_parsed(self, parsed: ParsedQuery, args: "Sequence[Any]") -> QueryResult:
        """Bind ``args`` to a compiled template and run it.

        Raises:
            ParameterError: The number of arguments does not match the placeholders.
            DatabaseError: The driver failed to execute the statement.
        """
        handle = self._handle()
        adapter = handle.adapter
        parameters = bind_parameters(parsed, args, adapter.type_coercion_map)
        hooks = tuple(self._entry.hooks)
        for hook in hooks:
            hook.pre_query(parsed.sql)
        log_with_context(logger, logging.DEBUG, "Executing query", connection_id=handle.id, sql=parsed.sql)
        with wrap_database_errors("Failed executing query", adapter.driver_errors):
            cursor = adapter.execute(handle.connection, parsed.sql, parameters)
            handle.last_row_id = getattr(cursor, "lastrowid", None)
            adapter.after_execute(handle.connection, self._tracker.in_transaction(handle))
        for hook in hooks:
            hook.post_query(parsed.sql)
        return QueryResult(
            cursor,
            parsed.column_types,
            stringify=bool(self._entry.option("stringify_fetches")),
            driver_errors=adapter.driver_errors,
            sql=parsed.sql,
        )

    def query(self, template: str, *args: Any) -> QueryResult:
        """Run a SQL template.

        Args:
            template: SQL with ``[identifier]`` quoting, ``%i %f %d %s %b``
                placeholders and optional ``{i} {f} {d} {s} {b}`` column annotations
            *args: One value per placeholder

        Raises:
            TemplateSyntaxError: The template is malformed.
            ParameterError: The number of arguments does not match the placeholders.
            DatabaseError: The driver failed to execute the statement.

        Returns:
            The statement's result.
        """
        return self.execute_parsed(self._compiler.compile(template, self.dialect), args)

    def prepare(self, template: str) -> PreparedStatement:
        """Compile a template for repeated execution.

        Unless the ``emulate_prepares`` driver option is set, the statement is
        checked now rather than when executed: by the server for drivers with
        a native prepare, otherwise against the dialect's grammar.

        Raises:
            TemplateSyntaxError: The template is malformed.
            DatabaseError: The statement is not valid SQL for the dialect.
        """
        dialect = self.dialect
        parsed = self._compiler.compile(template, dialect)
        if self._entry.option("emulate_prepares"):
            return PreparedStatement(self, template, parsed)
        adapter = self._entry.adapter
        if adapter.native_prepare:
            handle = self._handle()
            with wrap_database_errors("Failed preparing statement", adapter.driver_errors):
                adapter.prepare_native(handle.connection, parsed.sql)
        else:
            check = self._compiler.compile(template, dialect, ParameterStyle.QMARK)
            adapter.validate(check.sql, dialect)
        return PreparedStatement(self, template, parsed)

    # -- transactions --
    def begin_transaction(self) -> None:
        """Begin a transaction, or enter a nested one.

        Raises:
            StateError: A transaction is active and this instance is not nestable.
            DatabaseError: The native begin failed.
        """
        handle = self._handle()
        self._tracker.begin(handle, self._entry.nestable, handle.adapter.begin)

    def commit(self) -> None:
        """Leave the current transaction level; the outermost level commits.

        After an inner rollback the outermost level rolls back instead.

        Raises:
            StateError: No transaction is active.
            DatabaseError: The native commit failed.
        """
        handle = self._handle()
        self._tracker.commit(handle, handle.adapter.commit, handle.adapter.rollback)

    def rollback(self) -> None:
        """Leave the current transaction level; the outermost level rolls back.

        Raises:
            StateError: No transaction is active.
            DatabaseError: The native rollback failed.
        """
        handle = self._handle()
        self._tracker.rollback(handle, handle.adapter.rollback)

    @property
    def transaction_depth(self) -> int:
        handle = self._entry.handle
        return 0 if handle is None else self._tracker.depth(handle)

    # -- helpers --
    def last_insert_id(self) -> int:
        """Return the value most recently generated for an identity column on this connection.

        Raises:
            NotSupportedError: The driver cannot report it.
        """
        handle = self._handle()
        with wrap_database_errors("Failed fetching last insert id", handle.adapter.driver_errors):
            return handle.adapter.last_insert_id(handle.connection, handle.last_row_id)

    def quote(self, value: Any) -> str:
        """Quote ``value`` as a string literal for this connection's dialect."""
        return self._entry.adapter.quote_literal(str(value))

    def quote_identifier(self, identifier: str) -> str:
        """Quote ``identifier`` for this connection's dialect."""
        return self.dialect.quote_identifier(identifier)

    @staticmethod
    def placeholder(value: Any) -> str:
        """Return the placeholder matching the inferred kind of ``value``."""
        return placeholder_for(value)

    # -- hooks --
    def register_hook(
        self, pre_query: Optional[HookCallback] = None, post_query: Optional[HookCallback] = None
    ) -> Hook:
        """Register callbacks to run around every query on this connection.

        Hooks belong to the connection entry, so instances sharing a cached
        connection share hooks.
        """
        hook = Hook(pre_query=pre_query, post_query=post_query)
        self._entry.hooks.append(hook)
        return hook

    def unregister_hook(self, hook: Hook) -> None:
        """Remove a hook returned by :meth:`register_hook`.

        Raises:
            InvalidParameterError: The hook is not registered.
        """
        for index, registered in enumerate(self._entry.hooks):
            if registered is hook:
                del self._entry.hooks[index]
                return
        msg = "Unknown hook"
        raise InvalidParameterError(msg)

    def __repr__(self) -> str:
        params = self._entry.params
        return f"Database(dbms={params.dbms!r}, database={params.database!r}, nestable={self._entry.nestable})"
