"""Prepared statements."""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from sqlbridge.core.compiler import ParsedQuery
    from sqlbridge.core.result import QueryResult

__all__ = ("PreparedStatement", "StatementExecutor")


class StatementExecutor(Protocol):
    def execute_parsed(self, parsed: "ParsedQuery", args: "Sequence[Any]") -> "QueryResult": ...


class PreparedStatement:
    """A compiled template that can be executed repeatedly with new arguments.

    Returned by :meth:`sqlbridge.base.Database.prepare`; the native SQL has
    already been validated when the statement is created.
    """

    __slots__ = ("_executor", "parsed", "template")

    def __init__(self, executor: StatementExecutor, template: str, parsed: "ParsedQuery") -> None:
        self._executor = executor
        self.template = template
        self.parsed = parsed

    @property
    def sql(self) -> str:
        """Native SQL text."""
        return self.parsed.sql

    @property
    def parameter_count(self) -> int:
        return self.parsed.parameter_count

    def execute(self, *args: Any) -> "QueryResult":
        """Bind ``args`` to the placeholders and run the statement.

        Raises:
            ParameterError: The number of arguments does not match the placeholders.
            DatabaseError: The driver failed to execute the statement.
        """
        return self._executor.execute_parsed(self.parsed, args)

    def __repr__(self) -> str:
        return f"PreparedStatement(sql={self.parsed.sql!r})"
