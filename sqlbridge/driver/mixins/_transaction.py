# pyright: reportAttributeAccessIssue=false
"""Managed transaction helpers built on begin/commit/rollback."""

from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from mypy_extensions import trait

from sqlbridge.utils.logging import get_logger

__all__ = ("TransactionMixin", "TransactionOutcome")

logger = get_logger("driver.transaction")

T = TypeVar("T")


@dataclass(frozen=True)
class TransactionOutcome(Generic[T]):
    """Result of :meth:`TransactionMixin.try_in_transaction`.

    Attributes:
        committed: Whether the transaction committed
        value: Return value of the callback when committed
        error: The (possibly transformed) error when not committed
    """

    committed: bool
    value: Optional[T] = None
    error: Optional[BaseException] = None

    def unwrap(self) -> Optional[T]:
        """Return ``value``, raising ``error`` if the transaction did not commit."""
        if self.error is not None:
            raise self.error
        return self.value


@trait
class TransactionMixin:
    __slots__ = ()

    @contextmanager
    def transaction(self) -> "Generator[Any, None, None]":
        """Run the ``with`` block in a transaction.

        Commits when the block exits normally, including by ``return`` or
        ``break``; rolls back and re-raises when it raises.
        """
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    def run_in_transaction(
        self,
        func: "Callable[[Any], T]",
        rollback: "Optional[Callable[[Any], None]]" = None,
        process_error: "Optional[Callable[[BaseException, Any], Optional[BaseException]]]" = None,
    ) -> T:
        """Call ``func(self)`` inside a transaction and return its result.

        Args:
            func: Callback receiving this instance
            rollback: Called with this instance after a failed transaction is rolled back
            process_error: Called with the error and this instance; a returned
                exception is raised in place of the original

        Raises:
            Exception: Whatever ``func`` raised, or its replacement.
        """
        self.begin_transaction()
        try:
            result = func(self)
        except BaseException as e:
            logger.debug("Rolling back after %s", type(e).__name__)
            self.rollback()
            if rollback is not None:
                rollback(self)
            if process_error is not None:
                replacement = process_error(e, self)
                if replacement is not None and replacement is not e:
                    raise replacement from e
            raise
        self.commit()
        return result

    def try_in_transaction(
        self,
        func: "Callable[[Any], T]",
        rollback: "Optional[Callable[[Any], None]]" = None,
        process_error: "Optional[Callable[[BaseException, Any], Optional[BaseException]]]" = None,
    ) -> "TransactionOutcome[T]":
        """Like :meth:`run_in_transaction`, but report failure as a value."""
        try:
            value = self.run_in_transaction(func, rollback=rollback, process_error=process_error)
        except Exception as e:
            return TransactionOutcome(committed=False, error=e)
        return TransactionOutcome(committed=True, value=value)
