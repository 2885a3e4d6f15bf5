"""Nested transaction emulation.

Native drivers expose one flat transaction per connection. The tracker keeps
a nesting depth per connection: only the outermost ``begin`` reaches the
driver, and only the ``commit``/``rollback`` that brings the depth back to
zero does. A rollback at an inner level marks the transaction rollback-only:
the outermost ``commit`` then issues a native rollback instead.
"""

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Optional

from sqlbridge.exceptions import StateError, wrap_database_errors
from sqlbridge.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlbridge.driver.connection import ConnectionHandle

__all__ = ("TransactionTracker", "get_default_tracker")

logger = get_logger("driver.transaction")

NativeCall = Callable[[Any], None]


class TransactionTracker:
    """Maps connection handle ids to their transaction nesting depth."""

    __slots__ = ("_depths", "_lock", "_rollback_only")

    def __init__(self) -> None:
        self._depths: dict[int, int] = {}
        self._rollback_only: set[int] = set()
        self._lock = threading.RLock()

    def depth(self, handle: "ConnectionHandle") -> int:
        with self._lock:
            return self._depths.get(handle.id, 0)

    def in_transaction(self, handle: "ConnectionHandle") -> bool:
        return self.depth(handle) > 0

    def begin(self, handle: "ConnectionHandle", nestable: bool, native_begin: NativeCall) -> int:
        """Enter a (possibly nested) transaction.

        Args:
            handle: Connection the transaction runs on
            nestable: Whether nested ``begin`` calls are allowed
            native_begin: Starts the native transaction

        Raises:
            StateError: A transaction is active and the connection is not nestable.
            DatabaseError: The native begin failed; the depth stays 0.

        Returns:
            The new depth.
        """
        with self._lock:
            depth = self._depths.get(handle.id, 0)
            if depth == 0:
                with wrap_database_errors("Failed beginning transaction", handle.adapter.driver_errors):
                    native_begin(handle.connection)
                self._depths[handle.id] = 1
                logger.debug("Began native transaction on connection %d", handle.id)
                return 1
            if not nestable:
                msg = "Nested transactions are not supported by this instance"
                raise StateError(msg)
            depth += 1
            self._depths[handle.id] = depth
            logger.debug("Entered nested transaction on connection %d (depth %d)", handle.id, depth)
            return depth

    def is_rollback_only(self, handle: "ConnectionHandle") -> bool:
        """Whether an inner rollback has doomed the current transaction."""
        with self._lock:
            return handle.id in self._rollback_only

    def _leave(self, handle: "ConnectionHandle", action: str) -> int:
        depth = self._depths.get(handle.id, 0)
        if depth == 0:
            msg = f"Cannot {action}: no transaction is active"
            raise StateError(msg)
        depth -= 1
        self._depths[handle.id] = depth
        return depth

    def commit(self, handle: "ConnectionHandle", native_commit: NativeCall, native_rollback: NativeCall) -> int:
        """Leave one transaction level, committing natively at the outermost level.

        If an inner level rolled back, the outermost level rolls back instead.

        Raises:
            StateError: No transaction is active.
            DatabaseError: The native call failed; the depth is already decremented.

        Returns:
            The new depth.
        """
        with self._lock:
            depth = self._leave(handle, "commit")
            if depth > 0:
                return depth
            if handle.id in self._rollback_only:
                self._rollback_only.discard(handle.id)
                logger.debug("Rolling back connection %d: an inner transaction rolled back", handle.id)
                with wrap_database_errors("Failed rolling back transaction", handle.adapter.driver_errors):
                    native_rollback(handle.connection)
                return 0
            logger.debug("Issuing native commit on connection %d", handle.id)
            with wrap_database_errors("Failed committing transaction", handle.adapter.driver_errors):
                native_commit(handle.connection)
            return 0

    def rollback(self, handle: "ConnectionHandle", native_rollback: NativeCall) -> int:
        """Leave one transaction level, rolling back natively at the outermost level.

        Raises:
            StateError: No transaction is active.
            DatabaseError: The native rollback failed; the depth is already decremented.
        """
        with self._lock:
            depth = self._leave(handle, "rollback")
            if depth > 0:
                self._rollback_only.add(handle.id)
                return depth
            self._rollback_only.discard(handle.id)
            logger.debug("Issuing native rollback on connection %d", handle.id)
            with wrap_database_errors("Failed rolling back transaction", handle.adapter.driver_errors):
                native_rollback(handle.connection)
            return 0

    def forget(self, handle: "ConnectionHandle") -> None:
        """Drop tracking state for a closed connection."""
        with self._lock:
            self._depths.pop(handle.id, None)
            self._rollback_only.discard(handle.id)

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for depth in self._depths.values() if depth > 0)


_default_tracker: Optional[TransactionTracker] = None
_default_lock = threading.Lock()


def get_default_tracker() -> TransactionTracker:
    """Return the process-wide transaction tracker."""
    global _default_tracker
    if _default_tracker is None:
        with _default_lock:
            if _default_tracker is None:
                _default_tracker = TransactionTracker()
    return _default_tracker
