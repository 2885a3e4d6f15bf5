"""Query hooks."""

from collections.abc import Callable
from typing import Optional

from sqlbridge.utils.logging import get_logger

__all__ = ("Hook", "HookCallback")

logger = get_logger("hooks")

HookCallback = Callable[["Hook", str], None]


class Hook:
    """Callbacks invoked around every query executed on a connection.

    Both callbacks receive the hook itself and the native SQL text.

    Args:
        pre_query: Called before the statement is sent to the driver
        post_query: Called after the driver executed the statement successfully
    """

    __slots__ = ("_post_query", "_pre_query")

    def __init__(self, pre_query: Optional[HookCallback] = None, post_query: Optional[HookCallback] = None) -> None:
        self._pre_query = pre_query
        self._post_query = post_query

    def pre_query(self, sql: str) -> None:
        if self._pre_query is not None:
            logger.debug("Running pre-query hook %r", self)
            self._pre_query(self, sql)

    def post_query(self, sql: str) -> None:
        if self._post_query is not None:
            logger.debug("Running post-query hook %r", self)
            self._post_query(self, sql)

    def __repr__(self) -> str:
        return f"Hook(pre_query={self._pre_query!r}, post_query={self._post_query!r})"
