"""Mixins that add CRUD, fetch and transaction helpers to :class:`~sqlbridge.base.Database`."""

from sqlbridge.driver.mixins._crud import CrudMixin
from sqlbridge.driver.mixins._result_tools import FetchMixin
from sqlbridge.driver.mixins._transaction import TransactionMixin, TransactionOutcome

__all__ = ("CrudMixin", "FetchMixin", "TransactionMixin", "TransactionOutcome")
