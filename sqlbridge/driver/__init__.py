"""Connection lifecycle, transaction tracking and helper mixins."""

from sqlbridge.driver.connection import (
    BASELINE_DRIVER_OPTIONS,
    ConnectionEntry,
    ConnectionHandle,
    ConnectionRegistry,
    compute_fingerprint,
    get_default_registry,
)
from sqlbridge.driver.transaction import TransactionTracker, get_default_tracker

__all__ = (
    "BASELINE_DRIVER_OPTIONS",
    "ConnectionEntry",
    "ConnectionHandle",
    "ConnectionRegistry",
    "TransactionTracker",
    "compute_fingerprint",
    "get_default_registry",
    "get_default_tracker",
)
