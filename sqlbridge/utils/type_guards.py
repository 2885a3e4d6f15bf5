"""Type guard functions for runtime type checking."""

from collections.abc import Mapping
from collections.abc import Set as AbstractSet
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from typing_extensions import TypeGuard

__all__ = ("is_bytes_like", "is_collection_value", "is_valid_column_name")


def is_bytes_like(obj: Any) -> "TypeGuard[bytes | bytearray | memoryview]":
    """Check if a value is a bytes-like object.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    return isinstance(obj, (bytes, bytearray, memoryview))


def is_collection_value(obj: Any) -> bool:
    """Check if a value is a container that cannot bind to a scalar placeholder.

    Strings and bytes-like values are scalars here.
    """
    if isinstance(obj, (str, bytes, bytearray, memoryview)):
        return False
    return isinstance(obj, (Mapping, AbstractSet, list, tuple))


def is_valid_column_name(name: Any) -> "TypeGuard[str]":
    """Check that a column name is a non-empty ASCII alphanumeric string."""
    return isinstance(name, str) and name.isascii() and name.isalnum()
