"""Fetch-side column coercion.

Declared columns (``{c}`` annotations) are converted to the Python type of
their kind. Undeclared columns are left as the driver returned them, or
stringified when the connection's ``stringify_fetches`` option is on.
"""

from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any, Final, Optional

from sqlbridge.core.parameters import TypeCode
from sqlbridge.exceptions import DatabaseError

__all__ = ("convert_column", "convert_decimal", "stringify_value")


def _convert_integer(value: Any) -> int:
    if isinstance(value, int):
        return int(value)
    if isinstance(value, (float, Decimal)):
        return int(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode("utf-8")
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        return int(Decimal(text))


def _convert_float(value: Any) -> float:
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode("utf-8")
    return float(value)


def convert_decimal(value: Any) -> Decimal:
    """Convert to an exact :class:`~decimal.Decimal`.

    Floats go through their shortest ``repr`` so that ``10.5`` stays
    ``Decimal("10.5")`` rather than the binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode("utf-8")
    return Decimal(str(value).strip())


def _convert_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    return stringify_value(value)


def _convert_blob(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    if hasattr(value, "read"):
        # LOB locators (oracledb, firebird-driver)
        data = value.read()
        return data.encode("utf-8") if isinstance(data, str) else bytes(data)
    return str(value).encode("utf-8")


_CONVERTERS: Final[dict[TypeCode, Callable[[Any], Any]]] = {
    TypeCode.INTEGER: _convert_integer,
    TypeCode.FLOAT: _convert_float,
    TypeCode.DECIMAL: convert_decimal,
    TypeCode.STRING: _convert_string,
    TypeCode.BLOB: _convert_blob,
}


def stringify_value(value: Any) -> Any:
    """Render a scalar the way a stringifying driver would.

    None and bytes pass through unchanged; booleans become ``"1"``/``"0"``.
    """
    if value is None or isinstance(value, (str, bytes)):
        return value
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return str(value)


def convert_column(value: Any, type_code: Optional[TypeCode], stringify: bool = False) -> Any:
    """Coerce one fetched value.

    Args:
        value: Raw driver value
        type_code: Declared kind of the column, or None
        stringify: Stringify undeclared columns

    Raises:
        DatabaseError: The value cannot be represented as the declared kind.

    Returns:
        The coerced value.
    """
    if value is None:
        return None
    if type_code is None:
        return stringify_value(value) if stringify else value
    try:
        return _CONVERTERS[type_code](value)
    except (ValueError, TypeError, OverflowError, InvalidOperation, UnicodeDecodeError) as e:
        msg = f"Cannot convert column value {value!r} to {type_code.name.lower()}"
        raise DatabaseError(msg) from e
