"""Parameter kinds, native parameter styles and positional binding.

Components:
- TypeCode enum: the five value kinds shared by placeholders (``%c``) and
  column annotations (``{c}``)
- ParameterStyle enum: native marker syntax a driver expects
- BoundValue: explicit (kind, value) pair used by the CRUD helpers
- bind_parameters: pairs parsed placeholders with caller values
"""

import datetime
from collections.abc import Callable, Mapping, Sequence
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Final

from mypy_extensions import mypyc_attr

from sqlbridge.exceptions import ExtraParameterError, MissingParameterError, ParameterError
from sqlbridge.utils.type_guards import is_bytes_like, is_collection_value

if TYPE_CHECKING:
    from sqlbridge.core.compiler import ParsedQuery

__all__ = (
    "BoundValue",
    "ParameterStyle",
    "TypeCode",
    "bind_parameters",
    "coerce_parameter",
    "infer_type_code",
    "placeholder_for",
)


class TypeCode(str, Enum):
    """Logical value kind.

    - INTEGER: ``%i`` / ``{i}``
    - FLOAT: ``%f`` / ``{f}``
    - DECIMAL: ``%d`` / ``{d}``
    - STRING: ``%s`` / ``{s}``
    - BLOB: ``%b`` / ``{b}``
    """

    INTEGER = "i"
    FLOAT = "f"
    DECIMAL = "d"
    STRING = "s"
    BLOB = "b"

    @property
    def placeholder(self) -> str:
        """Template placeholder text for this kind."""
        return f"%{self.value}"


TYPE_CODE_LETTERS: Final[frozenset[str]] = frozenset(code.value for code in TypeCode)


class ParameterStyle(str, Enum):
    """Native parameter marker styles.

    - QMARK: ? placeholders
    - POSITIONAL_PYFORMAT: %s placeholders
    - POSITIONAL_COLON: :1, :2 placeholders
    """

    QMARK = "qmark"
    POSITIONAL_PYFORMAT = "pyformat_positional"
    POSITIONAL_COLON = "positional_colon"

    def marker(self, ordinal: int) -> str:
        """Return the native marker for the placeholder at ``ordinal`` (0-indexed)."""
        if self is ParameterStyle.QMARK:
            return "?"
        if self is ParameterStyle.POSITIONAL_PYFORMAT:
            return "%s"
        return f":{ordinal + 1}"

    @property
    def escapes_percent(self) -> bool:
        """Whether a literal ``%`` must be doubled for the driver's formatter."""
        return self is ParameterStyle.POSITIONAL_PYFORMAT


@mypyc_attr(allow_interpreted_subclasses=False)
class BoundValue:
    """A value tagged with the placeholder kind it binds to.

    Attributes:
        kind: The placeholder kind
        value: The payload
    """

    __slots__ = ("kind", "value")

    def __init__(self, kind: TypeCode, value: Any) -> None:
        self.kind = kind
        self.value = value

    @classmethod
    def infer(cls, value: Any) -> "BoundValue":
        """Tag ``value`` with the kind returned by :func:`infer_type_code`."""
        if isinstance(value, BoundValue):
            return value
        return cls(infer_type_code(value), value)

    @property
    def placeholder(self) -> str:
        return self.kind.placeholder

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoundValue):
            return False
        return self.kind == other.kind and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.kind, self.value))

    def __repr__(self) -> str:
        return f"BoundValue({self.kind.name}, {self.value!r})"


def infer_type_code(value: Any) -> TypeCode:
    """Infer a placeholder kind from a literal value.

    Booleans and integers bind as INTEGER, floats as FLOAT, everything else as STRING.
    """
    if isinstance(value, BoundValue):
        return value.kind
    if isinstance(value, (bool, int)):
        return TypeCode.INTEGER
    if isinstance(value, float):
        return TypeCode.FLOAT
    return TypeCode.STRING


def placeholder_for(value: Any) -> str:
    """Return the template placeholder (``%i``, ``%f`` or ``%s``) for ``value``."""
    return infer_type_code(value).placeholder


def _to_string(value: Any) -> Any:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    return value


def _to_decimal(value: Any) -> Any:
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, int):
        return Decimal(value)
    return value


def _to_blob(value: Any) -> Any:
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return value


_KIND_NORMALIZERS: Final[dict[TypeCode, Callable[[Any], Any]]] = {
    TypeCode.INTEGER: lambda v: int(v) if isinstance(v, bool) else v,
    TypeCode.FLOAT: lambda v: float(v) if isinstance(v, int) and not isinstance(v, bool) else v,
    TypeCode.DECIMAL: _to_decimal,
    TypeCode.STRING: _to_string,
    TypeCode.BLOB: _to_blob,
}


def coerce_parameter(
    kind: TypeCode, value: Any, coercion_map: "Mapping[type, Callable[[Any], Any]] | None" = None
) -> Any:
    """Normalize one value for the placeholder kind it binds to.

    The kind is advisory: values are normalized, not type checked, apart from
    rejecting containers that no scalar placeholder can take.

    Args:
        kind: Placeholder kind
        value: Caller value, optionally wrapped in :class:`BoundValue`
        coercion_map: Driver-specific conversions keyed by exact Python type

    Raises:
        ParameterError: ``value`` is a container.

    Returns:
        The value to hand to the driver.
    """
    if isinstance(value, BoundValue):
        value = value.value
    if value is None:
        return None
    if is_collection_value(value) or (is_bytes_like(value) and kind is not TypeCode.BLOB and kind is not TypeCode.STRING):
        msg = f"Cannot bind {type(value).__name__} value to placeholder {kind.placeholder}"
        raise ParameterError(msg)
    value = _KIND_NORMALIZERS[kind](value)
    if coercion_map:
        converter = coercion_map.get(type(value))
        if converter is not None:
            value = converter(value)
    return value


def bind_parameters(
    parsed: "ParsedQuery",
    args: "Sequence[Any]",
    coercion_map: "Mapping[type, Callable[[Any], Any]] | None" = None,
) -> "tuple[Any, ...]":
    """Pair placeholders with values positionally.

    Args:
        parsed: The compiled template
        args: One value per placeholder, in template order
        coercion_map: Driver-specific conversions

    Raises:
        MissingParameterError: Fewer values than placeholders.
        ExtraParameterError: More values than placeholders.

    Returns:
        Tuple of driver-ready values.
    """
    expected = len(parsed.placeholders)
    supplied = len(args)
    if supplied < expected:
        msg = f"Expected {expected} parameter(s) but {supplied} supplied"
        raise MissingParameterError(msg, parsed.sql)
    if supplied > expected:
        msg = f"Expected {expected} parameter(s) but {supplied} supplied"
        raise ExtraParameterError(msg, parsed.sql)
    return tuple(coerce_parameter(kind, value, coercion_map) for kind, value in zip(parsed.placeholders, args))
