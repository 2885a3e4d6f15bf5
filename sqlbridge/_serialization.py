"""JSON encoding backed by msgspec."""

from typing import Any

import msgspec

from sqlbridge.exceptions import SerializationError

__all__ = ("decode_json", "encode_json")

_decoder = msgspec.json.Decoder()


def _default(value: Any) -> Any:
    return str(value)


def encode_json(data: Any, *, as_bytes: bool = False) -> "str | bytes":
    """Encode ``data`` as JSON with keys in sorted order.

    Values msgspec cannot encode natively fall back to ``str()``.

    Raises:
        SerializationError: If the value cannot be encoded.
    """
    try:
        encoded = msgspec.json.encode(data, enc_hook=_default, order="sorted")
    except (TypeError, msgspec.EncodeError) as e:
        msg = f"Failed encoding value as JSON: {e}"
        raise SerializationError(msg) from e
    return encoded if as_bytes else encoded.decode("utf-8")


def decode_json(data: "str | bytes") -> Any:
    """Decode a JSON document."""
    try:
        return _decoder.decode(data)
    except msgspec.DecodeError as e:
        msg = f"Failed decoding JSON: {e}"
        raise SerializationError(msg) from e
