"""
Typed argument values for transactions and scripts.

A typed value is a JSON object of the form ``{"type": "String", "value": "hi"}``.
Values travel as their canonical JSON encoding.
"""
import json
from typing import Any, Dict, List

from .exceptions import ArgumentParseError

TypedValue = Dict[str, Any]


def _check_typed_value(value: Any, position: int) -> TypedValue:
    if not isinstance(value, dict):
        raise ArgumentParseError(
            f"argument {position} must be an object, got {type(value).__name__}"
        )
    if not isinstance(value.get("type"), str) or not value["type"]:
        raise ArgumentParseError(f"argument {position} is missing a type")
    if "value" not in value and value["type"] != "Void":
        raise ArgumentParseError(f"argument {position} of type {value['type']} is missing a value")
    return value


def encode_argument(value: TypedValue) -> bytes:
    """Encode a typed value as canonical JSON bytes."""
    _check_typed_value(value, 0)
    return json.dumps(value, sort_keys=True, separators=(",", ":")).encode("utf-8")


def decode_argument(data: bytes) -> TypedValue:
    """
    Decode canonical JSON bytes into a typed value.

    Raises:
        ArgumentParseError: If the bytes are not a valid typed value
    """
    try:
        value = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ArgumentParseError(f"invalid argument encoding: {e}")
    return _check_typed_value(value, 0)


def parse_arguments_json(text: str) -> List[TypedValue]:
    """
    Parse a JSON array of typed values.

    Args:
        text: JSON text, e.g. ``[{"type": "UInt64", "value": "10"}]``

    Returns:
        Ordered list of typed values

    Raises:
        ArgumentParseError: If the text is not an array of typed values
    """
    try:
        values = json.loads(text)
    except ValueError as e:
        raise ArgumentParseError(f"arguments are not valid JSON: {e}")
    if not isinstance(values, list):
        raise ArgumentParseError("arguments must be a JSON array")
    return [_check_typed_value(v, i) for i, v in enumerate(values)]
