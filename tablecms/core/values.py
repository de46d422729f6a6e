"""Type-tagged JSON value model.

Payload values arrive as plain JSON (``None``, ``bool``, ``int``/``float``,
``str``, ``dict``, ``list``) and rows leave the service in the same shape.
``ValueKind`` names the tag so builders and decoders can branch on it
without repeating ``isinstance`` ladders.
"""
import enum
import json
import math
from typing import Any, Dict, List, Union

Value = Union[None, bool, int, float, str, Dict[str, Any], List[Any]]


class ValueKind(str, enum.Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    OBJECT = "object"
    ARRAY = "array"


def kind_of(value: Any) -> ValueKind:
    """Return the tag of a JSON value. ``bool`` is checked before numbers."""
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, dict):
        return ValueKind.OBJECT
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


def canonical_text(value: Any) -> str:
    """Canonical SQL-ish text of a scalar or JSON text of a nested value."""
    kind = kind_of(value)
    if kind is ValueKind.NULL:
        return "NULL"
    if kind is ValueKind.BOOL:
        return "true" if value else "false"
    if kind is ValueKind.NUMBER:
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"Non-finite number is not a valid value: {value}")
        return repr(value) if isinstance(value, float) else str(value)
    if kind is ValueKind.STRING:
        return value
    return to_json_text(value)


def to_json_text(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
