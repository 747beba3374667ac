"""Decode JSON documents whose string values hold more JSON."""

from __future__ import annotations

import json
import math

from jtab._value import JsonKind, kind_of


class NestedJsonError(ValueError):
    """Raised when the outer document is not valid JSON."""


def _reject_constant(name: str) -> object:
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text: str) -> float:
    number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"{text} is out of range")
    return number


def strict_loads(text: str) -> object:
    """``json.loads`` without the NaN/Infinity extension.

    Raises ValueError for malformed text, for non-finite numbers and for
    integers longer than ``int()`` accepts.
    """
    return json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)


def _looks_like_json(value: str) -> bool:
    # Containers and string literals only; "2222..." must stay a string.
    stripped = value.strip()
    return bool(stripped) and stripped[0] in '{["'


def decode_value(value: object) -> object:
    """Re-parse string leaves that contain JSON, recursively."""
    kind = kind_of(value)
    if kind is JsonKind.STRING:
        if not _looks_like_json(value):
            return value
        try:
            parsed = strict_loads(value)
        except ValueError:
            return value
        return decode_value(parsed)
    if kind is JsonKind.LIST:
        return [decode_value(item) for item in value]
    if kind is JsonKind.MAP:
        return {k: decode_value(v) for k, v in value.items()}
    return value


def decode_nested_json(text: str) -> object:
    try:
        root = strict_loads(text)
    except ValueError as exc:
        raise NestedJsonError(str(exc)) from exc
    return decode_value(root)
