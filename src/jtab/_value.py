"""JSON value kinds shared by the document and sampling modules."""

from __future__ import annotations

from enum import Enum, auto


class JsonKind(Enum):
    NULL = auto()
    BOOL = auto()
    NUMBER = auto()
    STRING = auto()
    LIST = auto()
    MAP = auto()


class _Missing:
    """Marker for a value that does not exist (distinct from JSON null)."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def kind_of(value: object) -> JsonKind | None:
    """Classify a JSON value. Returns None for MISSING or non-JSON objects."""
    if value is None:
        return JsonKind.NULL
    # bool first: it is an int subclass
    if isinstance(value, bool):
        return JsonKind.BOOL
    if isinstance(value, (int, float)):
        return JsonKind.NUMBER
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, list):
        return JsonKind.LIST
    if isinstance(value, dict):
        return JsonKind.MAP
    return None


def is_index(segment: object) -> bool:
    """True for an Index path segment (non-negative int, never bool)."""
    return isinstance(segment, int) and not isinstance(segment, bool) and segment >= 0


def is_key(segment: object) -> bool:
    return isinstance(segment, str)
