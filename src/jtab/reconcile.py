"""Apply edits to the current document and keep its canonical text in sync."""

from __future__ import annotations

import json
import logging
import math
import re

from jtab import document
from jtab._nested import decode_nested_json, strict_loads
from jtab._pointer import decode_pointer
from jtab._value import MISSING, JsonKind, kind_of

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100
INDENT = 4

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


class ValidationError(ValueError):
    """Typed text cannot be converted to the type of the value it replaces."""


def canonical_text(value: object) -> str:
    return json.dumps(value, indent=INDENT, ensure_ascii=False, allow_nan=False)


def editor_text(value: object) -> str:
    """Text shown when a value is opened for editing."""
    kind = kind_of(value)
    if value is MISSING or kind is JsonKind.NULL:
        return ""
    if kind is JsonKind.STRING:
        return value
    if kind in (JsonKind.BOOL, JsonKind.NUMBER):
        return json.dumps(value)
    try:
        return canonical_text(value)
    except (TypeError, ValueError):
        return str(value)


def _parse_number(text: str) -> int | float | None:
    if not _NUMBER_RE.match(text):
        return None
    if re.match(r"^[+-]?\d+$", text):
        try:
            return int(text)
        except ValueError:
            # more digits than int() accepts
            return None
    number = float(text)
    if not math.isfinite(number):
        return None
    return number


def coerce_text(original: object, text: str) -> object:
    """Convert typed text into a value, guided by the value it replaces.

    Raises ValidationError when a number or boolean cell gets text of
    another type.
    """
    kind = kind_of(original)
    trimmed = text.strip()

    if kind is JsonKind.STRING:
        return text

    if kind is JsonKind.NUMBER:
        if trimmed in ("", "null"):
            return None
        number = _parse_number(trimmed)
        if number is None:
            raise ValidationError(f"Invalid number: {trimmed!r}")
        return number

    if kind is JsonKind.BOOL:
        if trimmed in ("", "null"):
            return None
        if trimmed == "true":
            return True
        if trimmed == "false":
            return False
        raise ValidationError(f"Expected true or false: {trimmed!r}")

    if trimmed:
        try:
            return strict_loads(trimmed)
        except ValueError:
            pass
    if trimmed in ("", "null"):
        return None
    if trimmed == "true":
        return True
    if trimmed == "false":
        return False
    number = _parse_number(trimmed)
    if number is not None and json.dumps(number) == trimmed:
        return number
    return text


def apply_pointer_edit(current: object, pointer: str, value: object) -> object:
    """Write *value* at *pointer*, resolved against the current document.

    Returns *current* itself when the pointer is malformed or no longer
    addresses an existing node.
    """
    path = decode_pointer(pointer, current)
    if path is None:
        logger.debug("malformed pointer %r", pointer)
        return current
    if not document.exists(current, path):
        logger.debug("pointer %r no longer resolves", pointer)
        return current
    return document.write(current, path, value)


class DocumentSession:
    """The single in-flight document with bounded undo/redo history.

    Every mutating method returns True when the document changed.
    """

    def __init__(self, value: object = None, *, history_limit: int = HISTORY_LIMIT) -> None:
        self.value: object = value
        self.text: str = canonical_text(value)
        self.history_limit = history_limit
        self.undo_stack: list[object] = []
        self.redo_stack: list[object] = []

    @classmethod
    def from_text(cls, text: str, **kwargs) -> DocumentSession:
        return cls(decode_nested_json(text.strip()), **kwargs)

    def load_text(self, text: str) -> None:
        """Replace the document with parsed *text*. Raises NestedJsonError."""
        value = decode_nested_json(text.strip())
        self._commit(value)

    def _push(self, stack: list[object], value: object) -> None:
        stack.append(value)
        if len(stack) > self.history_limit:
            del stack[0]

    def _commit(self, updated: object) -> bool:
        if updated is self.value:
            return False
        self._push(self.undo_stack, self.value)
        self.redo_stack.clear()
        self.value = updated
        self.text = canonical_text(updated)
        return True

    def edit_value(self, path: list[str | int], value: object) -> bool:
        """Replace an existing node; a path that no longer resolves is refused."""
        if not document.exists(self.value, path):
            return False
        return self._commit(document.write(self.value, path, value))

    def edit_at_pointer(self, pointer: str, value: object) -> bool:
        return self._commit(apply_pointer_edit(self.value, pointer, value))

    def add_key(self, object_path: list[str | int], key: str, value: object) -> bool:
        key = key.strip()
        if not key:
            return False
        return self._commit(document.insert_key(self.value, object_path, key, value))

    def append_item(self, array_path: list[str | int], value: object) -> bool:
        return self._commit(document.append_item(self.value, array_path, value))

    def delete(self, path: list[str | int]) -> bool:
        if not path:
            return False
        return self._commit(document.delete_at(self.value, path))

    def rename_key(self, parent_path: list[str | int], old_key: str, new_key: str) -> bool:
        new_key = new_key.strip()
        if not new_key:
            return False
        return self._commit(document.rename_key(self.value, parent_path, old_key, new_key))

    def undo(self) -> bool:
        if not self.undo_stack:
            return False
        self._push(self.redo_stack, self.value)
        self.value = self.undo_stack.pop()
        self.text = canonical_text(self.value)
        return True

    def redo(self) -> bool:
        if not self.redo_stack:
            return False
        self._push(self.undo_stack, self.value)
        self.value = self.redo_stack.pop()
        self.text = canonical_text(self.value)
        return True
