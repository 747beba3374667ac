"""Immutable path-addressed operations over JSON values.

Every mutating function returns a new root and rebuilds only the containers
on the way from the root to the edited node; everything else is shared with
the input. When an operation does not apply (wrong container kind, missing
key, index out of range, key collision) the input object itself is returned,
so ``result is value`` tells the caller nothing changed.
"""

from __future__ import annotations

import logging
from typing import Callable

from jtab._value import MISSING, JsonKind, is_index, is_key, kind_of

logger = logging.getLogger(__name__)

Path = list[str | int]


def read(value: object, path: Path) -> object:
    """Return the node at *path*, or MISSING if the path does not resolve."""
    current = value
    for seg in path:
        kind = kind_of(current)
        if kind is JsonKind.LIST and is_index(seg):
            if seg >= len(current):
                return MISSING
            current = current[seg]
        elif kind is JsonKind.MAP and is_key(seg):
            if seg not in current:
                return MISSING
            current = current[seg]
        else:
            return MISSING
    return current


def exists(value: object, path: Path) -> bool:
    return read(value, path) is not MISSING


def _update(value: object, path: Path, fn: Callable[[object], object]) -> object:
    """Apply *fn* to the node at *path* and rebuild its ancestor chain."""
    if not path:
        return fn(value)

    head = path[0]
    kind = kind_of(value)
    if kind is JsonKind.LIST and is_index(head):
        if head >= len(value):
            return value
        child = value[head]
        new_child = _update(child, path[1:], fn)
        if new_child is child:
            return value
        new_list = list(value)
        new_list[head] = new_child
        return new_list

    if kind is JsonKind.MAP and is_key(head):
        if head not in value:
            return value
        child = value[head]
        new_child = _update(child, path[1:], fn)
        if new_child is child:
            return value
        new_map = dict(value)
        new_map[head] = new_child
        return new_map

    return value


def write(value: object, path: Path, new_leaf: object) -> object:
    """Replace the node at *path* with *new_leaf*.

    An empty path replaces the whole document. The last segment may name a
    new key of an existing mapping; a list slot must already exist.
    """
    if not path:
        return new_leaf

    last = path[-1]

    def _set(node: object) -> object:
        kind = kind_of(node)
        if kind is JsonKind.LIST and is_index(last):
            if last >= len(node) or node[last] is new_leaf:
                return node
            new_list = list(node)
            new_list[last] = new_leaf
            return new_list
        if kind is JsonKind.MAP and is_key(last):
            if node.get(last, MISSING) is new_leaf:
                return node
            new_map = dict(node)
            new_map[last] = new_leaf
            return new_map
        return node

    result = _update(value, path[:-1], _set)
    if result is value:
        logger.debug("write at %r did not apply", path)
    return result


def insert_key(value: object, object_path: Path, key: str, new_value: object) -> object:
    """Add *key* to the mapping at *object_path*; never overwrites."""

    def _insert(node: object) -> object:
        if kind_of(node) is not JsonKind.MAP or key in node:
            return node
        new_map = dict(node)
        new_map[key] = new_value
        return new_map

    return _update(value, object_path, _insert)


def append_item(value: object, array_path: Path, new_value: object) -> object:
    """Append *new_value* to the list at *array_path*."""

    def _append(node: object) -> object:
        if kind_of(node) is not JsonKind.LIST:
            return node
        return [*node, new_value]

    return _update(value, array_path, _append)


def delete_at(value: object, path: Path) -> object:
    """Remove the list slot or mapping entry at *path*. The root cannot be deleted."""
    if not path:
        return value

    last = path[-1]

    def _delete(node: object) -> object:
        kind = kind_of(node)
        if kind is JsonKind.LIST and is_index(last):
            if last >= len(node):
                return node
            return node[:last] + node[last + 1 :]
        if kind is JsonKind.MAP and is_key(last):
            if last not in node:
                return node
            return {k: v for k, v in node.items() if k != last}
        return node

    return _update(value, path[:-1], _delete)


def rename_key(value: object, parent_path: Path, old_key: str, new_key: str) -> object:
    """Rename *old_key* to *new_key* in the mapping at *parent_path*.

    The entry keeps its position among its siblings. Nothing happens when
    *old_key* is absent or *new_key* is already taken.
    """

    def _rename(node: object) -> object:
        if kind_of(node) is not JsonKind.MAP:
            return node
        if old_key not in node or new_key in node:
            return node
        return {(new_key if k == old_key else k): v for k, v in node.items()}

    return _update(value, parent_path, _rename)
