"""Conversion between structural paths and pointer strings.

A pointer is ``/``-separated with ``~0`` for ``~`` and ``~1`` for ``/``;
the empty string is the whole document.
"""

from __future__ import annotations

import re

from jtab._value import MISSING, JsonKind, kind_of

_INDEX_RE = re.compile(r"0|[1-9]\d*")


def escape_token(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def unescape_token(token: str) -> str:
    # ~1 first so that "~01" decodes to "~1", not "/"
    return token.replace("~1", "/").replace("~0", "~")


def encode_pointer(path: list[str | int]) -> str:
    """Encode a path as a pointer string."""
    if not path:
        return ""
    return "".join("/" + escape_token(str(seg)) for seg in path)


def decode_pointer(pointer: str, root: object) -> list[str | int] | None:
    """Decode a pointer into a path, walking *root* to type each token.

    A numeric token becomes an int index only where the value reached so far
    is a list; anywhere else it stays a string key. Walking past the end of
    the document still succeeds, producing a path that may not exist.
    Returns None when the pointer is malformed.
    """
    if pointer == "":
        return []
    if not pointer.startswith("/"):
        return None

    path: list[str | int] = []
    current: object = root
    for raw in pointer.split("/")[1:]:
        token = unescape_token(raw)
        kind = kind_of(current)
        if kind is JsonKind.LIST and _INDEX_RE.fullmatch(token):
            try:
                idx = int(token)
            except ValueError:
                # more digits than int() accepts
                return None
            path.append(idx)
            current = current[idx] if idx < len(current) else MISSING
        else:
            path.append(token)
            if kind is JsonKind.MAP:
                current = current.get(token, MISSING)
            else:
                current = MISSING
    return path
