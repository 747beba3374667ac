"""Classify what kind of path segment is being typed at the cursor."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

ROOT_MARKER = "$"
QUOTES = "'\""


class ContextKind(Enum):
    ROOT = auto()
    DOT = auto()
    DESCENDANT = auto()
    BRACKET_STRING = auto()
    BRACKET_INDEX = auto()
    NONE = auto()


@dataclass(frozen=True)
class CompletionContext:
    kind: ContextKind
    start: int  # replace range, half-open
    end: int
    base: str = ""
    partial: str = ""
    quote: str = ""  # opening quote of a bracket string


def _escaped(text: str, i: int) -> bool:
    return i > 0 and text[i - 1] == "\\"


def find_last_top_level_dot(prefix: str) -> int:
    """Index of the last ``.`` outside brackets and quotes, or -1.

    Scans backward: ``]`` opens a bracket, ``[`` closes it, and a quote is
    closed by the same unescaped quote character.
    """
    depth = 0
    quote = ""
    for i in range(len(prefix) - 1, -1, -1):
        ch = prefix[i]
        if quote:
            if ch == quote and not _escaped(prefix, i):
                quote = ""
            continue
        if ch in QUOTES:
            if not _escaped(prefix, i):
                quote = ch
            continue
        if ch == "]":
            depth += 1
        elif ch == "[":
            depth = max(0, depth - 1)
        elif ch == "." and depth == 0:
            return i
    return -1


def find_open_bracket(prefix: str) -> int:
    """Index of the most recent ``[`` not yet closed by ``]``, or -1."""
    opened: list[int] = []
    quote = ""
    for i, ch in enumerate(prefix):
        if quote:
            if ch == quote and not _escaped(prefix, i):
                quote = ""
            continue
        if ch in QUOTES and not _escaped(prefix, i):
            quote = ch
        elif ch == "[":
            opened.append(i)
        elif ch == "]" and opened:
            opened.pop()
    return opened[-1] if opened else -1


def analyze(expr: str, cursor: int) -> CompletionContext:
    """Classify the completion context of *expr* with the cursor at *cursor*."""
    cursor = max(0, min(cursor, len(expr)))
    prefix = expr[:cursor]
    if not prefix.startswith(ROOT_MARKER):
        return CompletionContext(ContextKind.ROOT, 0, cursor)

    # A dot inside an unclosed bracket (e.g. a filter) is not a segment dot.
    bracket = find_open_bracket(prefix)
    dot = find_last_top_level_dot(prefix) if bracket < 0 else -1

    if dot >= 1:
        if prefix[dot - 1] == ".":
            base = prefix[: dot + 1]
            return CompletionContext(
                ContextKind.DESCENDANT, len(base), cursor, base, prefix[dot + 1 :]
            )
        return CompletionContext(
            ContextKind.DOT, dot, cursor, prefix[:dot], prefix[dot + 1 :]
        )

    if bracket >= 0:
        base = prefix[:bracket]
        after = prefix[bracket + 1 :]
        stripped = after.lstrip()
        if stripped.startswith("?(") or stripped.startswith("("):
            return CompletionContext(ContextKind.NONE, cursor, cursor, base, after)
        if after[:1] in ("'", '"'):
            return CompletionContext(
                ContextKind.BRACKET_STRING,
                bracket,
                cursor,
                base,
                after[1:],
                quote=after[0],
            )
        return CompletionContext(ContextKind.BRACKET_INDEX, bracket, cursor, base, after)

    return CompletionContext(ContextKind.ROOT, 0, cursor)
