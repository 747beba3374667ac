"""JSONPath evaluation returning matches with reverse pointers."""

from __future__ import annotations

import re
from dataclasses import dataclass

from jtab._nested import strict_loads
from jtab._pointer import encode_pointer
from jtab._value import JsonKind, kind_of

_NAME_STOP = ".["
_SLICE_RE = re.compile(r"^\s*(-?\d*)\s*:\s*(-?\d*)\s*(?::\s*(-?\d*)\s*)?$")
_INT_RE = re.compile(r"^\s*-?\d+\s*$")


class JsonPathError(ValueError):
    """Raised for expressions that cannot be parsed."""


@dataclass
class Match:
    value: object
    pointer: str
    path: str  # normalized form, e.g. $['a'][0]
    segments: list[str | int]


@dataclass
class _Step:
    descendant: bool
    selectors: list[tuple]


def evaluate(expression: str, data: object) -> list[Match]:
    """Evaluate a JSONPath expression against data.

    Supports:
    - $ (root)
    - .key / ['key'] (child)
    - [n] (array index, negative counts from the end)
    - [start:stop:step] (slice)
    - [a,b] (union)
    - * / [*] (wildcard)
    - .. (recursive descent)
    - [?(@.key op value)] (filter)
    """
    steps = parse_jsonpath(expression)
    nodes: list[tuple[list[str | int], object]] = [([], data)]
    for step in steps:
        if step.descendant:
            nodes = [d for path, value in nodes for d in _descendants(path, value)]
        selected: list[tuple[list[str | int], object]] = []
        for path, value in nodes:
            for selector in step.selectors:
                selected.extend(_select(path, value, selector))
        nodes = selected
    return [
        Match(value, encode_pointer(path), normalized_path(path), path)
        for path, value in nodes
    ]


def normalized_path(path: list[str | int]) -> str:
    parts = ["$"]
    for seg in path:
        if isinstance(seg, int):
            parts.append(f"[{seg}]")
        else:
            escaped = seg.replace("\\", "\\\\").replace("'", "\\'")
            parts.append(f"['{escaped}']")
    return "".join(parts)


# -- Parsing ---------------------------------------------------------------


def parse_jsonpath(expression: str) -> list[_Step]:
    """Split an expression into steps. Raises JsonPathError on bad syntax."""
    expr = expression.strip()
    if not expr.startswith("$"):
        raise JsonPathError("JSONPath must start with $")

    steps: list[_Step] = []
    pos = 1
    while pos < len(expr):
        if expr.startswith("..", pos):
            pos += 2
            if pos < len(expr) and expr[pos] == "[":
                selectors, pos = _parse_bracket(expr, pos)
            else:
                selectors, pos = _parse_name(expr, pos)
            steps.append(_Step(True, selectors))
        elif expr[pos] == ".":
            selectors, pos = _parse_name(expr, pos + 1)
            steps.append(_Step(False, selectors))
        elif expr[pos] == "[":
            selectors, pos = _parse_bracket(expr, pos)
            steps.append(_Step(False, selectors))
        else:
            raise JsonPathError(f"Unexpected character {expr[pos]!r} at {pos}")
    return steps


def _parse_name(expr: str, pos: int) -> tuple[list[tuple], int]:
    end = pos
    while end < len(expr) and expr[end] not in _NAME_STOP:
        end += 1
    name = expr[pos:end].strip()
    if not name:
        raise JsonPathError(f"Expected a name at {pos}")
    if name == "*":
        return [("wildcard",)], end
    return [("name", name)], end


def _find_bracket_end(expr: str, pos: int) -> int:
    """Index of the ``]`` closing the bracket opened at *pos*."""
    quote = ""
    parens = 0
    i = pos + 1
    while i < len(expr):
        ch = expr[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = ""
        elif ch in "'\"":
            quote = ch
        elif ch == "(":
            parens += 1
        elif ch == ")":
            parens -= 1
        elif ch == "]" and parens <= 0:
            return i
        i += 1
    raise JsonPathError("Unclosed bracket")


def _split_union(content: str) -> list[str]:
    parts: list[str] = []
    quote = ""
    start = 0
    i = 0
    while i < len(content):
        ch = content[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = ""
        elif ch in "'\"":
            quote = ch
        elif ch == ",":
            parts.append(content[start:i])
            start = i + 1
        i += 1
    parts.append(content[start:])
    return parts


def _unquote(token: str) -> str:
    quote = token[0]
    if len(token) < 2 or token[-1] != quote:
        raise JsonPathError(f"Unterminated string {token!r}")
    out: list[str] = []
    i = 1
    while i < len(token) - 1:
        ch = token[i]
        if ch == "\\" and i + 1 < len(token) - 1:
            out.append(token[i + 1])
            i += 2
            continue
        if ch == quote:
            raise JsonPathError(f"Unescaped quote in {token!r}")
        out.append(ch)
        i += 1
    return "".join(out)


def _to_int(token: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise JsonPathError(f"Index out of range: {token.strip()[:20]}") from None


def _parse_bracket(expr: str, pos: int) -> tuple[list[tuple], int]:
    end = _find_bracket_end(expr, pos)
    content = expr[pos + 1 : end].strip()
    after = end + 1
    if not content:
        raise JsonPathError(f"Empty brackets at {pos}")

    if content.startswith("?(") or content.startswith("("):
        if not content.endswith(")"):
            raise JsonPathError("Unclosed filter expression")
        if content.startswith("("):
            raise JsonPathError("Script expressions are not supported")
        return [("filter", _parse_filter(content[2:-1]))], after

    selectors: list[tuple] = []
    for part in _split_union(content):
        token = part.strip()
        if not token:
            raise JsonPathError(f"Empty selector in [{content}]")
        if token == "*":
            selectors.append(("wildcard",))
        elif token[0] in "'\"":
            selectors.append(("name", _unquote(token)))
        elif _INT_RE.match(token):
            selectors.append(("index", _to_int(token)))
        elif _SLICE_RE.match(token):
            groups = _SLICE_RE.match(token).groups()
            start, stop, step = (_to_int(g) if g else None for g in groups)
            if step == 0:
                raise JsonPathError("Slice step cannot be zero")
            selectors.append(("slice", start, stop, step))
        else:
            selectors.append(("name", token))
    return selectors, after


def _parse_filter(condition: str) -> tuple[list[_Step], str, object]:
    path, op, value = parse_jsonpath_filter(condition.strip())
    path = path.strip()
    if not path.startswith("@"):
        raise JsonPathError(f"Filter must start with @: {condition!r}")
    return parse_jsonpath("$" + path[1:]), op, value


# -- Selection -------------------------------------------------------------


def _children(path: list[str | int], value: object):
    kind = kind_of(value)
    if kind is JsonKind.MAP:
        for k, v in value.items():
            yield path + [k], v
    elif kind is JsonKind.LIST:
        for i, v in enumerate(value):
            yield path + [i], v


def _descendants(path: list[str | int], value: object):
    """Node and all nodes below it, in document order."""
    stack = [(path, value)]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(_children(*current))))


def _select(path: list[str | int], value: object, selector: tuple):
    kind = kind_of(value)
    name = selector[0]
    if name == "wildcard":
        yield from _children(path, value)
    elif name == "name":
        key = selector[1]
        if kind is JsonKind.MAP and key in value:
            yield path + [key], value[key]
    elif name == "index":
        idx = selector[1]
        if kind is JsonKind.LIST:
            if idx < 0:
                idx += len(value)
            if 0 <= idx < len(value):
                yield path + [idx], value[idx]
        elif kind is JsonKind.MAP and str(idx) in value:
            yield path + [str(idx)], value[str(idx)]
    elif name == "slice":
        if kind is JsonKind.LIST:
            for i in range(*slice(*selector[1:]).indices(len(value))):
                yield path + [i], value[i]
    elif name == "filter":
        for child_path, child in _children(path, value):
            if _filter_matches(child, selector[1]):
                yield child_path, child


def _filter_matches(value: object, condition: tuple[list[_Step], str, object]) -> bool:
    steps, op, expected = condition
    nodes: list[object] = [value]
    for step in steps:
        if step.descendant:
            nodes = [d for n in nodes for _, d in _descendants([], n)]
        nodes = [v for n in nodes for s in step.selectors for _, v in _select([], n, s)]
    if not op:
        return bool(nodes)
    return any(jsonpath_value_matches(actual, op, expected) for actual in nodes)


def parse_jsonpath_filter(pattern: str) -> tuple[str, str, object]:
    """Parse JSONPath with optional value filter.

    Supports:
      @.path==value   (equals, also = and ===)
      @.path!=value   (not equals)
      @.path>value    (greater than)
      @.path<value    (less than)
      @.path>=value   (greater or equal)
      @.path<=value   (less or equal)
      @.path~regex    (regex match)

    Returns (path, operator, value) or (path, "", None) if no filter.
    """
    operators = ["===", "==", "!=", ">=", "<=", "~", "=", ">", "<"]
    for op in operators:
        idx = 0
        bracket_depth = 0
        while idx < len(pattern):
            ch = pattern[idx]
            if ch == "[":
                bracket_depth += 1
            elif ch == "]":
                bracket_depth -= 1
            elif bracket_depth == 0 and pattern[idx:].startswith(op):
                path = pattern[:idx]
                value_str = pattern[idx + len(op) :]
                value = parse_json_value(value_str)
                return (path, "=" if op in ("===", "==") else op, value)
            idx += 1

    return (pattern, "", None)


def parse_json_value(value_str: str) -> object:
    """Parse a value string into Python object."""
    value_str = value_str.strip()
    if not value_str:
        return None

    try:
        return strict_loads(value_str)
    except ValueError:
        pass

    if len(value_str) >= 2 and value_str[0] == "'" and value_str[-1] == "'":
        return value_str[1:-1]

    return value_str


def jsonpath_value_matches(actual: object, op: str, expected: object) -> bool:
    """Check if actual value matches the expected value with given operator."""
    if op == "=" or op == "==":
        return actual == expected
    elif op == "!=":
        return actual != expected
    elif op == ">":
        try:
            return actual > expected
        except TypeError:
            return False
    elif op == "<":
        try:
            return actual < expected
        except TypeError:
            return False
    elif op == ">=":
        try:
            return actual >= expected
        except TypeError:
            return False
    elif op == "<=":
        try:
            return actual <= expected
        except TypeError:
            return False
    elif op == "~":
        if not isinstance(actual, str):
            actual = str(actual)
        pattern = expected if isinstance(expected, str) else str(expected)
        try:
            return bool(re.search(pattern, actual))
        except re.error:
            return False
    return False
