"""Autocomplete suggestions for JSONPath expressions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from jtab._context import CompletionContext, ContextKind, analyze
from jtab._jsonpath import JsonPathError, evaluate, parse_jsonpath
from jtab._sample import (
    DEFAULT_MAX_NODES,
    Sample,
    collect_key_samples,
    sort_keys,
    to_sample,
)
from jtab._value import JsonKind, kind_of

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 12
MAX_KEY_SUGGESTIONS = 80
MAX_BASE_MATCHES = 40
INDEX_SUGGESTIONS = 3

ROOT_SHORTCUTS = ["$", "$.*", "$..*", "$[*]"]

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


@dataclass(frozen=True)
class Suggestion:
    label: str  # full expression shown in the list
    value: str  # fragment spliced into the replace range
    sample: str = ""
    sample_title: str = ""


@dataclass(frozen=True)
class SuggestionResult:
    items: list[Suggestion]
    start: int
    end: int


def is_identifier_key(key: str) -> bool:
    return bool(_IDENTIFIER_RE.match(key))


def quote_key(key: str, quote: str = "'") -> str:
    escaped = key.replace("\\", "\\\\").replace(quote, "\\" + quote)
    return f"[{quote}{escaped}{quote}]"


def _item(label: str, value: str, sample: Sample | None = None) -> Suggestion:
    if sample is None:
        return Suggestion(label, value)
    return Suggestion(label, value, sample.display, sample.full)


def _prefix_filter(keys: list[str], partial: str) -> list[str]:
    if not partial:
        return keys
    lowered = partial.lower()
    return [k for k in keys if k.lower().startswith(lowered)]


def root_suggestions(document: object, max_keys: int = MAX_KEY_SUGGESTIONS) -> list[Suggestion]:
    items = [_item(s, s) for s in ROOT_SHORTCUTS]
    if kind_of(document) is JsonKind.MAP:
        for key in sort_keys(document)[:max_keys]:
            seg = f"$.{key}" if is_identifier_key(key) else "$" + quote_key(key)
            items.append(_item(seg, seg, to_sample(document[key])))
    return items


def _descendant_suggestions(
    ctx: CompletionContext, document: object, max_keys: int, max_nodes: int
) -> list[Suggestion]:
    partial = ctx.partial.strip()
    samples = collect_key_samples(document, max_nodes)
    items: list[Suggestion] = []
    if not partial or "*".startswith(partial):
        items.append(_item(ctx.base + "*", "*"))
    for key in _prefix_filter(sort_keys(samples), partial)[:max_keys]:
        items.append(_item(ctx.base + key, key, samples[key]))
    return items


def _array_suggestions(ctx: CompletionContext, matches: list[object]) -> list[Suggestion]:
    arrays = [m for m in matches if kind_of(m) is JsonKind.LIST]
    longest = max(len(a) for a in arrays)
    first = arrays[0]
    partial = ctx.partial.strip() if ctx.kind is ContextKind.BRACKET_INDEX else ""

    options = ["[*]"] + [f"[{i}]" for i in range(min(longest, INDEX_SUGGESTIONS))]
    items: list[Suggestion] = []
    for opt in options:
        if partial and not (opt.startswith(f"[{partial}") or opt.startswith(partial)):
            continue
        sample: Sample | None = None
        if opt == "[*]":
            sample = to_sample(first[0] if first else first)
        else:
            i = int(opt[1:-1])
            if i < len(first):
                sample = to_sample(first[i])
        if sample is None:
            sample = Sample(f"len={longest}", f"len={longest}")
        items.append(_item(ctx.base + opt, opt, sample))
    return items


def _key_suggestions(
    ctx: CompletionContext, matches: list[object], max_keys: int
) -> list[Suggestion]:
    samples: dict[str, Sample] = {}
    for m in matches:
        if kind_of(m) is not JsonKind.MAP:
            continue
        for k, v in m.items():
            if k not in samples:
                samples[k] = to_sample(v)

    partial = ""
    if ctx.kind in (ContextKind.DOT, ContextKind.BRACKET_STRING):
        partial = ctx.partial.strip()

    items: list[Suggestion] = []
    for key in _prefix_filter(sort_keys(samples), partial)[:max_keys]:
        if ctx.kind is ContextKind.DOT and is_identifier_key(key):
            seg = "." + key
        else:
            seg = quote_key(key, ctx.quote or "'")
        items.append(_item(ctx.base + seg, seg, samples[key]))
    return items


def suggest(
    expr: str,
    cursor: int,
    document: object,
    *,
    limit: int = MAX_SUGGESTIONS,
    max_keys: int = MAX_KEY_SUGGESTIONS,
    max_nodes: int = DEFAULT_MAX_NODES,
) -> SuggestionResult:
    """Build the ordered suggestion list for *expr* at *cursor*.

    The returned range is where an accepted suggestion's value is spliced.
    """
    ctx = analyze(expr, cursor)

    if ctx.kind is ContextKind.ROOT:
        items = root_suggestions(document, max_keys)
    elif ctx.kind is ContextKind.NONE:
        items = []
    elif ctx.kind is ContextKind.DESCENDANT:
        items = _descendant_suggestions(ctx, document, max_keys, max_nodes)
    else:
        try:
            matches = [m.value for m in evaluate(ctx.base, document)][:MAX_BASE_MATCHES]
        except JsonPathError as exc:
            logger.debug("cannot evaluate %r for suggestions: %s", ctx.base, exc)
            ctx = CompletionContext(ContextKind.ROOT, 0, ctx.end)
            items = root_suggestions(document, max_keys)
        else:
            if any(kind_of(m) is JsonKind.LIST for m in matches):
                items = _array_suggestions(ctx, matches)
            else:
                items = _key_suggestions(ctx, matches, max_keys)

    return SuggestionResult(items[:limit], ctx.start, ctx.end)


def replace_range(expr: str, cursor: int) -> tuple[int, int]:
    """Replace range for the current cursor, recomputed at acceptance time."""
    ctx = analyze(expr, cursor)
    if ctx.kind in (ContextKind.DOT, ContextKind.BRACKET_STRING, ContextKind.BRACKET_INDEX):
        try:
            parse_jsonpath(ctx.base)
        except JsonPathError:
            return 0, ctx.end
    return ctx.start, ctx.end


def accept(expr: str, cursor: int, item: Suggestion) -> tuple[str, int]:
    """Splice *item* into *expr* and return the new text and cursor."""
    start, end = replace_range(expr, cursor)
    return expr[:start] + item.value + expr[end:], start + len(item.value)
