"""Bounded sampling of keys and values for completion previews."""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass

from jtab._value import MISSING, JsonKind, kind_of

DEFAULT_MAX_NODES = 1200
SAMPLE_MAX_LEN = 56
ELLIPSIS = "…"


@dataclass(frozen=True)
class Sample:
    display: str  # one line, truncated
    full: str  # untruncated, for tooltips


def stringify_cell(value: object) -> str:
    """Render a value as a single cell string."""
    if value is MISSING:
        return ""
    kind = kind_of(value)
    if kind is JsonKind.STRING:
        return value
    try:
        if kind in (JsonKind.LIST, JsonKind.MAP):
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


def preview(text: str, max_len: int = SAMPLE_MAX_LEN) -> Sample:
    if len(text) <= max_len:
        return Sample(text, text)
    return Sample(text[:max_len] + ELLIPSIS, text)


def to_sample(value: object, max_len: int = SAMPLE_MAX_LEN) -> Sample:
    return preview(stringify_cell(value), max_len)


def sort_keys(keys) -> list[str]:
    return sorted(keys, key=lambda k: (k.casefold(), k))


def _walk(root: object, max_nodes: int):
    """Yield (key, value) for every mapping entry in breadth-first order.

    At most *max_nodes* nodes are dequeued.
    """
    queue: deque[object] = deque([root])
    seen = 0
    while queue and seen < max_nodes:
        current = queue.popleft()
        seen += 1
        kind = kind_of(current)
        if kind is JsonKind.LIST:
            queue.extend(current)
        elif kind is JsonKind.MAP:
            for k, v in current.items():
                yield k, v
                queue.append(v)


def collect_keys(root: object, max_nodes: int = DEFAULT_MAX_NODES) -> list[str]:
    """Distinct mapping keys seen in the visited part of *root*, sorted."""
    return sort_keys({k for k, _ in _walk(root, max_nodes)})


def collect_key_samples(
    root: object,
    max_nodes: int = DEFAULT_MAX_NODES,
    max_len: int = SAMPLE_MAX_LEN,
) -> dict[str, Sample]:
    """Map each key to a sample of the first value seen under it."""
    samples: dict[str, Sample] = {}
    for k, v in _walk(root, max_nodes):
        if k not in samples:
            samples[k] = to_sample(v, max_len)
    return samples


def sample_for_key(
    root: object, key: str, max_nodes: int = DEFAULT_MAX_NODES
) -> Sample | None:
    for k, v in _walk(root, max_nodes):
        if k == key:
            return to_sample(v)
    return None
