"""Spreadsheet-like view of JSONPath query results."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from jtab._jsonpath import JsonPathError, Match, evaluate, parse_jsonpath


@dataclass
class ColumnSpec:
    name: str = ""
    expression: str = "$"


@dataclass
class ColumnResult:
    name: str
    expression: str
    matches: list[Match] = field(default_factory=list)
    error: str | None = None


def evaluate_columns(columns: list[ColumnSpec], data: object) -> list[ColumnResult]:
    """Evaluate every column; errors are reported per column, never raised."""
    results: list[ColumnResult] = []
    for col in columns:
        name = col.name.strip()
        expr = col.expression.strip()
        if not expr:
            results.append(ColumnResult(name, col.expression, error="Expression is empty"))
            continue
        try:
            matches = evaluate(expr, data)
        except JsonPathError as exc:
            results.append(ColumnResult(name, col.expression, error=str(exc)))
            continue
        results.append(ColumnResult(name, col.expression, matches))
    return results


def row_count(results: list[ColumnResult]) -> int:
    return max((len(r.matches) for r in results), default=0)


def column_key(result: ColumnResult, index: int) -> str:
    return result.name.strip() or result.expression.strip() or f"col{index + 1}"


def cell_match(results: list[ColumnResult], row: int, col: int) -> Match | None:
    if not 0 <= col < len(results):
        return None
    matches = results[col].matches
    return matches[row] if 0 <= row < len(matches) else None


def export_row(results: list[ColumnResult], row: int) -> dict[str, object]:
    out: dict[str, object] = {}
    for i, result in enumerate(results):
        match = cell_match(results, row, i)
        out[column_key(result, i)] = match.value if match is not None else None
    return out


def export_rows(results: list[ColumnResult]) -> list[dict[str, object]]:
    return [export_row(results, i) for i in range(row_count(results))]


def export_text(results: list[ColumnResult]) -> str:
    return json.dumps(export_rows(results), indent=4, ensure_ascii=False)


def last_segment_label(expression: str) -> str | None:
    """Short label for the final segment of an expression, used as a header."""
    expr = expression.strip()
    if not expr:
        return None
    try:
        steps = parse_jsonpath(expr)
    except JsonPathError:
        return None
    if not steps:
        return None

    step = steps[-1]
    if len(step.selectors) != 1:
        return "[" + ",".join(_selector_text(s) for s in step.selectors) + "]"
    selector = step.selectors[0]
    kind = selector[0]
    if kind == "wildcard":
        return "*"
    if kind == "filter":
        return "?()"
    if kind in ("index", "slice"):
        return f"[{_selector_text(selector)}]"
    return selector[1]


def _selector_text(selector: tuple) -> str:
    kind = selector[0]
    if kind == "wildcard":
        return "*"
    if kind == "index":
        return str(selector[1])
    if kind == "slice":
        parts = ["" if p is None else str(p) for p in selector[1:]]
        if selector[3] is None:
            parts = parts[:2]
        return ":".join(parts)
    if kind == "filter":
        return "?()"
    return repr(selector[1])
