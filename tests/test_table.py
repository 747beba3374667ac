"""Tests for the query result table."""

import json

from jtab.table import (
    ColumnResult,
    ColumnSpec,
    cell_match,
    column_key,
    evaluate_columns,
    export_row,
    export_rows,
    export_text,
    last_segment_label,
    row_count,
)

DOC = {"users": [{"name": "Ada", "id": 1}, {"name": "Linus", "id": 2}, {"id": 3}]}


class TestEvaluateColumns:
    def test_columns(self):
        results = evaluate_columns(
            [ColumnSpec("name", "$.users[*].name"), ColumnSpec("", "$.users[*].id")],
            DOC,
        )
        assert [m.value for m in results[0].matches] == ["Ada", "Linus"]
        assert [m.value for m in results[1].matches] == [1, 2, 3]
        assert results[0].error is None

    def test_empty_expression(self):
        results = evaluate_columns([ColumnSpec("x", "  ")], DOC)
        assert results[0].error == "Expression is empty"
        assert results[0].matches == []

    def test_invalid_expression(self):
        results = evaluate_columns([ColumnSpec("x", "$.users[")], DOC)
        assert results[0].error == "Unclosed bracket"

    def test_matches_carry_pointers(self):
        results = evaluate_columns([ColumnSpec("", "$.users[1].name")], DOC)
        assert results[0].matches[0].pointer == "/users/1/name"


class TestRows:
    def _results(self):
        return evaluate_columns(
            [ColumnSpec("name", "$.users[*].name"), ColumnSpec("", "$.users[*].id")],
            DOC,
        )

    def test_row_count_is_longest_column(self):
        assert row_count(self._results()) == 3
        assert row_count([]) == 0

    def test_cell_match(self):
        results = self._results()
        assert cell_match(results, 2, 1).value == 3
        assert cell_match(results, 2, 0) is None
        assert cell_match(results, 0, 5) is None

    def test_export_row(self):
        assert export_row(self._results(), 2) == {"name": None, "$.users[*].id": 3}

    def test_export_rows(self):
        rows = export_rows(self._results())
        assert rows[0] == {"name": "Ada", "$.users[*].id": 1}
        assert len(rows) == 3

    def test_export_text(self):
        text = export_text(self._results())
        assert json.loads(text)[1] == {"name": "Linus", "$.users[*].id": 2}
        assert text.startswith("[\n    {")


class TestColumnKey:
    def test_name_first(self):
        assert column_key(ColumnResult(" n ", "$.a"), 0) == "n"

    def test_expression_fallback(self):
        assert column_key(ColumnResult("", " $.a "), 0) == "$.a"

    def test_index_fallback(self):
        assert column_key(ColumnResult("", ""), 2) == "col3"


class TestLastSegmentLabel:
    def test_key(self):
        assert last_segment_label("$.users[*].name") == "name"

    def test_wildcard(self):
        assert last_segment_label("$.users[*]") == "*"

    def test_index(self):
        assert last_segment_label("$.users[0]") == "[0]"

    def test_slice(self):
        assert last_segment_label("$.users[1:3]") == "[1:3]"

    def test_filter(self):
        assert last_segment_label("$.users[?(@.id > 1)]") == "?()"

    def test_union(self):
        assert last_segment_label("$.users[0,1]") == "[0,1]"

    def test_root_and_invalid(self):
        assert last_segment_label("$") is None
        assert last_segment_label("") is None
        assert last_segment_label("$.[") is None
