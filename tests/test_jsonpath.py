"""Tests for JSONPath evaluation."""

import pytest

from jtab._jsonpath import (
    JsonPathError,
    evaluate,
    jsonpath_value_matches,
    normalized_path,
    parse_jsonpath_filter,
)

DATA = {
    "store": {
        "book": [
            {"title": "A", "price": 8, "isbn": "1"},
            {"title": "B", "price": 12},
            {"title": "C", "price": 5, "isbn": "2"},
        ],
        "bicycle": {"color": "red", "price": 20},
    },
    "a.b": {"c/d": 1},
}


def _values(expr, data=DATA):
    return [m.value for m in evaluate(expr, data)]


class TestEvaluate:
    def test_root(self):
        matches = evaluate("$", DATA)
        assert len(matches) == 1
        assert matches[0].value is DATA
        assert matches[0].pointer == ""
        assert matches[0].path == "$"

    def test_child(self):
        assert _values("$.store.bicycle.color") == ["red"]

    def test_index(self):
        assert _values("$.store.book[1].title") == ["B"]

    def test_negative_index(self):
        assert _values("$.store.book[-1].title") == ["C"]

    def test_wildcard(self):
        assert _values("$.store.book[*].title") == ["A", "B", "C"]
        assert _values("$.store.bicycle.*") == ["red", 20]

    def test_slice(self):
        assert _values("$.store.book[0:2].title") == ["A", "B"]
        assert _values("$.store.book[::2].title") == ["A", "C"]

    def test_union(self):
        assert _values("$.store.book[0,2].title") == ["A", "C"]

    def test_quoted_keys(self):
        assert _values("$['a.b']['c/d']") == [1]
        assert _values('$["store"]["bicycle"]["color"]') == ["red"]

    def test_escaped_quote(self):
        assert _values("$['it\\'s']", {"it's": 1}) == [1]

    def test_recursive_descent(self):
        assert _values("$..price") == [8, 12, 5, 20]

    def test_recursive_wildcard_includes_all(self):
        values = _values("$..*", {"a": {"b": 1}, "c": [2]})
        assert values == [{"b": 1}, [2], 1, 2]

    def test_filter_comparison(self):
        assert _values("$.store.book[?(@.price < 10)].title") == ["A", "C"]

    def test_filter_equality(self):
        assert _values("$.store.book[?(@.title == 'B')].price") == [12]

    def test_filter_exists(self):
        assert _values("$.store.book[?(@.isbn)].title") == ["A", "C"]

    def test_filter_regex(self):
        assert _values("$.store.book[?(@.title ~ '^[AB]$')].price") == [8, 12]

    def test_missing(self):
        assert _values("$.store.nothing") == []

    def test_pointer_and_path(self):
        match = evaluate("$['a.b']['c/d']", DATA)[0]
        assert match.pointer == "/a.b/c~1d"
        assert match.path == "$['a.b']['c/d']"
        assert match.segments == ["a.b", "c/d"]

    def test_index_pointer(self):
        match = evaluate("$.store.book[2].isbn", DATA)[0]
        assert match.pointer == "/store/book/2/isbn"


class TestErrors:
    @pytest.mark.parametrize(
        "expr",
        [
            "store",
            "$.",
            "$.store[",
            "$[]",
            "$.arr[?(@.x",
            "$['open]",
            "$[::0]",
            "$x",
        ],
    )
    def test_invalid(self, expr):
        with pytest.raises(JsonPathError):
            evaluate(expr, DATA)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            evaluate("$.", DATA)

    def test_oversized_index(self):
        with pytest.raises(JsonPathError):
            evaluate("$.store.book[" + "9" * 5000 + "]", DATA)

    def test_oversized_slice_bound(self):
        with pytest.raises(JsonPathError):
            evaluate("$.store.book[0:" + "9" * 5000 + "]", DATA)

    def test_oversized_filter_literal_is_text(self):
        expr = "$.store.book[?(@.price == " + "9" * 5000 + ")]"
        assert evaluate(expr, DATA) == []


class TestFilterHelpers:
    """Filter parsing and comparisons."""

    def test_parse_equals(self):
        assert parse_jsonpath_filter("@.a == 1") == ("@.a ", "=", 1)

    def test_parse_not_equals(self):
        assert parse_jsonpath_filter("@.a!='x'") == ("@.a", "!=", "x")

    def test_parse_no_operator(self):
        assert parse_jsonpath_filter("@.a") == ("@.a", "", None)

    def test_non_finite_literal_is_text(self):
        assert parse_jsonpath_filter("@.a == NaN") == ("@.a ", "=", "NaN")

    def test_compare_mismatched_types(self):
        assert jsonpath_value_matches("a", ">", 1) is False

    def test_bad_regex(self):
        assert jsonpath_value_matches("a", "~", "[") is False

    def test_normalized_path(self):
        assert normalized_path(["a", 0, "it's"]) == "$['a'][0]['it\\'s']"
