"""Tests for JsonTableApp helpers (no running event loop)."""

import pytest

from jtab.app import JsonTableApp, header_label, node_label
from jtab.reconcile import ValidationError
from jtab.table import ColumnResult


class TestNodeLabel:
    def test_container_sizes(self):
        assert node_label("a", {"x": 1, "y": 2}).plain == "a: {2}"
        assert node_label(0, [1, 2, 3]).plain == "0: [3]"

    def test_scalars(self):
        assert node_label("s", "text").plain == "s: text"
        assert node_label("n", None).plain == "n: null"
        assert node_label("b", False).plain == "b: false"

    def test_root_has_no_key(self):
        assert node_label(None, [1]).plain == "[1]"

    def test_long_string_truncated(self):
        label = node_label("s", "x" * 100).plain
        assert label.endswith("…")


class TestHeaderLabel:
    def test_uses_name(self):
        assert header_label(ColumnResult("Name", "$.a"), 0) == "Name"

    def test_uses_last_segment(self):
        assert header_label(ColumnResult("", "$.users[*].email"), 0) == "email"

    def test_root_expression(self):
        assert header_label(ColumnResult("", "$"), 0) == "$"


class TestAppInit:
    def test_loads_document(self):
        app = JsonTableApp(initial_content='{"a": [1, 2]}', expressions=["$.a[*]"])
        assert app.session.value == {"a": [1, 2]}
        assert app.columns[0].expression == "$.a[*]"
        assert app._load_error == ""

    def test_default_column(self):
        app = JsonTableApp(initial_content="{}")
        assert [c.expression for c in app.columns] == ["$"]

    def test_invalid_content(self):
        app = JsonTableApp(initial_content="{oops")
        assert app.session.value is None
        assert app._load_error


class TestCommit:
    """Prompt commits, exercised without a running event loop."""

    def _app(self, content='{"a": 1, "s": "x", "c": [10, 20], "m": {"k": true}}'):
        return JsonTableApp(initial_content=content)

    def test_commit_value_by_pointer(self):
        app = self._app()
        assert app.commit_value("/c/1", 20, "21") == ""
        assert app.session.value["c"] == [10, 21]

    def test_commit_value_keeps_type(self):
        app = self._app()
        with pytest.raises(ValidationError):
            app.commit_value("/a", 1, "abc")
        assert app.session.value["a"] == 1

    def test_deleted_target_is_not_recreated(self):
        app = self._app()
        app.session.delete(["a"])
        assert app.commit_value("/a", 1, "2") == "Value no longer exists"
        assert "a" not in app.session.value

    def test_identical_value_is_silent(self):
        app = self._app()
        assert app.commit_value("/a", 1, "1") == ""
        assert app.commit_value("/s", "x", "x") == ""
        assert app.session.undo_stack == []

    def test_add_key(self):
        app = self._app()
        assert app.commit_add("/m", " n = 5 ") == ""
        assert app.session.value["m"] == {"k": True, "n": 5}

    def test_add_key_without_value(self):
        app = self._app()
        assert app.commit_add("", "z") == ""
        assert app.session.value["z"] is None

    def test_add_existing_key(self):
        app = self._app()
        assert app.commit_add("", "a = 2") == "Key 'a' already exists"
        assert app.commit_add("", " = 2") == "Key is empty"

    def test_append_item(self):
        app = self._app()
        assert app.commit_add("/c", "NaN") == ""
        assert app.session.value["c"] == [10, 20, "NaN"]

    def test_add_to_scalar(self):
        app = self._app()
        assert app.commit_add("/a", "1") == "Select an object or an array"

    def test_rename(self):
        app = self._app()
        assert app.commit_rename("/m/k", " flag ") == ""
        assert app.session.value["m"] == {"flag": True}

    def test_rename_rejected(self):
        app = self._app()
        assert app.commit_rename("/c/0", "x") == "Only object keys can be renamed"
        assert app.commit_rename("/a", "s") == "Key 's' already exists"
        assert app.commit_rename("/a", "  ") == "Key is empty"
        assert app.commit_rename("/gone", "x") == "Value no longer exists"
        assert app.session.undo_stack == []
