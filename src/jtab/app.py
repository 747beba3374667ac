"""Terminal application: document tree, query table and completion."""

from __future__ import annotations

import argparse
import logging
import sys
from enum import Enum, auto
from pathlib import Path

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import DataTable, Footer, Header, Input, OptionList, Static, Tree
from textual.widgets.option_list import Option

from jtab import document
from jtab._nested import NestedJsonError
from jtab._pointer import decode_pointer, encode_pointer
from jtab._sample import stringify_cell, to_sample
from jtab._value import MISSING, JsonKind, kind_of
from jtab.reconcile import (
    DocumentSession,
    ValidationError,
    canonical_text,
    coerce_text,
    editor_text,
)
from jtab.suggest import Suggestion, accept, suggest
from jtab.table import (
    ColumnResult,
    ColumnSpec,
    cell_match,
    column_key,
    evaluate_columns,
    export_text,
    last_segment_label,
    row_count,
)

logger = logging.getLogger(__name__)

# Data directory path
_DATA_DIR = Path(__file__).parent / "data"

MAX_TREE_CHILDREN = 500
MAX_TABLE_ROWS = 1000


def _load_data(filename: str) -> str:
    """Load content from data directory."""
    return (_DATA_DIR / filename).read_text(encoding="utf-8")


def node_label(key: str | int | None, value: object) -> Text:
    """Tree label for a node: key, then a size or a value preview."""
    label = Text()
    if key is not None:
        label.append(f"{key}", style="bold cyan" if isinstance(key, str) else "magenta")
        label.append(": ")
    kind = kind_of(value)
    if kind is JsonKind.MAP:
        label.append(f"{{{len(value)}}}", style="dim")
    elif kind is JsonKind.LIST:
        label.append(f"[{len(value)}]", style="dim")
    elif kind is JsonKind.STRING:
        label.append(to_sample(value).display, style="green")
    else:
        label.append(stringify_cell(value), style="yellow")
    return label


def header_label(result: ColumnResult, index: int) -> str:
    if result.name.strip():
        return result.name.strip()
    return last_segment_label(result.expression) or column_key(result, index)


class PromptMode(Enum):
    """What the bottom input commits when Enter is pressed."""

    VALUE = auto()
    ADD = auto()
    RENAME = auto()


class JsonTableApp(App):
    """Browse a JSON document as a tree and query it as a table."""

    CSS = """
    Screen {
        layout: vertical;
    }
    #main {
        height: 1fr;
    }
    #tree {
        width: 2fr;
        border: solid $accent;
    }
    #query-pane {
        width: 3fr;
    }
    #expr {
        border: solid $accent;
    }
    #suggestions {
        height: auto;
        max-height: 12;
        border: solid $accent 50%;
    }
    #results {
        height: 1fr;
        border: solid $accent;
    }
    #status {
        height: 1;
        padding: 0 1;
        color: $text-muted;
    }
    """

    TITLE = "JSON Table"
    ENABLE_COMMAND_PALETTE = False
    BINDINGS = [
        Binding("ctrl+z", "undo", "Undo", priority=True),
        Binding("ctrl+y", "redo", "Redo", priority=True),
        Binding("ctrl+s", "save", "Save", priority=True),
        Binding("ctrl+n", "add_column", "New column", priority=True),
        Binding("ctrl+w", "remove_column", "Drop column", priority=True),
        Binding("f2", "next_column", "Next column"),
        Binding("ctrl+e", "export", "Copy rows", priority=True),
        Binding("ctrl+r", "reload", "Reload", priority=True),
        Binding("e", "edit", "Edit"),
        Binding("a", "add", "Add"),
        Binding("r", "rename", "Rename"),
        Binding("d", "delete", "Delete"),
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    def __init__(
        self,
        file_path: str = "",
        initial_content: str = "{}",
        expressions: list[str] | None = None,
        read_only: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.file_path = file_path
        self.read_only = read_only
        try:
            self.session = DocumentSession.from_text(initial_content)
        except NestedJsonError as exc:
            logger.warning("cannot parse %s: %s", file_path or "input", exc)
            self.session = DocumentSession(None)
            self._load_error = str(exc)
        else:
            self._load_error = ""
        self.columns: list[ColumnSpec] = [
            ColumnSpec("", expr) for expr in (expressions or ["$"])
        ]
        self.active_column = 0
        self._results: list[ColumnResult] = []
        self._suggestions: list[Suggestion] = []
        # (mode, pointer, value when the prompt opened)
        self._prompt: tuple[PromptMode, str, object] | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal(id="main"):
            yield Tree("$", id="tree")
            with Vertical(id="query-pane"):
                yield Input(self.columns[0].expression, placeholder="$.path", id="expr")
                yield OptionList(id="suggestions")
                yield DataTable(id="results", cursor_type="cell", zebra_stripes=True)
                yield Input(placeholder="new value", id="cell-edit")
        yield Static("", id="status")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#suggestions").display = False
        self.query_one("#cell-edit").display = False
        self._update_title()
        self._refresh_document()
        if self._load_error:
            self.notify(f"Invalid JSON: {self._load_error}", severity="error", timeout=6)
        self.query_one("#expr").focus()

    def _update_title(self) -> None:
        ro = " [RO]" if self.read_only else ""
        self.sub_title = (self.file_path or "[sample]") + ro

    def _set_status(self, message: str) -> None:
        self.query_one("#status", Static).update(message)

    # -- Document views ----------------------------------------------------

    def _refresh_document(self) -> None:
        self._rebuild_tree()
        self._refresh_table()

    def _rebuild_tree(self) -> None:
        tree = self.query_one("#tree", Tree)
        tree.clear()
        tree.root.set_label(node_label(None, self.session.value))
        tree.root.data = []
        self._populate(tree.root, [])
        tree.root.expand()

    def _populate(self, node, path: list[str | int]) -> None:
        value = document.read(self.session.value, path)
        kind = kind_of(value)
        if kind is JsonKind.MAP:
            children = list(value.items())
        elif kind is JsonKind.LIST:
            children = list(enumerate(value))
        else:
            return
        for key, child in children[:MAX_TREE_CHILDREN]:
            child_path = path + [key]
            if kind_of(child) in (JsonKind.MAP, JsonKind.LIST):
                node.add(node_label(key, child), data=child_path)
            else:
                node.add_leaf(node_label(key, child), data=child_path)
        if len(children) > MAX_TREE_CHILDREN:
            node.add_leaf(Text(f"… {len(children) - MAX_TREE_CHILDREN} more", style="dim"))

    def on_tree_node_expanded(self, event: Tree.NodeExpanded) -> None:
        node = event.node
        if node.data is None or node is self.query_one("#tree", Tree).root:
            return
        if not node.children:
            self._populate(node, node.data)

    def _refresh_table(self) -> None:
        self._results = evaluate_columns(self.columns, self.session.value)
        table = self.query_one("#results", DataTable)
        table.clear(columns=True)
        labels = []
        for i, result in enumerate(self._results):
            label = header_label(result, i)
            if i == self.active_column:
                label = f"▸ {label}"
            labels.append(label)
        table.add_columns("#", *labels)
        rows = row_count(self._results)
        for row in range(min(rows, MAX_TABLE_ROWS)):
            cells = []
            for col in range(len(self._results)):
                match = cell_match(self._results, row, col)
                cells.append("" if match is None else to_sample(match.value).display)
            table.add_row(str(row), *cells)

        errors = [
            f"{column_key(r, i)}: {r.error}" for i, r in enumerate(self._results) if r.error
        ]
        if errors:
            self._set_status("; ".join(errors))
        else:
            shown = f" (showing {MAX_TABLE_ROWS})" if rows > MAX_TABLE_ROWS else ""
            self._set_status(f"{rows} rows{shown}")

    # -- Expression input and suggestions ----------------------------------

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id != "expr":
            return
        self.columns[self.active_column].expression = event.value
        self._refresh_table()
        self._show_suggestions(event.value, event.input.cursor_position)

    def _show_suggestions(self, expr: str, cursor: int) -> None:
        result = suggest(expr, cursor, self.session.value)
        self._suggestions = result.items
        options = self.query_one("#suggestions", OptionList)
        options.clear_options()
        for item in result.items:
            prompt = Text(item.label)
            if item.sample:
                prompt.append(f"  {item.sample}", style="dim")
            options.add_option(Option(prompt))
        options.display = bool(result.items)

    def on_key(self, event: events.Key) -> None:
        focused = self.focused
        if event.key == "down" and focused is not None and focused.id == "expr":
            options = self.query_one("#suggestions", OptionList)
            if options.display:
                options.focus()
                options.highlighted = 0
                event.stop()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if not 0 <= event.option_index < len(self._suggestions):
            return
        item = self._suggestions[event.option_index]
        expr_input = self.query_one("#expr", Input)
        text, cursor = accept(expr_input.value, expr_input.cursor_position, item)
        expr_input.value = text
        expr_input.cursor_position = cursor
        expr_input.focus()

    # -- Editing -----------------------------------------------------------

    def _read_pointer(self, pointer: str) -> object:
        path = decode_pointer(pointer, self.session.value)
        if path is None:
            return MISSING
        return document.read(self.session.value, path)

    def _selected_pointer(self) -> str | None:
        focused = self.focused
        if focused is None:
            return None
        if focused.id == "tree":
            node = self.query_one("#tree", Tree).cursor_node
            if node is None or node.data is None:
                return None
            return encode_pointer(node.data)
        if focused.id == "results":
            coord = self.query_one("#results", DataTable).cursor_coordinate
            match = cell_match(self._results, coord.row, coord.column - 1)
            return None if match is None else match.pointer
        return None

    def commit_value(self, pointer: str, original: object, text: str) -> str:
        """Replace the value at *pointer* with typed text.

        Returns a warning for the status line, or "" when nothing needs
        reporting. Raises ValidationError when the text does not fit.
        """
        current = self._read_pointer(pointer)
        if current is MISSING:
            return "Value no longer exists"
        value = coerce_text(original, text)
        if canonical_text(value) == canonical_text(current):
            return ""
        self.session.edit_at_pointer(pointer, value)
        return ""

    def commit_add(self, pointer: str, text: str) -> str:
        """Add ``key = value`` to an object or append a value to an array."""
        container = self._read_pointer(pointer)
        if container is MISSING:
            return "Value no longer exists"
        path = decode_pointer(pointer, self.session.value)
        kind = kind_of(container)
        if kind is JsonKind.MAP:
            key, sep, raw = text.partition("=")
            value = coerce_text(None, raw) if sep else None
            if not key.strip():
                return "Key is empty"
            if not self.session.add_key(path, key, value):
                return f"Key {key.strip()!r} already exists"
            return ""
        if kind is JsonKind.LIST:
            self.session.append_item(path, coerce_text(None, text))
            return ""
        return "Select an object or an array"

    def commit_rename(self, pointer: str, text: str) -> str:
        """Rename the object key addressed by *pointer*."""
        path = decode_pointer(pointer, self.session.value)
        if path is None or not document.exists(self.session.value, path):
            return "Value no longer exists"
        if not path or not isinstance(path[-1], str):
            return "Only object keys can be renamed"
        new_key = text.strip()
        if not new_key:
            return "Key is empty"
        if new_key == path[-1]:
            return ""
        if not self.session.rename_key(path[:-1], path[-1], new_key):
            return f"Key {new_key!r} already exists"
        return ""

    def _open_prompt(self, mode: PromptMode, placeholder: str) -> None:
        if self.read_only:
            self.notify("[readonly]", severity="warning")
            return
        pointer = self._selected_pointer()
        if pointer is None:
            return
        original = self._read_pointer(pointer)
        if mode is PromptMode.VALUE:
            text = editor_text(original)
        elif mode is PromptMode.RENAME:
            path = decode_pointer(pointer, self.session.value) or []
            text = str(path[-1]) if path else ""
        else:
            text = ""
        self._prompt = (mode, pointer, original)
        editor = self.query_one("#cell-edit", Input)
        editor.value = text
        editor.placeholder = placeholder
        editor.display = True
        editor.focus()

    def action_edit(self) -> None:
        self._open_prompt(PromptMode.VALUE, "new value")

    def action_add(self) -> None:
        self._open_prompt(PromptMode.ADD, "key = value (object) or value (array)")

    def action_rename(self) -> None:
        self._open_prompt(PromptMode.RENAME, "new key")

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "cell-edit" or self._prompt is None:
            return
        mode, pointer, original = self._prompt
        try:
            if mode is PromptMode.VALUE:
                message = self.commit_value(pointer, original, event.value)
            elif mode is PromptMode.ADD:
                message = self.commit_add(pointer, event.value)
            else:
                message = self.commit_rename(pointer, event.value)
        except ValidationError as exc:
            self.notify(str(exc), severity="error", timeout=6)
            return
        if message:
            self.notify(message, severity="warning")
        self.action_cancel()
        self._refresh_document()

    def action_cancel(self) -> None:
        editor = self.query_one("#cell-edit", Input)
        if editor.display:
            editor.display = False
            self._prompt = None
            self.query_one("#results").focus()
        else:
            self.query_one("#suggestions").display = False

    def action_delete(self) -> None:
        if self.read_only:
            self.notify("[readonly]", severity="warning")
            return
        pointer = self._selected_pointer()
        if pointer is None:
            return
        path = decode_pointer(pointer, self.session.value)
        if path and self.session.delete(path):
            self._refresh_document()

    def action_undo(self) -> None:
        if self.session.undo():
            self._refresh_document()
        else:
            self.notify("Already at oldest change")

    def action_redo(self) -> None:
        if self.session.redo():
            self._refresh_document()
        else:
            self.notify("Already at newest change")

    # -- Columns -----------------------------------------------------------

    def _activate_column(self, index: int) -> None:
        self.active_column = index
        expr_input = self.query_one("#expr", Input)
        expr_input.value = self.columns[index].expression
        self._refresh_table()
        expr_input.focus()

    def action_add_column(self) -> None:
        self.columns.append(ColumnSpec("", "$"))
        self._activate_column(len(self.columns) - 1)

    def action_remove_column(self) -> None:
        if len(self.columns) <= 1:
            return
        del self.columns[self.active_column]
        self._activate_column(min(self.active_column, len(self.columns) - 1))

    def action_next_column(self) -> None:
        self._activate_column((self.active_column + 1) % len(self.columns))

    # -- File --------------------------------------------------------------

    def action_save(self) -> None:
        if not self.file_path:
            self.notify("No file name", severity="warning")
            return
        if self.read_only:
            self.notify("[readonly]", severity="warning")
            return
        try:
            path = Path(self.file_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.session.text + "\n", encoding="utf-8")
            self.notify(f"Saved: {self.file_path}", severity="information")
        except OSError as exc:
            self.notify(f"Save failed: {exc}", severity="error", timeout=6)

    def reload_text(self, text: str) -> bool:
        """Replace the document with freshly read text; undo history is kept."""
        try:
            self.session.load_text(text)
        except NestedJsonError as exc:
            self.notify(f"Invalid JSON: {exc}", severity="error", timeout=6)
            return False
        self._refresh_document()
        return True

    def action_reload(self) -> None:
        if not self.file_path:
            self.notify("No file name", severity="warning")
            return
        try:
            text = Path(self.file_path).read_text(encoding="utf-8")
        except OSError as exc:
            self.notify(f"Reload failed: {exc}", severity="error", timeout=6)
            return
        if self.reload_text(text):
            self.notify(f"Reloaded: {self.file_path}")

    def action_export(self) -> None:
        """Copy the table rows to the clipboard as a JSON array."""
        text = export_text(self._results)
        self.copy_to_clipboard(text)
        self.notify(f"Copied {row_count(self._results)} rows")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="jtab",
        description="Browse, query and edit JSON in the terminal",
    )
    parser.add_argument(
        "file",
        nargs="?",
        default="",
        help="JSON file to open",
    )
    parser.add_argument(
        "-e", "--expr",
        action="append",
        default=None,
        help="JSONPath column expression (repeatable)",
    )
    parser.add_argument(
        "-R", "--read-only",
        action="store_true",
        default=False,
        help="open in read-only mode",
    )
    parser.add_argument(
        "--log-file",
        default="",
        help="write debug logs to this file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="log at DEBUG level",
    )
    args = parser.parse_args()

    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=logging.DEBUG if args.verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    file_path: str = args.file
    initial_content: str = _load_data("sample.json")
    if file_path:
        path = Path(file_path)
        try:
            initial_content = path.read_text(encoding="utf-8") if path.exists() else "{}"
        except OSError as exc:
            print(f"jtab: {exc}", file=sys.stderr)
            sys.exit(1)

    app = JsonTableApp(
        file_path=file_path,
        initial_content=initial_content,
        expressions=args.expr,
        read_only=args.read_only,
    )
    app.run()


if __name__ == "__main__":
    main()
