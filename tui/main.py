"""
Activity dashboard - browse executed batches and undo or redo them from the terminal.
"""

import sys
from typing import Optional

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import Button, DataTable, Footer, Header, Static

from shopagent.core.history import HistoryStore, create_history_store
from shopagent.util.logging import logger
from .activity import (
    HISTORY_COLUMNS,
    format_history_rows,
    get_store_credentials,
    perform_redo,
    perform_undo,
)


class ActivityApp(App):
    """Shop Agent activity log."""

    CSS = """
    .title {
        text-align: center;
        text-style: bold;
        margin-bottom: 1;
        color: blue;
    }

    .subtitle {
        text-align: center;
        margin-bottom: 1;
        color: gray;
    }

    #history-table {
        height: 1fr;
        border: solid white;
    }

    #controls {
        height: auto;
        margin-top: 1;
    }

    .footer-hint {
        text-align: center;
        margin-top: 1;
        color: gray;
    }
    """

    TITLE = "Shop Agent Activity"

    BINDINGS = [
        ("r", "refresh", "Refresh"),
        ("u", "undo", "Undo"),
        ("y", "redo", "Redo"),
        ("q", "quit", "Quit"),
    ]

    def __init__(self, history_store: Optional[HistoryStore] = None):
        super().__init__()
        self.history_store = history_store or create_history_store()
        self.row_ids = []

    def compose(self) -> ComposeResult:
        credentials = get_store_credentials()
        store_line = f"Store: {credentials['store_domain']}" if credentials else "Store: not connected"

        yield Header()
        yield Container(
            Static("📜 Action History", classes="title"),
            Static(store_line, classes="subtitle", id="store-line"),
            DataTable(id="history-table", cursor_type="row"),
            Horizontal(
                Button("Undo", id="undo-button", variant="warning"),
                Button("Redo", id="redo-button", variant="success"),
                Button("Refresh", id="refresh-button", variant="primary"),
                id="controls",
            ),
            Static("U undo, Y redo, R refresh, Q quit", classes="footer-hint"),
        )
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#history-table", DataTable)
        table.add_columns(*HISTORY_COLUMNS)
        self.action_refresh()
        logger.info("Activity dashboard started")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id

        if button_id == "undo-button":
            self.action_undo()
        elif button_id == "redo-button":
            self.action_redo()
        elif button_id == "refresh-button":
            self.action_refresh()

    def action_refresh(self) -> None:
        table = self.query_one("#history-table", DataTable)
        table.clear()
        self.row_ids = []
        for row in format_history_rows(self.history_store):
            table.add_row(*row["cells"], key=row["id"])
            self.row_ids.append(row["id"])

    def action_undo(self) -> None:
        self._replay_selected("undo")

    def action_redo(self) -> None:
        self._replay_selected("redo")

    def _selected_entry_id(self) -> Optional[str]:
        table = self.query_one("#history-table", DataTable)
        if not self.row_ids or table.cursor_row is None:
            return None
        if table.cursor_row < 0 or table.cursor_row >= len(self.row_ids):
            return None
        return self.row_ids[table.cursor_row]

    def _replay_selected(self, operation: str) -> None:
        entry_id = self._selected_entry_id()
        if entry_id is None:
            self.notify("No history entry selected", title=operation.capitalize(), severity="warning")
            return

        if operation == "undo":
            outcome = perform_undo(self.history_store, entry_id)
        else:
            outcome = perform_redo(self.history_store, entry_id)

        if outcome["success"]:
            self.notify(f"✅ {outcome['message']}", title=operation.capitalize(), severity="information")
        else:
            self.notify(f"❌ {outcome['error']}", title=f"{operation.capitalize()} Failed", severity="error")

        self.action_refresh()


def main():
    """Activity dashboard entry point."""
    try:
        print("🚀 Starting Shop Agent activity dashboard...")
        app = ActivityApp()
        app.run()
    except KeyboardInterrupt:
        print("\nℹ️  Dashboard interrupted by user")
        logger.info("Dashboard exited via keyboard interrupt")
    except Exception as e:
        error_msg = f"Dashboard startup failed: {e}"
        print(f"❌ {error_msg}")
        logger.error(error_msg)
        sys.exit(1)


if __name__ == "__main__":
    main()
