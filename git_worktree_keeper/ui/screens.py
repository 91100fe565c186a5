"""Modal screens for git-worktree-keeper TUI."""

from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static

from git_worktree_keeper.formatters import (
    format_changes,
    format_status,
    format_sync,
    format_timestamp,
)
from git_worktree_keeper.models.worktree import Worktree

DIALOG_CSS = """
    #dialog {
        width: 80%;
        height: auto;
        border: thick $background 80%;
        background: $surface;
        padding: 1 2;
    }

    #message {
        width: 100%;
        height: auto;
        padding: 1 0;
    }

    #button-container {
        width: 100%;
        height: auto;
        align: center middle;
        padding: 1 0;
    }

    Button {
        margin: 0 1;
    }
"""


class ConfirmScreen(ModalScreen[bool]):
    """Yes/No dialog for destructive actions."""

    DEFAULT_CSS = "ConfirmScreen { align: center middle; }" + DIALOG_CSS

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, message: str):
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Static(self.message, id="message")
            with Container(id="button-container"):
                yield Button("Yes", variant="error", id="yes")
                yield Button("No", variant="primary", id="no")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")

    def action_cancel(self) -> None:
        self.dismiss(False)


class InputScreen(ModalScreen[Optional[str]]):
    """Single-line prompt; dismisses with the stripped text, or None if cancelled."""

    DEFAULT_CSS = "InputScreen { align: center middle; }" + DIALOG_CSS

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, prompt: str, placeholder: str = ""):
        super().__init__()
        self.prompt = prompt
        self.placeholder = placeholder

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Static(self.prompt, id="message")
            yield Input(placeholder=self.placeholder, id="value")
            with Container(id="button-container"):
                yield Button("OK", variant="primary", id="ok")
                yield Button("Cancel", id="cancel")

    def on_mount(self) -> None:
        self.query_one("#value", Input).focus()

    def _submit(self) -> None:
        value = self.query_one("#value", Input).value.strip()
        self.dismiss(value or None)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._submit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "ok":
            self._submit()
        else:
            self.dismiss(None)

    def action_cancel(self) -> None:
        self.dismiss(None)


class InfoScreen(ModalScreen):
    """Read-only text dialog (legend, worktree details, errors)."""

    DEFAULT_CSS = "InfoScreen { align: center middle; }" + DIALOG_CSS

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("enter", "close", "Close", show=False),
    ]

    def __init__(self, info: str):
        super().__init__()
        self.info = info

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Static(self.info, id="message")
            with Container(id="button-container"):
                yield Button("Close", variant="primary", id="close")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss()

    def action_close(self) -> None:
        self.dismiss()


def worktree_details(worktree: Worktree) -> str:
    """Multi-line description of a worktree for the info dialog."""
    lines = [
        f"[bold]{worktree.branch}[/bold]",
        "",
        f"Path:          {worktree.path}",
        f"Status:        {format_status(worktree.status)}",
        f"Head:          {worktree.head or '-'}",
        f"Last commit:   {worktree.commit_message or '-'}",
        f"Changes:       {format_changes(worktree) or '-'}",
        f"Sync:          {format_sync(worktree.ahead, worktree.behind) or 'up to date'}",
        f"Checked:       {format_timestamp(worktree.last_status_check)}",
        f"Created:       {format_timestamp(worktree.created_at)}",
    ]
    return "\n".join(lines)
