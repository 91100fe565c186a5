"""Interactive TUI for git-worktree-keeper using Textual."""

from dataclasses import dataclass
from typing import List, Optional

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import DataTable, Footer
from textual.worker import get_current_worker

from .__version__ import __version__
from .constants import COLUMNS, LEGEND_TEXT, TUI_COLORS, WorktreeStyleType
from .exceptions import GitWorktreeKeeperError
from .formatters import (
    format_changes,
    format_commit_message,
    format_delete_confirmation,
    format_head,
    format_progress,
    format_status,
    format_sync,
    format_worktree_name,
    get_worktree_style_type,
)
from .logging_config import get_logger
from .models.state import FullState
from .models.worktree import Worktree
from .ui.screens import ConfirmScreen, InfoScreen, InputScreen, worktree_details
from .ui.widgets import NonExpandingHeader, StatusBar

logger = get_logger(__name__)


@dataclass
class TableRow:
    """One DataTable row: a repository header or one of its worktrees."""

    key: str
    repo_id: str
    cells: List[Text]
    worktree: Optional[Worktree] = None

    @property
    def is_repository(self) -> bool:
        return self.worktree is None


def state_rows(state: FullState) -> List[TableRow]:
    """Flatten a snapshot into table rows in display order."""
    rows = []
    for entry in state.repositories:
        repo = entry.repo
        repo_style = TUI_COLORS[WorktreeStyleType.REPOSITORY]
        rows.append(
            TableRow(
                key=f"repo:{repo.id}",
                repo_id=repo.id,
                cells=[
                    Text(repo.full_name, style=f"bold {repo_style}"),
                    Text(repo.default_branch),
                    Text(""),
                    Text(""),
                    Text(""),
                    Text(""),
                    Text(repo.local_path, style="dim"),
                    Text(format_progress(state.progress.get(repo.id)), style="yellow"),
                ],
            )
        )

        for wt in entry.worktrees:
            progress = state.progress.get(wt.path)
            color = TUI_COLORS[get_worktree_style_type(wt, progress)]
            # Match COLUMNS order: Worktree, Branch, Status, Head, Changes, Sync, Last Commit, Progress
            rows.append(
                TableRow(
                    key=f"wt:{wt.path}",
                    repo_id=repo.id,
                    worktree=wt,
                    cells=[
                        Text(format_worktree_name(wt), style=color),
                        Text(wt.branch),
                        Text(format_status(wt.status), style=color),
                        Text(format_head(wt.head)),
                        Text(format_changes(wt), justify="center"),
                        Text(format_sync(wt.ahead, wt.behind)),
                        Text(format_commit_message(wt.commit_message)),
                        Text(format_progress(progress), style="yellow"),
                    ],
                )
            )
    return rows


class WorktreeKeeperApp(App):
    """Live dashboard of every repository and worktree."""

    TITLE = "Git Worktree Keeper"
    SUB_TITLE = f"v{__version__}"

    CSS = """
    Screen {
        background: $surface;
    }

    DataTable {
        height: 1fr;
    }

    #status-bar {
        dock: bottom;
        height: auto;
        background: $panel;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("n", "new_worktree", "New Worktree"),
        Binding("c", "clone", "Clone"),
        Binding("d", "delete", "Delete"),
        Binding("i", "show_info", "Info"),
        Binding("l", "show_legend", "Legend"),
    ]

    def __init__(self, keeper):
        super().__init__()
        self.keeper = keeper
        self.rows: List[TableRow] = []

    def compose(self) -> ComposeResult:
        """Create child widgets."""
        yield NonExpandingHeader(show_clock=False, icon="")
        yield DataTable(id="worktree-table", cursor_type="row", zebra_stripes=True)
        yield StatusBar(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        for col in COLUMNS:
            table.add_column(col.label, width=None, key=col.key)
        self.watch_state()

    @work(exclusive=True, thread=True)
    def watch_state(self) -> None:
        """Forward every broadcast snapshot to the UI thread."""
        worker = get_current_worker()
        sub = self.keeper.subscribe()
        try:
            self.call_from_thread(self.apply_state, self.keeper.snapshot())
            while not worker.is_cancelled:
                state = sub.get(timeout=0.5)
                if state is not None:
                    self.call_from_thread(self.apply_state, state)
        finally:
            self.keeper.broadcaster.unsubscribe(sub)

    def apply_state(self, state: FullState) -> None:
        """Redraw the table from a snapshot, keeping the cursor on the same row."""
        table = self.query_one(DataTable)
        selected = self._selected_row()
        selected_key = selected.key if selected else None

        self.rows = state_rows(state)
        table.clear()
        cursor = 0
        for index, row in enumerate(self.rows):
            table.add_row(*row.cells, key=row.key)
            if row.key == selected_key:
                cursor = index
        if self.rows:
            table.move_cursor(row=cursor)

        self.query_one(StatusBar).show_state(state)

    def _selected_row(self) -> Optional[TableRow]:
        table = self.query_one(DataTable)
        if not self.rows or table.cursor_row is None:
            return None
        if 0 <= table.cursor_row < len(self.rows):
            return self.rows[table.cursor_row]
        return None

    def _report(self, error: GitWorktreeKeeperError) -> None:
        logger.warning(str(error))
        self.notify(str(error), severity="error", timeout=6)

    def action_refresh(self) -> None:
        """Refresh the selected repository, or all of them."""
        row = self._selected_row()
        repo_ids = [row.repo_id] if row else [r.id for r in self.keeper.list_repositories()]
        for repo_id in repo_ids:
            try:
                self.keeper.refresh_repository(repo_id)
            except GitWorktreeKeeperError as e:
                self._report(e)

    def action_new_worktree(self) -> None:
        row = self._selected_row()
        if row is None:
            self.notify("Select a repository first", severity="warning")
            return

        def create(branch: Optional[str]) -> None:
            if not branch:
                return
            try:
                wt = self.keeper.create_worktree(row.repo_id, branch)
                self.notify(f"Creating worktree {wt.branch}")
            except GitWorktreeKeeperError as e:
                self._report(e)

        self.push_screen(InputScreen("Branch for the new worktree:", "feature/name"), create)

    def action_clone(self) -> None:
        def clone(url: Optional[str]) -> None:
            if not url:
                return
            try:
                repo = self.keeper.clone(url)
                self.notify(f"Cloning {repo.full_name}")
            except GitWorktreeKeeperError as e:
                self._report(e)

        self.push_screen(InputScreen("Repository URL to clone:", "git@github.com:owner/name.git"), clone)

    def action_delete(self) -> None:
        row = self._selected_row()
        if row is None:
            return

        if row.is_repository:
            repo_id = row.repo_id

            def delete_repository(confirmed: Optional[bool]) -> None:
                if confirmed:
                    self.delete_repository_in_background(repo_id)

            self.push_screen(
                ConfirmScreen("Delete this repository, its directory and every worktree?"),
                delete_repository,
            )
            return

        worktree = row.worktree

        def delete_worktree(confirmed: Optional[bool]) -> None:
            if not confirmed:
                return
            try:
                self.keeper.delete_worktree(worktree.path)
            except GitWorktreeKeeperError as e:
                self._report(e)

        self.push_screen(ConfirmScreen(format_delete_confirmation(worktree)), delete_worktree)

    @work(thread=True)
    def delete_repository_in_background(self, repo_id: str) -> None:
        """Repository deletion removes the whole directory; keep it off the UI thread."""
        try:
            self.keeper.delete_repository(repo_id)
        except GitWorktreeKeeperError as e:
            self.call_from_thread(self._report, e)

    def action_show_info(self) -> None:
        row = self._selected_row()
        if row is None or row.is_repository:
            return
        self.push_screen(InfoScreen(worktree_details(row.worktree)))

    def action_show_legend(self) -> None:
        self.push_screen(InfoScreen(LEGEND_TEXT.strip()))

    async def action_quit(self) -> None:
        """Stop the snapshot worker; running pipelines finish after exit."""
        self.workers.cancel_all()
        self.exit()
