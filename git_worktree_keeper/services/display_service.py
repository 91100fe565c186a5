"""Display and formatting service for repository and worktree information"""

import time
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from git_worktree_keeper.constants import CLI_COLORS, COLUMNS, LEGEND_TEXT, WorktreeStyleType
from git_worktree_keeper.formatters import (
    format_age,
    format_changes,
    format_commit_message,
    format_head,
    format_progress,
    format_status,
    format_sync,
    format_worktree_name,
    get_worktree_style_type,
)
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.repository import Repository
from git_worktree_keeper.models.state import FullState
from git_worktree_keeper.models.worktree import Worktree, WorktreeStatus

console = Console()
logger = get_logger(__name__)


def build_state_table(state: FullState, now_millis: Optional[int] = None) -> Table:
    """Build a table with one bold row per repository followed by its worktrees."""
    now_millis = now_millis or int(time.time() * 1000)
    table = Table()

    # Add columns using shared constants
    for col in COLUMNS:
        table.add_column(col.label, no_wrap=col.key in ("head", "sync"))

    for entry in state.repositories:
        repo = entry.repo
        table.add_row(
            repo.full_name,
            repo.default_branch,
            f"synced {format_age(repo.last_synced, now_millis)}",
            "",
            "",
            "",
            repo.local_path,
            format_progress(state.progress.get(repo.id)),
            style=CLI_COLORS.get(WorktreeStyleType.REPOSITORY),
        )

        for wt in entry.worktrees:
            progress = state.progress.get(wt.path)
            style_type = get_worktree_style_type(wt, progress)
            # Match COLUMNS order: Worktree, Branch, Status, Head, Changes, Sync, Last Commit, Progress
            table.add_row(
                format_worktree_name(wt),
                wt.branch,
                format_status(wt.status),
                format_head(wt.head),
                format_changes(wt),
                format_sync(wt.ahead, wt.behind),
                format_commit_message(wt.commit_message),
                format_progress(progress),
                style=CLI_COLORS.get(style_type),
            )

    return table


class DisplayService:
    """Prints snapshots and single resources to the terminal."""

    def __init__(self, verbose: bool = False, debug: bool = False, out: Optional[Console] = None):
        self.verbose = verbose
        self.debug_mode = debug
        self.console = out or console

    def display_state(self, state: FullState, show_summary: bool = False) -> None:
        """Display all repositories and their worktrees."""
        if not state.repositories:
            self.console.print("[dim]No repositories. Clone one with 'git-worktree-keeper clone URL'.[/dim]")
            return

        self.console.print(build_state_table(state))

        if show_summary:
            self.console.print(LEGEND_TEXT)
            worktrees = [wt for entry in state.repositories for wt in entry.worktrees]
            self.console.print("Summary:")
            self.console.print(f"Repositories: {len(state.repositories)}")
            self.console.print(f"Worktrees: {len(worktrees)}")
            failed = [wt for wt in worktrees if wt.status == WorktreeStatus.ERROR]
            if failed:
                self.console.print(f"[red]Failed worktrees: {len(failed)}[/red]")
                for wt in failed:
                    self.console.print(f"  {wt.path}")

    def display_repositories(self, repos: List[Repository]) -> None:
        table = Table()
        table.add_column("Id", no_wrap=True)
        table.add_column("Repository")
        table.add_column("Default Branch")
        table.add_column("Path")
        for repo in repos:
            table.add_row(repo.id, repo.full_name, repo.default_branch, repo.local_path)
        self.console.print(table)

    def display_worktrees(self, worktrees: List[Worktree]) -> None:
        table = Table()
        table.add_column("Path")
        table.add_column("Branch")
        table.add_column("Status")
        table.add_column("Changes")
        table.add_column("Sync")
        for wt in worktrees:
            table.add_row(
                wt.path,
                wt.branch,
                format_status(wt.status),
                format_changes(wt),
                format_sync(wt.ahead, wt.behind),
                style=CLI_COLORS.get(get_worktree_style_type(wt)),
            )
        self.console.print(table)

    def display_progress(self, state: FullState, previous: Optional[dict] = None) -> dict:
        """Print progress lines that changed since ``previous``; returns the new map."""
        previous = previous or {}
        labels = {}
        for entry in state.repositories:
            labels[entry.repo.id] = entry.repo.full_name
            for wt in entry.worktrees:
                labels[wt.path] = f"{entry.repo.full_name}:{wt.branch}"

        for key, text in state.progress.items():
            if previous.get(key) != text:
                self.console.print(f"[yellow]{labels.get(key, key)}[/yellow] {text}")
        return dict(state.progress)
