"""Custom widgets for git-worktree-keeper TUI."""

from textual.events import Click
from textual.widgets import Header, Static

from git_worktree_keeper.models.state import FullState
from git_worktree_keeper.models.worktree import WorktreeStatus


class NonExpandingHeader(Header):
    """Header widget that doesn't expand/contract on click."""

    def on_click(self, event: Click) -> None:
        event.stop()


def summarize_state(state: FullState) -> str:
    """One-line totals for the status bar."""
    worktrees = [wt for entry in state.repositories for wt in entry.worktrees]
    counts = {status: 0 for status in WorktreeStatus}
    for wt in worktrees:
        counts[wt.status] += 1

    busy = counts[WorktreeStatus.CREATING] + counts[WorktreeStatus.DELETING]
    return (
        f"Repositories: {len(state.repositories)} | "
        f"Worktrees: {len(worktrees)} | "
        f"Ready: {counts[WorktreeStatus.READY]} | "
        f"Busy: {busy} | "
        f"Failed: {counts[WorktreeStatus.ERROR]} | "
        f"Running: {len(state.progress)}"
    )


class StatusBar(Static):
    """Bottom bar showing totals of the latest snapshot."""

    def show_state(self, state: FullState) -> None:
        self.update(summarize_state(state))
