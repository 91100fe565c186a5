"""Status and progress formatting utilities."""

from typing import Optional

from git_worktree_keeper.constants import WorktreeStyleType
from git_worktree_keeper.models.worktree import Worktree, WorktreeStatus

STATUS_DISPLAY = {
    WorktreeStatus.CREATING: "creating",
    WorktreeStatus.READY: "ready",
    WorktreeStatus.ERROR: "error",
    WorktreeStatus.DELETING: "deleting",
}


def format_status(status: WorktreeStatus) -> str:
    """
    Format worktree status as display text.

    Args:
        status: Worktree status enum value

    Returns:
        Display text for status
    """
    return STATUS_DISPLAY.get(status, status.value)


def format_progress(text: Optional[str]) -> str:
    """Progress text, or empty when idle."""
    return text or ""


def get_worktree_style_type(worktree: Worktree, progress: Optional[str] = None) -> str:
    """
    Determine the style type for a worktree row.

    Args:
        worktree: Worktree row
        progress: In-flight progress text for the worktree, if any

    Returns:
        WorktreeStyleType constant
    """
    if worktree.status == WorktreeStatus.ERROR:
        return WorktreeStyleType.ERROR
    if progress or worktree.status in (WorktreeStatus.CREATING, WorktreeStatus.DELETING):
        return WorktreeStyleType.BUSY
    return WorktreeStyleType.READY


def format_delete_confirmation(worktree: Worktree) -> str:
    """Confirmation prompt for deleting a worktree."""
    warning = ""
    if worktree.dirty:
        warning = "\n\nIt has uncommitted changes that will be lost."
    return f"Delete worktree '{worktree.branch}'?\n{worktree.path}{warning}"
