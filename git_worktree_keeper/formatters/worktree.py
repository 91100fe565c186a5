"""Worktree name, change and sync formatting utilities."""

import os
from typing import Optional

from git_worktree_keeper.constants import (
    PRIMARY_WORKTREE_NAME,
    SYMBOL_AHEAD,
    SYMBOL_BEHIND,
    SYMBOL_CLEAN,
    SYMBOL_DIRTY,
    SYMBOL_PRIMARY,
    SYMBOL_SECONDARY,
)
from git_worktree_keeper.models.worktree import Worktree


def is_primary(worktree: Worktree) -> bool:
    return os.path.basename(worktree.path) == PRIMARY_WORKTREE_NAME


def format_worktree_name(worktree: Worktree) -> str:
    """
    Format the worktree directory name with a primary/secondary marker.

    Args:
        worktree: Worktree row

    Returns:
        e.g. "  ● .main" or "  ○ feature--login"
    """
    marker = SYMBOL_PRIMARY if is_primary(worktree) else SYMBOL_SECONDARY
    return f"  {marker} {os.path.basename(worktree.path)}"


def format_head(head: Optional[str], length: int = 7) -> str:
    """Abbreviated commit id."""
    return head[:length] if head else ""


def format_changes(worktree: Worktree) -> str:
    """
    Format the dirty flag as a symbol.

    Status fields are only meaningful once a status check has run.
    """
    if worktree.last_status_check is None:
        return ""
    return SYMBOL_DIRTY if worktree.dirty else SYMBOL_CLEAN


def format_sync(ahead: int, behind: int) -> str:
    """
    Format ahead/behind counts.

    Returns:
        e.g. "↑2 ↓1", "↑3", or "" when in sync
    """
    parts = []
    if ahead:
        parts.append(f"{SYMBOL_AHEAD}{ahead}")
    if behind:
        parts.append(f"{SYMBOL_BEHIND}{behind}")
    return " ".join(parts)


def format_commit_message(message: Optional[str], width: int = 40) -> str:
    """First line of the commit message, truncated to ``width``."""
    if not message:
        return ""
    if len(message) <= width:
        return message
    return message[: width - 1] + "…"
