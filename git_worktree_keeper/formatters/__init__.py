"""Formatting utilities for git-worktree-keeper.

This package provides various formatting functions for displaying repository
and worktree information, organized into logical modules:
- date: Timestamp formatting
- worktree: Worktree name, changes and sync formatting
- status: Status, progress and row style formatting
"""

# Date formatters
from .date import format_age, format_timestamp

# Worktree formatters
from .worktree import (
    format_changes,
    format_commit_message,
    format_head,
    format_sync,
    format_worktree_name,
    is_primary,
)

# Status formatters
from .status import (
    format_delete_confirmation,
    format_progress,
    format_status,
    get_worktree_style_type,
)

__all__ = [
    # Date
    "format_age",
    "format_timestamp",
    # Worktree
    "format_changes",
    "format_commit_message",
    "format_head",
    "format_sync",
    "format_worktree_name",
    "is_primary",
    # Status
    "format_delete_confirmation",
    "format_progress",
    "format_status",
    "get_worktree_style_type",
]
