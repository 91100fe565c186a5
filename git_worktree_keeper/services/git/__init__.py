"""Git-related services for git-worktree-keeper."""

from .operations import GitOperations
from .urls import parse_remote_url
from .worktrees import WorktreeService

__all__ = [
    "GitOperations",
    "WorktreeService",
    "parse_remote_url",
]
