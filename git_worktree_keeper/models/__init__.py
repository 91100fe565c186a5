"""Data models for git-worktree-keeper."""

from .repository import NewRepository, ParsedGitUrl, Repository
from .state import FullState, RepoWithWorktrees
from .worktree import (
    GitStatus,
    NewWorktree,
    Worktree,
    WorktreeConfig,
    WorktreeInfo,
    WorktreeStatus,
)

__all__ = [
    "NewRepository",
    "ParsedGitUrl",
    "Repository",
    "FullState",
    "RepoWithWorktrees",
    "GitStatus",
    "NewWorktree",
    "Worktree",
    "WorktreeConfig",
    "WorktreeInfo",
    "WorktreeStatus",
]
