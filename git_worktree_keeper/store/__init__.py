"""Persistent storage for git-worktree-keeper."""

from .sqlite_store import Store, now_ms

__all__ = ["Store", "now_ms"]
