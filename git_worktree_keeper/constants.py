"""Shared constants for git-worktree-keeper."""

from dataclasses import dataclass
from typing import List


# On-disk layout of a managed repository
PRIMARY_WORKTREE_NAME = ".main"
BARE_DIR_NAME = ".bare"
GITDIR_POINTER_NAME = ".git"
GITDIR_POINTER_CONTENT = f"gitdir: ./{BARE_DIR_NAME}\n"

# Directory names a branch may never map to
RESERVED_WORKTREE_NAMES = {BARE_DIR_NAME, GITDIR_POINTER_NAME}

DEFAULT_UPSTREAM_REMOTE = "origin"
DEFAULT_BRANCH_FALLBACK = "main"

# Sharing policy written after a successful clone
DEFAULT_SYMLINK_PATTERNS = [".env", ".env.*", ".claude/**"]
DEFAULT_COPY_PATTERNS: List[str] = []

# Snapshots buffered per subscriber before the oldest is dropped
DEFAULT_BROADCAST_CAPACITY = 16

KNOWN_PROVIDERS = ["github", "gitlab", "bitbucket"]


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


# Unified column definitions for both CLI and TUI
COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("name", "Worktree", 30),
    ColumnDefinition("branch", "Branch", 24),
    ColumnDefinition("status", "Status", 10),
    ColumnDefinition("head", "Head", 9),
    ColumnDefinition("changes", "Changes", 8),
    ColumnDefinition("sync", "Sync", 10),
    ColumnDefinition("commit", "Last Commit", 40),
    ColumnDefinition("progress", "Progress", 30),
]


# Symbol constants
SYMBOL_PRIMARY = "●"
SYMBOL_SECONDARY = "○"
SYMBOL_DIRTY = "M"
SYMBOL_CLEAN = "✓"
SYMBOL_AHEAD = "↑"
SYMBOL_BEHIND = "↓"


class WorktreeStyleType:
    """Style types for worktree rows."""

    REPOSITORY = "repository"
    READY = "ready"
    BUSY = "busy"
    ERROR = "error"


# CLI colors (Rich color names)
CLI_COLORS = {
    WorktreeStyleType.REPOSITORY: "bold",
    WorktreeStyleType.READY: None,
    WorktreeStyleType.BUSY: "yellow",
    WorktreeStyleType.ERROR: "red",
}


# TUI colors (color names for Textual)
TUI_COLORS = {
    WorktreeStyleType.REPOSITORY: "cyan",
    WorktreeStyleType.READY: "green",
    WorktreeStyleType.BUSY: "yellow",
    WorktreeStyleType.ERROR: "red",
}


LEGEND_TEXT = """
Legend:
● = Primary worktree      ○ = Additional worktree
✓ = Clean                 M = Uncommitted changes
↑ = Commits to push       ↓ = Commits to pull

Colors:
Yellow = Creating / deleting
Red = Pipeline failed (delete and retry)
"""
