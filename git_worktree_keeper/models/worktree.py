"""Worktree data models."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import List, Optional


class WorktreeStatus(Enum):
    """Lifecycle status of a worktree row."""

    CREATING = "creating"
    READY = "ready"
    ERROR = "error"
    DELETING = "deleting"

    def can_transition_to(self, target: "WorktreeStatus") -> bool:
        """Check a status change against the lifecycle.

        READY and ERROR are only reached from CREATING (READY -> READY is a
        status refresh). Only READY and ERROR rows may be deleted; a CREATING
        row belongs to its running pipeline. Deletion ends with the row being
        removed, never with another status.
        """
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    WorktreeStatus.CREATING: {WorktreeStatus.READY, WorktreeStatus.ERROR},
    WorktreeStatus.READY: {WorktreeStatus.READY, WorktreeStatus.DELETING},
    WorktreeStatus.ERROR: {WorktreeStatus.DELETING},
    WorktreeStatus.DELETING: set(),
}


@dataclass
class NewWorktree:
    """Worktree row to insert."""

    path: str
    repo_id: str
    branch: str
    status: WorktreeStatus = WorktreeStatus.CREATING


@dataclass
class Worktree:
    """One checked-out branch of a repository."""

    path: str  # Absolute, primary key
    repo_id: str
    branch: str
    status: WorktreeStatus
    head: Optional[str] = None
    commit_message: Optional[str] = None
    dirty: bool = False
    ahead: int = 0
    behind: int = 0
    last_status_check: Optional[int] = None
    created_at: int = 0
    deleted_at: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Worktree":
        """Create from dictionary."""
        data = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        data["status"] = WorktreeStatus(data["status"])
        return cls(**data)


@dataclass
class GitStatus:
    """Git status read from a worktree."""

    branch: str
    head: Optional[str] = None
    dirty: bool = False
    ahead: int = 0
    behind: int = 0
    commit_message: Optional[str] = None  # First line only


@dataclass
class WorktreeConfig:
    """Per-repository file sharing policy."""

    repo_id: str
    symlink_patterns: List[str] = field(default_factory=list)
    copy_patterns: List[str] = field(default_factory=list)
    upstream_remote: str = "origin"


@dataclass
class WorktreeInfo:
    """Entry of `git worktree list --porcelain`."""

    path: str
    branch_name: str
    commit_sha: str
    is_bare: bool  # The shared .bare store itself
    is_orphaned: bool  # Directory missing?

    def __str__(self) -> str:
        """String representation of worktree."""
        status = "orphaned" if self.is_orphaned else "active"
        bare_marker = " (bare)" if self.is_bare else ""
        return f"{self.branch_name} @ {self.path}{bare_marker} [{status}]"
