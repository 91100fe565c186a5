"""Full-state snapshot models pushed to observers."""

from dataclasses import dataclass, field
from typing import Dict, List

from git_worktree_keeper.models.repository import Repository
from git_worktree_keeper.models.worktree import Worktree


@dataclass
class RepoWithWorktrees:
    """A repository together with its worktrees (primary checkout first)."""

    repo: Repository
    worktrees: List[Worktree] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Flatten repository fields and nest the worktrees."""
        data = self.repo.to_dict()
        data["worktrees"] = [wt.to_dict() for wt in self.worktrees]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "RepoWithWorktrees":
        return cls(
            repo=Repository.from_dict(data),
            worktrees=[Worktree.from_dict(wt) for wt in data.get("worktrees", [])],
        )


@dataclass
class FullState:
    """Everything an observer needs: all repositories plus in-flight progress."""

    repositories: List[RepoWithWorktrees] = field(default_factory=list)
    progress: Dict[str, str] = field(default_factory=dict)  # repo id or worktree path -> text

    def to_dict(self) -> dict:
        return {
            "repositories": [r.to_dict() for r in self.repositories],
            "progress": dict(self.progress),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FullState":
        return cls(
            repositories=[RepoWithWorktrees.from_dict(r) for r in data.get("repositories", [])],
            progress=dict(data.get("progress", {})),
        )

    def find_repository(self, repo_id: str) -> "RepoWithWorktrees | None":
        """Look up a repository entry by id."""
        for entry in self.repositories:
            if entry.repo.id == repo_id:
                return entry
        return None
