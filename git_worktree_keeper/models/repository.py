"""Repository data models."""

from dataclasses import asdict, dataclass
from typing import Optional


@dataclass
class ParsedGitUrl:
    """Components of a remote URL."""

    provider: str
    owner: str
    name: str
    url: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass
class NewRepository:
    """Repository row to insert; id and created_at are assigned by the store."""

    provider: str
    owner: str
    name: str
    clone_url: str
    local_path: str
    default_branch: str = "main"  # Placeholder until the clone detects the real one
    last_synced: int = 0


@dataclass
class Repository:
    """A cloned remote project managed under the code directory."""

    id: str
    provider: str
    owner: str
    name: str
    clone_url: str
    local_path: str  # Root holding .bare, the .git pointer and every worktree
    default_branch: str
    last_synced: int  # Epoch millis, 0 until the first successful sync
    created_at: int
    deleted_at: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Repository":
        """Create from dictionary, ignoring unknown keys such as 'worktrees'."""
        fields = cls.__dataclass_fields__
        return cls(**{k: v for k, v in data.items() if k in fields})
