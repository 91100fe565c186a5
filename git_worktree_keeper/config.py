"""Configuration handling for git-worktree-keeper"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from git_worktree_keeper.constants import (
    DEFAULT_BROADCAST_CAPACITY,
    DEFAULT_COPY_PATTERNS,
    DEFAULT_SYMLINK_PATTERNS,
    DEFAULT_UPSTREAM_REMOTE,
)

ROOT_ENV_VAR = "GIT_WORKTREE_KEEPER_ROOT"
CODE_DIR_ENV_VAR = "GIT_WORKTREE_KEEPER_CODE_DIR"


def _default_root() -> Path:
    return Path.home() / ".git-worktree-keeper"


def _default_code_dir() -> Path:
    return Path.home() / "code"


@dataclass
class Config:
    """Configuration for git-worktree-keeper with validation."""

    # Where repositories are cloned: <code_dir>/<owner>/<name>
    code_dir: Union[Path, str] = field(default_factory=_default_code_dir)
    # Database and other keeper state
    data_dir: Union[Path, str] = field(default_factory=lambda: _default_root() / "data")
    db_path: Optional[Union[Path, str]] = None

    # Sharing policy written for newly cloned repositories
    upstream_remote: str = DEFAULT_UPSTREAM_REMOTE
    symlink_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_SYMLINK_PATTERNS))
    copy_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_COPY_PATTERNS))

    # State broadcasting
    broadcast_capacity: int = DEFAULT_BROADCAST_CAPACITY

    # Run pipelines touching the same repository one at a time
    serialize_per_repository: bool = False

    # Execution modes
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_paths()
        self._validate_upstream_remote()
        self._validate_patterns()
        self._validate_broadcast_capacity()

    def _validate_paths(self):
        """Normalize directories to absolute paths."""
        self.code_dir = Path(self.code_dir).expanduser().resolve()
        self.data_dir = Path(self.data_dir).expanduser().resolve()
        if self.db_path is None:
            self.db_path = self.data_dir / "repos.db"
        else:
            self.db_path = Path(self.db_path).expanduser().resolve()

    def _validate_upstream_remote(self):
        """Validate upstream_remote is not empty."""
        if not self.upstream_remote or not self.upstream_remote.strip():
            raise ValueError("upstream_remote cannot be empty")
        self.upstream_remote = self.upstream_remote.strip()

    def _validate_patterns(self):
        """Validate sharing patterns are lists of non-empty strings."""
        for name in ("symlink_patterns", "copy_patterns"):
            patterns = getattr(self, name)
            if not isinstance(patterns, list):
                raise ValueError(f"{name} must be a list")
            setattr(self, name, [p.strip() for p in patterns if p and p.strip()])

    def _validate_broadcast_capacity(self):
        """Validate broadcast_capacity is positive."""
        if self.broadcast_capacity <= 0:
            raise ValueError(f"broadcast_capacity must be positive, got {self.broadcast_capacity}")

    def ensure_dirs(self) -> None:
        """Create the code and data directories if missing."""
        Path(self.code_dir).mkdir(parents=True, exist_ok=True)
        Path(self.data_dir).mkdir(parents=True, exist_ok=True)
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict:
        """Convert config to a plain dictionary."""
        return {
            "code_dir": str(self.code_dir),
            "data_dir": str(self.data_dir),
            "db_path": str(self.db_path),
            "upstream_remote": self.upstream_remote,
            "symlink_patterns": self.symlink_patterns,
            "copy_patterns": self.copy_patterns,
            "broadcast_capacity": self.broadcast_capacity,
            "serialize_per_repository": self.serialize_per_repository,
            "verbose": self.verbose,
            "debug": self.debug,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary."""
        known_fields = {
            "code_dir",
            "data_dir",
            "db_path",
            "upstream_remote",
            "symlink_patterns",
            "copy_patterns",
            "broadcast_capacity",
            "serialize_per_repository",
            "verbose",
            "debug",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)

    @classmethod
    def from_env(cls, **overrides) -> "Config":
        """Create Config from environment variables, falling back to defaults.

        GIT_WORKTREE_KEEPER_ROOT holds keeper state (``<root>/data/repos.db``),
        GIT_WORKTREE_KEEPER_CODE_DIR is where repositories are cloned.
        """
        root = Path(os.environ[ROOT_ENV_VAR]) if os.environ.get(ROOT_ENV_VAR) else _default_root()
        code_dir = (
            Path(os.environ[CODE_DIR_ENV_VAR])
            if os.environ.get(CODE_DIR_ENV_VAR)
            else _default_code_dir()
        )

        values = {"code_dir": code_dir, "data_dir": root / "data"}
        values.update(overrides)
        return cls.from_dict(values)
