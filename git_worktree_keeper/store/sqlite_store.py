"""
SQLite store for repositories, worktrees and sharing configuration.

A single connection in autocommit mode is shared by every thread; writes are
serialized with a lock. The store holds no business logic beyond the worktree
status state machine.
"""

import sqlite3
import threading
import time
import uuid
from pathlib import Path
from typing import List, Optional, Union

from git_worktree_keeper.exceptions import (
    InvalidStatusTransitionError,
    RepositoryExistsError,
    StoreError,
    WorktreeExistsError,
    WorktreeNotFoundError,
)
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.repository import NewRepository, Repository
from git_worktree_keeper.models.worktree import (
    GitStatus,
    NewWorktree,
    Worktree,
    WorktreeConfig,
    WorktreeStatus,
)

logger = get_logger(__name__)


def now_ms() -> int:
    """Current time in milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


def join_patterns(patterns: List[str]) -> str:
    return ",".join(patterns)


def split_patterns(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [p.strip() for p in value.split(",") if p.strip()]


class Store:
    """SQLite-backed persistent store.

    Every query failure raises StoreError; ``get_*`` methods return None only
    when the row does not exist.
    """

    def __init__(self, db_path: Union[str, Path]):
        """
        Open (and create if needed) the database.

        Args:
            db_path: Path to the SQLite database file, or ":memory:"
        """
        self.db_path = str(db_path)
        self._lock = threading.RLock()

        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,  # Shared by pipeline threads
                isolation_level=None,  # Autocommit; transactions are explicit
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._create_schema()
        except sqlite3.Error as e:
            raise StoreError("open", f"{self.db_path}: {e}") from e

        logger.debug(f"Opened store at {self.db_path}")

    def _create_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS repositories (
                id TEXT PRIMARY KEY,
                provider TEXT NOT NULL,
                owner TEXT NOT NULL,
                name TEXT NOT NULL,
                clone_url TEXT NOT NULL,
                local_path TEXT NOT NULL UNIQUE,
                default_branch TEXT NOT NULL DEFAULT 'main',
                last_synced INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                deleted_at INTEGER
            )
            """
        )
        self._conn.execute(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS idx_repositories_identity
            ON repositories(provider, owner, name) WHERE deleted_at IS NULL
            """
        )

        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS worktrees (
                path TEXT PRIMARY KEY,
                repo_id TEXT NOT NULL,
                branch TEXT NOT NULL,
                head TEXT,
                status TEXT NOT NULL CHECK (status IN ('creating', 'ready', 'error', 'deleting')),
                commit_message TEXT,
                dirty INTEGER NOT NULL DEFAULT 0,
                ahead INTEGER NOT NULL DEFAULT 0,
                behind INTEGER NOT NULL DEFAULT 0,
                last_status_check INTEGER,
                created_at INTEGER NOT NULL,
                deleted_at INTEGER,
                FOREIGN KEY (repo_id) REFERENCES repositories(id)
            )
            """
        )
        self._conn.execute("CREATE INDEX IF NOT EXISTS idx_worktrees_repo ON worktrees(repo_id)")
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_worktrees_deleted ON worktrees(deleted_at)"
        )

        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS worktree_configs (
                repo_id TEXT PRIMARY KEY,
                symlink_patterns TEXT NOT NULL DEFAULT '',
                copy_patterns TEXT NOT NULL DEFAULT '',
                upstream_remote TEXT NOT NULL DEFAULT 'origin',
                FOREIGN KEY (repo_id) REFERENCES repositories(id)
            )
            """
        )

    def _execute(self, operation: str, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            with self._lock:
                return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StoreError(operation, str(e)) from e

    def _fetchone(self, operation: str, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        try:
            with self._lock:
                return self._conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise StoreError(operation, str(e)) from e

    def _fetchall(self, operation: str, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            with self._lock:
                return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(operation, str(e)) from e

    @staticmethod
    def _row_to_repository(row: sqlite3.Row) -> Repository:
        return Repository(
            id=row["id"],
            provider=row["provider"],
            owner=row["owner"],
            name=row["name"],
            clone_url=row["clone_url"],
            local_path=row["local_path"],
            default_branch=row["default_branch"],
            last_synced=row["last_synced"],
            created_at=row["created_at"],
            deleted_at=row["deleted_at"],
        )

    @staticmethod
    def _row_to_worktree(row: sqlite3.Row) -> Worktree:
        return Worktree(
            path=row["path"],
            repo_id=row["repo_id"],
            branch=row["branch"],
            status=WorktreeStatus(row["status"]),
            head=row["head"],
            commit_message=row["commit_message"],
            dirty=bool(row["dirty"]),
            ahead=row["ahead"],
            behind=row["behind"],
            last_status_check=row["last_status_check"],
            created_at=row["created_at"],
            deleted_at=row["deleted_at"],
        )

    # Repositories

    def insert_repository(self, repo: NewRepository) -> str:
        """Insert a repository row and return its generated id."""
        repo_id = str(uuid.uuid4())
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO repositories
                        (id, provider, owner, name, clone_url, local_path,
                         default_branch, last_synced, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        repo_id,
                        repo.provider,
                        repo.owner,
                        repo.name,
                        repo.clone_url,
                        repo.local_path,
                        repo.default_branch,
                        repo.last_synced,
                        now_ms(),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise RepositoryExistsError(repo.owner, repo.name, repo.local_path) from e
        except sqlite3.Error as e:
            raise StoreError("insert_repository", str(e)) from e

        logger.debug(f"Inserted repository {repo.owner}/{repo.name} as {repo_id}")
        return repo_id

    def get_repository(self, repo_id: str) -> Optional[Repository]:
        row = self._fetchone(
            "get_repository",
            "SELECT * FROM repositories WHERE id = ? AND deleted_at IS NULL",
            (repo_id,),
        )
        return self._row_to_repository(row) if row else None

    def get_repository_by_name(self, provider: str, owner: str, name: str) -> Optional[Repository]:
        row = self._fetchone(
            "get_repository_by_name",
            """
            SELECT * FROM repositories
            WHERE provider = ? AND owner = ? AND name = ? AND deleted_at IS NULL
            """,
            (provider, owner, name),
        )
        return self._row_to_repository(row) if row else None

    def get_repository_by_path(self, local_path: str) -> Optional[Repository]:
        row = self._fetchone(
            "get_repository_by_path",
            "SELECT * FROM repositories WHERE local_path = ? AND deleted_at IS NULL",
            (local_path,),
        )
        return self._row_to_repository(row) if row else None

    def list_repositories(self) -> List[Repository]:
        """All repositories, newest first."""
        rows = self._fetchall(
            "list_repositories",
            """
            SELECT * FROM repositories WHERE deleted_at IS NULL
            ORDER BY created_at DESC, rowid DESC
            """,
        )
        return [self._row_to_repository(row) for row in rows]

    def update_repository_default_branch(self, repo_id: str, branch: str) -> None:
        self._execute(
            "update_repository_default_branch",
            "UPDATE repositories SET default_branch = ? WHERE id = ?",
            (branch, repo_id),
        )

    def update_repository_synced(self, repo_id: str) -> None:
        self._execute(
            "update_repository_synced",
            "UPDATE repositories SET last_synced = ? WHERE id = ?",
            (now_ms(), repo_id),
        )

    def delete_repository(self, repo_id: str) -> None:
        """Delete a repository together with its worktrees and config, atomically."""
        try:
            with self._lock:
                self._conn.execute("BEGIN IMMEDIATE")
                try:
                    self._conn.execute("DELETE FROM worktrees WHERE repo_id = ?", (repo_id,))
                    self._conn.execute("DELETE FROM worktree_configs WHERE repo_id = ?", (repo_id,))
                    self._conn.execute("DELETE FROM repositories WHERE id = ?", (repo_id,))
                    self._conn.execute("COMMIT")
                except sqlite3.Error:
                    self._conn.execute("ROLLBACK")
                    raise
        except sqlite3.Error as e:
            raise StoreError("delete_repository", str(e)) from e

        logger.debug(f"Deleted repository {repo_id}")

    # Worktrees

    def insert_worktree(self, worktree: NewWorktree) -> None:
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO worktrees (path, repo_id, branch, status, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        worktree.path,
                        worktree.repo_id,
                        worktree.branch,
                        worktree.status.value,
                        now_ms(),
                    ),
                )
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e) or "PRIMARY KEY" in str(e):
                raise WorktreeExistsError(worktree.path) from e
            raise StoreError("insert_worktree", str(e)) from e
        except sqlite3.Error as e:
            raise StoreError("insert_worktree", str(e)) from e

    def get_worktree(self, path: str) -> Optional[Worktree]:
        row = self._fetchone(
            "get_worktree",
            "SELECT * FROM worktrees WHERE path = ? AND deleted_at IS NULL",
            (path,),
        )
        return self._row_to_worktree(row) if row else None

    def list_worktrees(self, repo_id: str) -> List[Worktree]:
        """Worktrees of a repository, oldest (the primary checkout) first."""
        rows = self._fetchall(
            "list_worktrees",
            """
            SELECT * FROM worktrees WHERE repo_id = ? AND deleted_at IS NULL
            ORDER BY created_at ASC, rowid ASC
            """,
            (repo_id,),
        )
        return [self._row_to_worktree(row) for row in rows]

    def update_worktree_status(
        self,
        path: str,
        status: WorktreeStatus,
        head: Optional[str] = None,
        commit_message: Optional[str] = None,
    ) -> None:
        """Move a worktree to ``status``, enforcing the allowed transitions."""
        with self._lock:
            current = self.get_worktree(path)
            if current is None:
                raise WorktreeNotFoundError(path)
            if not current.status.can_transition_to(status):
                raise InvalidStatusTransitionError(path, current.status.value, status.value)

            self._execute(
                "update_worktree_status",
                """
                UPDATE worktrees
                SET status = ?, head = COALESCE(?, head),
                    commit_message = COALESCE(?, commit_message)
                WHERE path = ?
                """,
                (status.value, head, commit_message, path),
            )

    def update_worktree_git_status(self, path: str, status: GitStatus) -> None:
        self._execute(
            "update_worktree_git_status",
            """
            UPDATE worktrees
            SET head = ?, commit_message = ?, dirty = ?, ahead = ?, behind = ?,
                last_status_check = ?
            WHERE path = ?
            """,
            (
                status.head,
                status.commit_message,
                int(status.dirty),
                status.ahead,
                status.behind,
                now_ms(),
                path,
            ),
        )

    def delete_worktree(self, path: str) -> None:
        """Remove the row, whatever happened on disk."""
        self._execute("delete_worktree", "DELETE FROM worktrees WHERE path = ?", (path,))

    # Sharing configuration

    def get_worktree_config(self, repo_id: str) -> Optional[WorktreeConfig]:
        row = self._fetchone(
            "get_worktree_config",
            "SELECT * FROM worktree_configs WHERE repo_id = ?",
            (repo_id,),
        )
        if row is None:
            return None
        return WorktreeConfig(
            repo_id=row["repo_id"],
            symlink_patterns=split_patterns(row["symlink_patterns"]),
            copy_patterns=split_patterns(row["copy_patterns"]),
            upstream_remote=row["upstream_remote"],
        )

    def upsert_worktree_config(self, config: WorktreeConfig) -> None:
        self._execute(
            "upsert_worktree_config",
            """
            INSERT INTO worktree_configs (repo_id, symlink_patterns, copy_patterns, upstream_remote)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(repo_id) DO UPDATE SET
                symlink_patterns = excluded.symlink_patterns,
                copy_patterns = excluded.copy_patterns,
                upstream_remote = excluded.upstream_remote
            """,
            (
                config.repo_id,
                join_patterns(config.symlink_patterns),
                join_patterns(config.copy_patterns),
                config.upstream_remote,
            ),
        )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
