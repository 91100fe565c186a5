"""Worktree operations service for git-worktree-keeper."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import git

from git_worktree_keeper.exceptions import GitOperationError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.worktree import WorktreeInfo
from git_worktree_keeper.services.git.operations import GitOperations, command_error

logger = get_logger(__name__)

PathLike = Union[str, Path]


class WorktreeService:
    """Service for managing the worktrees of a bare-backed repository."""

    def __init__(self, git_ops: Optional[GitOperations] = None):
        self.git_ops = git_ops or GitOperations()

    def _git(self, root: PathLike) -> git.Git:
        return git.Git(str(root))

    def create_worktree(self, root: PathLike, path: PathLike, branch: str, remote: str) -> None:
        """Create a worktree for ``branch`` at ``path``.

        Resolution order:
        1. A local branch exists: check it out, then try to track
           ``<remote>/<branch>``.
        2. Only ``<remote>/<branch>`` exists: create a local tracking branch.
        3. Neither exists: create a new branch from HEAD.
        """
        repo_git = self._git(root)
        path = str(path)
        remote_ref = f"{remote}/{branch}"
        has_remote = self.git_ops.ref_exists(root, f"refs/remotes/{remote_ref}")

        try:
            if self.git_ops.ref_exists(root, f"refs/heads/{branch}"):
                logger.debug(f"Checking out existing local branch {branch} at {path}")
                repo_git.worktree("add", path, branch)
                if has_remote:
                    try:
                        repo_git.branch(f"--set-upstream-to={remote_ref}", branch)
                    except git.exc.GitCommandError as e:
                        logger.warning(f"Could not set upstream of {branch} to {remote_ref}: {e}")
            elif has_remote:
                logger.debug(f"Creating {branch} tracking {remote_ref} at {path}")
                repo_git.worktree("add", "--track", "-b", branch, path, remote_ref)
            else:
                logger.debug(f"Creating new branch {branch} at {path}")
                repo_git.worktree("add", "-b", branch, path)
        except git.exc.GitCommandError as e:
            raise command_error("worktree add", e, branch=branch) from e

        logger.info(f"Created worktree for {branch} at {path}")

    def remove_worktree(self, root: PathLike, path: PathLike) -> None:
        """Remove a worktree, even if it has local changes."""
        try:
            self._git(root).worktree("remove", str(path), "--force")
            logger.info(f"Removed worktree at {path}")
        except git.exc.GitCommandError as e:
            raise command_error("worktree remove", e) from e

    def prune_worktrees(self, root: PathLike) -> None:
        """Prune metadata of worktrees whose directories are gone."""
        try:
            self._git(root).worktree("prune")
            logger.debug(f"Pruned worktree metadata in {root}")
        except git.exc.GitCommandError as e:
            raise command_error("worktree prune", e) from e

    def list_worktrees(self, root: PathLike) -> List[WorktreeInfo]:
        """List worktrees known to git.

        Returns:
            List of WorktreeInfo, the bare store first
        """
        try:
            output = self._git(root).worktree("list", "--porcelain")
        except git.exc.GitCommandError as e:
            raise command_error("worktree list", e) from e

        # Format:
        # worktree /path/to/worktree
        # HEAD commit_sha
        # branch refs/heads/branch-name   (or "detached" / "bare")
        # (blank line between worktrees)
        worktree_list: List[WorktreeInfo] = []
        current: Dict[str, Any] = {}

        def flush():
            path = current.get("path")
            if path:
                worktree_list.append(
                    WorktreeInfo(
                        path=path,
                        branch_name=current.get("branch", ""),
                        commit_sha=current.get("HEAD", ""),
                        is_bare=current.get("bare", False),
                        is_orphaned=not os.path.exists(path),
                    )
                )

        for line in output.split("\n"):
            line = line.strip()
            if not line:
                flush()
                current = {}
                continue

            if line.startswith("worktree "):
                current["path"] = line.split(" ", 1)[1]
            elif line.startswith("HEAD "):
                current["HEAD"] = line.split(" ", 1)[1]
            elif line.startswith("branch "):
                branch_ref = line.split(" ", 1)[1]
                if branch_ref.startswith("refs/heads/"):
                    current["branch"] = branch_ref[len("refs/heads/"):]
            elif line == "bare":
                current["bare"] = True

        flush()

        logger.debug(f"Found {len(worktree_list)} worktrees in {root}")
        return worktree_list

    def find_worktree(self, root: PathLike, path: PathLike) -> Optional[WorktreeInfo]:
        """Find the git-side entry for a worktree path."""
        target = os.path.realpath(str(path))
        try:
            infos = self.list_worktrees(root)
        except GitOperationError as e:
            logger.debug(f"Could not list worktrees in {root}: {e}")
            return None
        for info in infos:
            if os.path.realpath(info.path) == target:
                return info
        return None
