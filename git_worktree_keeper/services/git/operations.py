"""Git operations service"""

import os
from pathlib import Path
from typing import Optional, Union

import git

from git_worktree_keeper.constants import (
    DEFAULT_BRANCH_FALLBACK,
    GITDIR_POINTER_CONTENT,
    GITDIR_POINTER_NAME,
)
from git_worktree_keeper.exceptions import GitOperationError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.worktree import GitStatus

logger = get_logger(__name__)

PathLike = Union[str, Path]


def command_error(
    operation: str, error: git.exc.GitCommandError, branch: Optional[str] = None
) -> GitOperationError:
    """Build a GitOperationError from a failed git command."""
    stderr = (error.stderr if hasattr(error, "stderr") else str(error)) or ""
    stderr = stderr.strip()
    status = error.status if hasattr(error, "status") else "unknown"

    if stderr:
        message = f"exit {status}: {stderr}"
    else:
        message = f"exit code {status}"
    return GitOperationError(operation, branch=branch, message=message)


class GitOperations:
    """Service for Git operations against a repository root.

    Every call builds a fresh ``git.Git``/``git.Repo`` so the service can be
    shared between pipeline threads.
    """

    def _git(self, cwd: PathLike) -> git.Git:
        return git.Git(str(cwd))

    def _get_repo(self, path: PathLike) -> git.Repo:
        return git.Repo(str(path))

    def clone_bare(self, url: str, bare_path: PathLike) -> None:
        """Clone ``url`` as a bare store at ``bare_path``."""
        logger.info(f"Cloning {url} into {bare_path}")
        try:
            git.Repo.clone_from(url, str(bare_path), bare=True)
        except git.exc.GitCommandError as e:
            raise command_error("clone", e) from e

    def write_gitdir_pointer(self, root: PathLike) -> None:
        """Point ``<root>/.git`` at the bare store."""
        pointer = Path(root) / GITDIR_POINTER_NAME
        pointer.write_text(GITDIR_POINTER_CONTENT)

    def set_config(self, root: PathLike, key: str, value: str) -> None:
        try:
            self._git(root).config(key, value)
        except git.exc.GitCommandError as e:
            raise command_error("config", e) from e

    def configure_fetch_refspec(self, root: PathLike, remote: str) -> None:
        """Bare clones map no remote-tracking refs; restore the standard refspec."""
        self.set_config(root, f"remote.{remote}.fetch", f"+refs/heads/*:refs/remotes/{remote}/*")

    def fetch(self, root: PathLike, remote: str) -> None:
        logger.debug(f"Fetching {remote} in {root}")
        try:
            self._git(root).fetch(remote)
        except git.exc.GitCommandError as e:
            raise command_error("fetch", e) from e

    def pull(self, worktree_path: PathLike) -> None:
        """Fast-forward the checked-out branch."""
        try:
            self._git(worktree_path).pull("--ff-only")
        except git.exc.GitCommandError as e:
            raise command_error("pull", e) from e

    def delete_local_branch(self, root: PathLike, branch: str) -> bool:
        """Force-delete a local branch.

        Returns:
            bool: True if the branch was deleted, False if it was absent or in use
        """
        try:
            self._git(root).branch("-D", branch)
            logger.debug(f"Deleted local branch {branch}")
            return True
        except git.exc.GitCommandError as e:
            logger.debug(f"Could not delete local branch {branch}: {e}")
            return False

    def ref_exists(self, root: PathLike, ref: str) -> bool:
        """Check whether a full ref name (e.g. refs/heads/main) resolves."""
        try:
            self._git(root).rev_parse("--verify", "--quiet", ref)
            return True
        except git.exc.GitCommandError:
            return False

    def detect_default_branch(self, root: PathLike, remote: str) -> str:
        """Find the remote's default branch.

        Tries the remote HEAD symbolic ref first, then asks the remote
        directly with ``ls-remote --symref``. Falls back to ``main``.
        """
        repo_git = self._git(root)
        try:
            ref = repo_git.symbolic_ref("--short", f"refs/remotes/{remote}/HEAD").strip()
            prefix = f"{remote}/"
            if ref.startswith(prefix):
                return ref[len(prefix):]
            if ref:
                return ref
        except git.exc.GitCommandError:
            logger.debug(f"No refs/remotes/{remote}/HEAD in {root}")

        try:
            output = repo_git.ls_remote("--symref", remote, "HEAD")
            for line in output.splitlines():
                # ref: refs/heads/main\tHEAD
                if line.startswith("ref:"):
                    target = line[len("ref:"):].split("\t")[0].strip()
                    if target.startswith("refs/heads/"):
                        return target[len("refs/heads/"):]
        except git.exc.GitCommandError as e:
            logger.debug(f"ls-remote --symref failed for {remote}: {e}")

        logger.warning(f"Could not detect default branch of {root}, assuming {DEFAULT_BRANCH_FALLBACK}")
        return DEFAULT_BRANCH_FALLBACK

    def _ahead_behind(self, repo: git.Repo, remote: str, branch: str) -> tuple[int, int]:
        """Commits ahead of and behind ``<remote>/<branch>``."""
        try:
            output = repo.git.rev_list("--left-right", "--count", f"{remote}/{branch}...HEAD")
            behind, ahead = output.split()
            return int(ahead), int(behind)
        except (git.exc.GitCommandError, ValueError):
            return 0, 0

    def get_status(self, worktree_path: PathLike, remote: str) -> GitStatus:
        """Read branch, head, dirty flag and sync counts of a worktree."""
        if not os.path.isdir(worktree_path):
            raise GitOperationError("status", message=f"{worktree_path} does not exist")

        try:
            repo = self._get_repo(worktree_path)
            if repo.head.is_detached:
                branch = "HEAD"
            else:
                branch = repo.active_branch.name

            head = None
            commit_message = None
            if repo.head.is_valid():
                commit = repo.head.commit
                head = commit.hexsha
                message = commit.message
                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                lines = message.strip().splitlines()
                commit_message = lines[0] if lines else ""

            # Symlinked shared files are usually ignored, not committed
            dirty = repo.is_dirty(untracked_files=False)

            ahead, behind = (0, 0)
            if branch != "HEAD":
                ahead, behind = self._ahead_behind(repo, remote, branch)

            return GitStatus(
                branch=branch,
                head=head,
                dirty=dirty,
                ahead=ahead,
                behind=behind,
                commit_message=commit_message,
            )
        except git.exc.GitCommandError as e:
            raise command_error("status", e) from e
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise GitOperationError("status", message=f"{worktree_path}: {e}") from e
