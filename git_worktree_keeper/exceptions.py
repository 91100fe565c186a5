"""Custom exceptions for git-worktree-keeper"""

from typing import Optional


class GitWorktreeKeeperError(Exception):
    """Base exception for all git-worktree-keeper errors."""
    pass


class GitOperationError(GitWorktreeKeeperError):
    """Exception raised for errors in Git operations."""

    def __init__(self, operation: str, branch: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.branch = branch
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class StoreError(GitWorktreeKeeperError):
    """Exception raised when a database query fails."""

    def __init__(self, operation: str, message: Optional[str] = None):
        self.operation = operation
        self.message = message

        error_msg = f"Store operation '{operation}' failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class ValidationError(GitWorktreeKeeperError):
    """Bad input rejected before anything is written."""
    pass


class InvalidGitUrlError(ValidationError):
    """Exception raised when a clone URL cannot be parsed."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid Git URL: {url}")


class InvalidBranchNameError(ValidationError):
    """Exception raised for empty or unusable branch names."""

    def __init__(self, branch: str, reason: str = "Invalid branch name"):
        self.branch = branch
        super().__init__(f"{reason}: '{branch}'")


class PathEscapeError(ValidationError):
    """Exception raised when a worktree path would leave its repository root."""

    def __init__(self, path: str, root: str):
        self.path = path
        self.root = root
        super().__init__(f"Invalid worktree path {path} (outside {root})")


class NotFoundError(GitWorktreeKeeperError):
    """Lookup of a repository or worktree found nothing."""
    pass


class RepositoryNotFoundError(NotFoundError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Repository not found: {key}")


class WorktreeNotFoundError(NotFoundError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Worktree not found: {path}")


class AlreadyExistsError(GitWorktreeKeeperError):
    """A resource with the same identity is already present."""
    pass


class RepositoryExistsError(AlreadyExistsError):
    """Exception raised when cloning a repository that is already managed."""

    def __init__(self, owner: str, name: str, local_path: str):
        self.owner = owner
        self.name = name
        self.local_path = local_path
        super().__init__(
            f"Repository {owner}/{name} already exists at {local_path}. Delete it first."
        )


class WorktreeExistsError(AlreadyExistsError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Worktree already exists: {path}")


class InvalidStatusTransitionError(GitWorktreeKeeperError):
    """Exception raised for a worktree status change the state machine forbids."""

    def __init__(self, path: str, current: str, requested: str):
        self.path = path
        self.current = current
        self.requested = requested
        super().__init__(f"Worktree {path} cannot move from '{current}' to '{requested}'")


class InstallError(GitWorktreeKeeperError):
    """Exception raised when a dependency install command fails."""

    def __init__(self, command: str, message: Optional[str] = None):
        self.command = command
        self.message = message

        error_msg = f"'{command}' failed"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class RepositoryDeleteError(GitWorktreeKeeperError):
    """Exception raised when a repository directory cannot be removed."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Failed to delete directory {path}: {message}")


class SeedFileError(GitWorktreeKeeperError):
    """Exception raised for unreadable or malformed seed files."""

    def __init__(self, path: str, message: str, line: Optional[int] = None):
        self.path = path
        self.line = line

        location = f"{path}:{line}" if line is not None else path
        super().__init__(f"Invalid seed file {location}: {message}")
