"""Worktree directory naming."""

import os
import re
from pathlib import Path
from typing import Union

from git_worktree_keeper.constants import PRIMARY_WORKTREE_NAME, RESERVED_WORKTREE_NAMES
from git_worktree_keeper.exceptions import InvalidBranchNameError, PathEscapeError

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def validate_branch_name(branch: str) -> str:
    """Return the stripped branch name, rejecting empty and dot-only names."""
    branch = (branch or "").strip()
    if not branch:
        raise InvalidBranchNameError(branch, "Branch name cannot be empty")
    if set(branch) == {"."}:
        raise InvalidBranchNameError(branch, "Branch name cannot consist only of dots")
    return branch


def sanitize_branch_name(branch: str, default_branch: str) -> str:
    """Map a branch to its worktree directory name.

    The default branch always lives in ``.main``. Any other branch has ``..``
    replaced by ``__``, ``/`` by ``--``, and every character outside
    ``[A-Za-z0-9._-]`` dropped, so ``feature/login`` becomes ``feature--login``.
    """
    if branch == default_branch:
        return PRIMARY_WORKTREE_NAME

    name = branch.replace("..", "__").replace("/", "--")
    name = _UNSAFE_CHARS.sub("", name)
    # Dropping characters can bring dots together again
    while ".." in name:
        name = name.replace("..", "__")
    return name


def worktree_dir_name(branch: str, default_branch: str) -> str:
    """Validated, sanitized directory name usable for a new worktree."""
    branch = validate_branch_name(branch)
    name = sanitize_branch_name(branch, default_branch)
    if not name or set(name) == {"."} or name in RESERVED_WORKTREE_NAMES:
        raise InvalidBranchNameError(branch, "Branch name has no usable directory name")
    if name == PRIMARY_WORKTREE_NAME and branch != default_branch:
        raise InvalidBranchNameError(branch, "Directory name is reserved for the default branch")
    return name


def contained_path(root: Union[str, Path], name: str) -> Path:
    """Join ``name`` onto ``root`` and check the result is a direct child of it."""
    root_path = Path(os.path.abspath(root))
    candidate = Path(os.path.abspath(root_path / name))
    if candidate.parent != root_path:
        raise PathEscapeError(str(candidate), str(root_path))
    return candidate
