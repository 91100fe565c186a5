"""Utility functions for git-worktree-keeper.

This package provides utility modules:
- naming: worktree directory naming and containment
- threading: background pipeline runner and threading diagnostics
"""

from .naming import contained_path, sanitize_branch_name, validate_branch_name, worktree_dir_name
from .threading import PipelineRunner, get_python_threading_mode, get_threading_info

__all__ = [
    # Naming
    "contained_path",
    "sanitize_branch_name",
    "validate_branch_name",
    "worktree_dir_name",
    # Threading
    "PipelineRunner",
    "get_python_threading_mode",
    "get_threading_info",
]
