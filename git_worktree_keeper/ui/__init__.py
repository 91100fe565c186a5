"""Screens and widgets for the git-worktree-keeper TUI."""
