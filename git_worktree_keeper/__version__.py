"""Version information for git-worktree-keeper."""

try:
    from git_worktree_keeper._version import __version__
except ImportError:
    # Running from a source tree without an installed version file
    __version__ = "0.0.0+unknown"
