"""Command-line argument parsing for git-worktree-keeper."""

import argparse

from git_worktree_keeper.__version__ import __version__


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="git-worktree-keeper",
        description="Clone repositories as bare stores and manage one worktree per branch",
        epilog="Repositories live under $GIT_WORKTREE_KEEPER_CODE_DIR (default ~/code); "
        "state is kept under $GIT_WORKTREE_KEEPER_ROOT (default ~/.git-worktree-keeper).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--version", action="version", version=f"git-worktree-keeper {__version__}")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    clone = subparsers.add_parser("clone", help="Clone a repository and create its main worktree")
    clone.add_argument("url", help="Clone URL (https, ssh or git@host:owner/name)")
    _add_pipeline_flags(clone)

    worktree = subparsers.add_parser("worktree", help="Create a worktree for a branch")
    worktree.add_argument("repo", help="Repository id, owner/name or name")
    worktree.add_argument("branch", help="Branch to check out (created if it does not exist)")
    _add_pipeline_flags(worktree)

    delete = subparsers.add_parser("delete", help="Delete a worktree")
    delete.add_argument("path", help="Worktree path")
    delete.add_argument("-q", "--quiet", action="store_true", help="Do not print progress")

    delete_repo = subparsers.add_parser(
        "delete-repo", help="Delete a repository, its directory and all worktrees"
    )
    delete_repo.add_argument("repo", help="Repository id, owner/name or name")
    delete_repo.add_argument("--force", action="store_true", help="Skip confirmation")

    refresh = subparsers.add_parser("refresh", help="Fetch and update the status of every worktree")
    refresh.add_argument("repo", nargs="?", help="Repository id, owner/name or name (default: all)")
    refresh.add_argument("-q", "--quiet", action="store_true", help="Do not print progress")

    list_cmd = subparsers.add_parser("list", help="List repositories and worktrees")
    list_cmd.add_argument("--summary", action="store_true", help="Show legend and totals")

    subparsers.add_parser("snapshot", help="Print the full state as JSON")

    watch = subparsers.add_parser("watch", help="Show a live view of all repositories")
    watch.add_argument(
        "--interval",
        type=float,
        default=2.0,
        metavar="SECONDS",
        help="Re-read the database after this long without updates (default: 2)",
    )

    configure = subparsers.add_parser("configure", help="Show or change a repository's sharing policy")
    configure.add_argument("repo", help="Repository id, owner/name or name")
    configure.add_argument("--symlink", metavar="PATTERNS", help="Comma-separated symlink patterns")
    configure.add_argument("--copy", metavar="PATTERNS", help="Comma-separated copy patterns")
    configure.add_argument("--upstream", metavar="REMOTE", help="Upstream remote name")

    harvest = subparsers.add_parser("harvest", help="Export repositories and worktrees to a seed file")
    harvest.add_argument("file", help="Seed file to write (JSON Lines)")

    grow = subparsers.add_parser("grow", help="Clone repositories and worktrees from a seed file")
    grow.add_argument("file", help="Seed file to read (JSON Lines)")
    grow.add_argument("--skip-install", action="store_true", help="Do not install dependencies")

    subparsers.add_parser("tui", help="Launch the interactive dashboard")

    return parser


def _add_pipeline_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--skip-install", action="store_true", help="Do not install dependencies")
    parser.add_argument("-q", "--quiet", action="store_true", help="Do not print progress")


def parse_args(argv=None):
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
