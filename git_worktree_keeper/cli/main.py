"""Command-line interface for git-worktree-keeper"""

import json
import sys

from rich.console import Console
from rich.live import Live
from rich.prompt import Confirm

from git_worktree_keeper.cli.args import parse_args
from git_worktree_keeper.config import Config
from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.exceptions import GitWorktreeKeeperError, ValidationError
from git_worktree_keeper.logging_config import get_logger, setup_logging
from git_worktree_keeper.models.worktree import WorktreeStatus
from git_worktree_keeper.services.display_service import DisplayService, build_state_table
from git_worktree_keeper.services.seed_service import grow, harvest
from git_worktree_keeper.services.sharing_service import parse_patterns
from git_worktree_keeper.utils.threading import get_threading_info

console = Console()
logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID = 2


def wait_with_progress(keeper: WorktreeKeeper, display: DisplayService) -> None:
    """Print progress changes until no pipeline is running."""
    sub = keeper.subscribe()
    shown: dict = {}
    try:
        while keeper.runner.active_count():
            state = sub.get(timeout=0.2)
            if state is not None:
                shown = display.display_progress(state, shown)
    finally:
        keeper.broadcaster.unsubscribe(sub)
    keeper.wait_idle()


def _wait(keeper: WorktreeKeeper, display: DisplayService, args) -> None:
    """Pipelines run in this process, so every command waits for them."""
    if getattr(args, "quiet", False):
        keeper.wait_idle()
    else:
        wait_with_progress(keeper, display)


def cmd_clone(keeper: WorktreeKeeper, display: DisplayService, args) -> int:
    repo = keeper.clone(args.url, skip_install=args.skip_install)
    console.print(f"Cloning {repo.full_name} into {repo.local_path}")
    _wait(keeper, display, args)

    # A failed clone removes the repository
    if keeper.store.get_repository(repo.id) is None:
        console.print(f"[red]Clone of {args.url} failed (see log for details)[/red]")
        return EXIT_ERROR
    display.display_worktrees(keeper.list_worktrees(repo.id))
    return EXIT_OK


def cmd_worktree(keeper: WorktreeKeeper, display: DisplayService, args) -> int:
    repo = keeper.find_repository(args.repo)
    wt = keeper.create_worktree(repo.id, args.branch, skip_install=args.skip_install)
    console.print(f"Creating worktree {wt.branch} at {wt.path}")
    _wait(keeper, display, args)

    created = keeper.store.get_worktree(wt.path)
    if created is None or created.status != WorktreeStatus.READY:
        console.print(f"[red]Worktree {wt.path} failed; delete it and retry[/red]")
        return EXIT_ERROR
    display.display_worktrees([created])
    return EXIT_OK


def cmd_delete(keeper: WorktreeKeeper, display: DisplayService, args) -> int:
    wt = keeper.delete_worktree(args.path)
    console.print(f"Deleting worktree {wt.path}")
    _wait(keeper, display, args)
    return EXIT_OK


def cmd_delete_repo(keeper: WorktreeKeeper, display: DisplayService, args) -> int:
    repo = keeper.find_repository(args.repo)
    if not args.force and sys.stdin.isatty():
        if not Confirm.ask(f"Delete {repo.full_name} and everything under {repo.local_path}?"):
            console.print("[yellow]Cancelled[/yellow]")
            return EXIT_OK
    keeper.delete_repository(repo.id)
    console.print(f"[green]Deleted {repo.full_name}[/green]")
    return EXIT_OK


def cmd_refresh(keeper: WorktreeKeeper, display: DisplayService, args) -> int:
    repos = [keeper.find_repository(args.repo)] if args.repo else keeper.list_repositories()
    for repo in repos:
        keeper.refresh_repository(repo.id)
    _wait(keeper, display, args)
    if not args.quiet:
        display.display_state(keeper.snapshot())
    return EXIT_OK


def cmd_list(keeper: WorktreeKeeper, display: DisplayService, args) -> int:
    display.display_state(keeper.snapshot(), show_summary=args.summary)
    return EXIT_OK


def cmd_snapshot(keeper: WorktreeKeeper, display: DisplayService, args) -> int:
    print(json.dumps(keeper.snapshot().to_dict(), indent=2))
    return EXIT_OK


def cmd_watch(keeper: WorktreeKeeper, display: DisplayService, args) -> int:
    sub = keeper.subscribe()
    try:
        with Live(build_state_table(keeper.snapshot()), console=console, auto_refresh=False) as live:
            while True:
                # Other processes write the same database; re-read when idle
                state = sub.get(timeout=args.interval) or keeper.snapshot()
                live.update(build_state_table(state), refresh=True)
    finally:
        keeper.broadcaster.unsubscribe(sub)


def cmd_configure(keeper: WorktreeKeeper, display: DisplayService, args) -> int:
    repo = keeper.find_repository(args.repo)
    if args.symlink is None and args.copy is None and args.upstream is None:
        wt_config = keeper.get_worktree_config(repo.id)
    else:
        wt_config = keeper.update_worktree_config(
            repo.id,
            symlink_patterns=parse_patterns(args.symlink) if args.symlink is not None else None,
            copy_patterns=parse_patterns(args.copy) if args.copy is not None else None,
            upstream_remote=args.upstream,
        )

    if wt_config is None:
        console.print(f"[yellow]{repo.full_name} has no sharing policy yet[/yellow]")
        return EXIT_OK
    console.print(f"[bold]{repo.full_name}[/bold]")
    console.print(f"  symlink: {', '.join(wt_config.symlink_patterns) or '-'}")
    console.print(f"  copy: {', '.join(wt_config.copy_patterns) or '-'}")
    console.print(f"  upstream: {wt_config.upstream_remote}")
    return EXIT_OK


def cmd_harvest(keeper: WorktreeKeeper, display: DisplayService, args) -> int:
    count = harvest(keeper, args.file)
    console.print(f"[green]Wrote {count} repositories to {args.file}[/green]")
    return EXIT_OK


def cmd_grow(keeper: WorktreeKeeper, display: DisplayService, args) -> int:
    result = grow(keeper, args.file, skip_install=args.skip_install)
    console.print(f"Cloned: {len(result.cloned)}  Skipped: {len(result.skipped)}  Failed: {len(result.failed)}")
    console.print(f"Worktrees requested: {len(result.worktrees)}")
    for url in result.failed:
        console.print(f"[red]  failed: {url}[/red]")
    return EXIT_ERROR if result.failed else EXIT_OK


def cmd_tui(keeper: WorktreeKeeper, display: DisplayService, args) -> int:
    from git_worktree_keeper.tui import WorktreeKeeperApp

    app = WorktreeKeeperApp(keeper)
    app.run()
    return EXIT_OK


COMMANDS = {
    "clone": cmd_clone,
    "worktree": cmd_worktree,
    "delete": cmd_delete,
    "delete-repo": cmd_delete_repo,
    "refresh": cmd_refresh,
    "list": cmd_list,
    "snapshot": cmd_snapshot,
    "watch": cmd_watch,
    "configure": cmd_configure,
    "harvest": cmd_harvest,
    "grow": cmd_grow,
    "tui": cmd_tui,
}


def main(argv=None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    tui_mode = parsed_args.command == "tui"

    # Setup logging before creating WorktreeKeeper
    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug, tui_mode=tui_mode)

    keeper = None
    try:
        config = Config.from_env(verbose=parsed_args.verbose, debug=parsed_args.debug)

        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")

            threading_info = get_threading_info()
            console.print("[yellow]Threading Information:[/yellow]")
            console.print(f"  Python version: {threading_info['python_version']}")
            console.print(f"  Threading mode: {threading_info['mode']}")
            console.print(f"  CPU count: {threading_info['cpu_count']}")

            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                console.print(f"  {key}: {value}")

        keeper = WorktreeKeeper(config)
        display = DisplayService(verbose=parsed_args.verbose, debug=parsed_args.debug, out=console)
        return COMMANDS[parsed_args.command](keeper, display, parsed_args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return EXIT_ERROR
    except ValidationError as e:
        console.print(f"[red]Error: {e}[/red]")
        return EXIT_INVALID
    except (GitWorktreeKeeperError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        if parsed_args.debug:
            console.print_exception()
        return EXIT_ERROR
    finally:
        if keeper is not None:
            keeper.shutdown()


if __name__ == "__main__":
    sys.exit(main())
