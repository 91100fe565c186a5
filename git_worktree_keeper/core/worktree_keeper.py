"""Core functionality for git-worktree-keeper"""

import os
import shutil
from pathlib import Path
from typing import Callable, List, Optional, Union

from git_worktree_keeper.config import Config
from git_worktree_keeper.constants import BARE_DIR_NAME, PRIMARY_WORKTREE_NAME
from git_worktree_keeper.exceptions import (
    GitOperationError,
    GitWorktreeKeeperError,
    InstallError,
    InvalidGitUrlError,
    RepositoryDeleteError,
    RepositoryExistsError,
    RepositoryNotFoundError,
    StoreError,
    WorktreeExistsError,
    WorktreeNotFoundError,
)
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.repository import NewRepository, Repository
from git_worktree_keeper.models.state import FullState
from git_worktree_keeper.models.worktree import (
    NewWorktree,
    Worktree,
    WorktreeConfig,
    WorktreeStatus,
)
from git_worktree_keeper.services.git import GitOperations, WorktreeService, parse_remote_url
from git_worktree_keeper.services.install_service import InstallService
from git_worktree_keeper.services.sharing_service import share_files
from git_worktree_keeper.services.state_service import StateBroadcaster, Subscription
from git_worktree_keeper.store import Store
from git_worktree_keeper.utils.naming import contained_path, validate_branch_name, worktree_dir_name
from git_worktree_keeper.utils.threading import PipelineRunner

logger = get_logger(__name__)


class WorktreeKeeper:
    """Drives the clone, worktree and refresh pipelines.

    Public methods validate their input and write the provisional row
    synchronously, then hand the rest of the work to a background pipeline.
    A returned value means "accepted", not "succeeded"; outcomes show up in
    the store, the snapshot stream and the log.
    """

    def __init__(
        self,
        config: Union[Config, dict, None] = None,
        store: Optional[Store] = None,
        git_ops: Optional[GitOperations] = None,
        worktrees: Optional[WorktreeService] = None,
        installer: Optional[InstallService] = None,
        sharing: Optional[Callable] = None,
        broadcaster: Optional[StateBroadcaster] = None,
        runner: Optional[PipelineRunner] = None,
    ):
        """Initialize WorktreeKeeper.

        Args:
            config: Configuration dict or Config object (defaults to Config.from_env())
            store: Persistent store, opened at config.db_path if omitted
            git_ops: Git primitives
            worktrees: Worktree add/remove service
            installer: Dependency installer
            sharing: File sharing function with the signature of share_files
            broadcaster: State broadcaster over ``store``
            runner: Background pipeline runner
        """
        if config is None:
            config = Config.from_env()
        elif isinstance(config, dict):
            config = Config.from_dict(config)
        self.config = config

        if store is None:
            config.ensure_dirs()
            store = Store(config.db_path)
        self.store = store
        self.git_ops = git_ops or GitOperations()
        self.worktrees = worktrees or WorktreeService(self.git_ops)
        self.installer = installer or InstallService()
        self.share = sharing or share_files
        self.broadcaster = broadcaster or StateBroadcaster(store, capacity=config.broadcast_capacity)
        self.runner = runner or PipelineRunner(serialize_by_key=config.serialize_per_repository)

    # Queries

    def list_repositories(self) -> List[Repository]:
        return self.store.list_repositories()

    def list_worktrees(self, repo_id: str) -> List[Worktree]:
        self._require_repository(repo_id)
        return self.store.list_worktrees(repo_id)

    def snapshot(self) -> FullState:
        return self.broadcaster.snapshot()

    def subscribe(self) -> Subscription:
        return self.broadcaster.subscribe()

    def find_repository(self, ref: str) -> Repository:
        """Resolve a repository by id, ``owner/name`` or bare name."""
        repo = self.store.get_repository(ref)
        if repo is not None:
            return repo

        matches = []
        for candidate in self.store.list_repositories():
            if ref in (candidate.full_name, candidate.name, candidate.local_path):
                matches.append(candidate)
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            logger.debug(f"'{ref}' is ambiguous: {[m.full_name for m in matches]}")
        raise RepositoryNotFoundError(ref)

    def _require_repository(self, repo_id: str) -> Repository:
        repo = self.store.get_repository(repo_id)
        if repo is None:
            raise RepositoryNotFoundError(repo_id)
        return repo

    def _remote_for(self, repo_id: str) -> str:
        try:
            wt_config = self.store.get_worktree_config(repo_id)
        except StoreError as e:
            logger.warning(f"Could not read sharing config of {repo_id}: {e}")
            wt_config = None
        return wt_config.upstream_remote if wt_config else self.config.upstream_remote

    def _progress(self, key: str, text: Optional[str]) -> None:
        self.broadcaster.set_progress(key, text)

    def _run_installs(self, path: Path, key: str, label: str = "") -> None:
        """Run every detected install; failures only change the progress text."""
        for pm in self.installer.detect(path):
            self._progress(key, f"Installing {label}({pm.command})...")
            try:
                self.installer.run_install(path, pm)
            except InstallError as e:
                logger.warning(f"Install {pm.command} failed in {path}: {e}")
                self._progress(key, f"Warning: {pm.command} install failed")

    # Failure policies

    def destructive_rollback(self, repo_id: str, local_path: Path, error: Exception) -> None:
        """Clone failure: forget the repository and remove everything it wrote."""
        logger.error(f"Clone into {local_path} failed: {error}")
        self._progress(repo_id, None)
        try:
            self.store.delete_repository(repo_id)
        except StoreError as e:
            logger.error(f"Rollback could not delete repository {repo_id}: {e}")
        if local_path.exists():
            shutil.rmtree(local_path, ignore_errors=True)
        self.broadcaster.notify()

    def retain_for_inspection(self, path: str, error: Exception) -> None:
        """Worktree failure: keep the row as ERROR and leave the directory alone."""
        logger.error(f"Creating worktree {path} failed: {error}")
        try:
            self.store.update_worktree_status(path, WorktreeStatus.ERROR)
        except GitWorktreeKeeperError as e:
            logger.error(f"Could not mark worktree {path} as failed: {e}")
        self._progress(path, None)
        self.broadcaster.notify()

    # Clone

    def clone(self, url: str, skip_install: bool = False) -> Repository:
        """Register a repository and clone it in the background."""
        parsed = parse_remote_url(url)
        if parsed is None:
            raise InvalidGitUrlError(url)

        existing = self.store.get_repository_by_name(parsed.provider, parsed.owner, parsed.name)
        if existing is not None:
            raise RepositoryExistsError(parsed.owner, parsed.name, existing.local_path)

        code_dir = Path(self.config.code_dir)
        local_path = Path(os.path.abspath(code_dir / parsed.owner / parsed.name))
        if code_dir not in local_path.parents or BARE_DIR_NAME in local_path.parts:
            raise InvalidGitUrlError(url)

        repo_id = self.store.insert_repository(
            NewRepository(
                provider=parsed.provider,
                owner=parsed.owner,
                name=parsed.name,
                clone_url=url.strip(),
                local_path=str(local_path),
            )
        )
        self._progress(repo_id, "Cloning repository...")
        logger.info(f"Accepted clone of {parsed.full_name} into {local_path}")

        repo = self._require_repository(repo_id)
        self.runner.spawn("clone", self._run_clone, repo_id, url.strip(), skip_install, key=repo_id)
        return repo

    def _run_clone(self, repo_id: str, url: str, skip_install: bool) -> None:
        repo = self.store.get_repository(repo_id)
        if repo is None:
            logger.warning(f"Repository {repo_id} vanished before its clone started")
            return

        local_path = Path(repo.local_path)
        try:
            self._clone_steps(repo, url, skip_install)
            logger.info(f"Clone complete: {url} -> {local_path}")
        except Exception as e:
            self.destructive_rollback(repo_id, local_path, e)
        finally:
            self._progress(repo_id, None)

    def _clone_steps(self, repo: Repository, url: str, skip_install: bool) -> None:
        local_path = Path(repo.local_path)
        main_path = local_path / PRIMARY_WORKTREE_NAME
        remote = self.config.upstream_remote

        if local_path.exists():
            self._progress(repo.id, "Cleaning up existing directory...")
            shutil.rmtree(local_path)
        local_path.mkdir(parents=True)

        self._progress(repo.id, "Cloning repository...")
        self.git_ops.clone_bare(url, local_path / BARE_DIR_NAME)

        self._progress(repo.id, "Configuring repository...")
        self.git_ops.write_gitdir_pointer(local_path)
        self.git_ops.configure_fetch_refspec(local_path, remote)

        self._progress(repo.id, "Fetching branches...")
        self.git_ops.fetch(local_path, remote)

        self._progress(repo.id, "Detecting default branch...")
        default_branch = self.git_ops.detect_default_branch(local_path, remote)
        self.store.update_repository_default_branch(repo.id, default_branch)
        self.store.update_repository_synced(repo.id)
        self.broadcaster.notify()

        self._progress(repo.id, "Creating main worktree...")
        self.store.insert_worktree(
            NewWorktree(path=str(main_path), repo_id=repo.id, branch=default_branch)
        )
        self.broadcaster.notify()

        # The bare clone created a local ref for the default branch; recreate it as tracking
        self.git_ops.delete_local_branch(local_path, default_branch)
        self.worktrees.create_worktree(local_path, main_path, default_branch, remote)

        if not skip_install:
            self._run_installs(main_path, repo.id)

        self._progress(repo.id, "Getting status...")
        status = self.git_ops.get_status(main_path, remote)
        self.store.update_worktree_status(
            str(main_path), WorktreeStatus.READY, status.head, status.commit_message
        )
        self.store.update_worktree_git_status(str(main_path), status)

        self.store.upsert_worktree_config(
            WorktreeConfig(
                repo_id=repo.id,
                symlink_patterns=list(self.config.symlink_patterns),
                copy_patterns=list(self.config.copy_patterns),
                upstream_remote=remote,
            )
        )
        self.broadcaster.notify()

    # Worktree creation

    def create_worktree(self, repo_id: str, branch: str, skip_install: bool = False) -> Worktree:
        """Register a worktree for ``branch`` and create it in the background."""
        repo = self._require_repository(repo_id)
        branch = validate_branch_name(branch)
        name = worktree_dir_name(branch, repo.default_branch)
        path = str(contained_path(repo.local_path, name))

        if self.store.get_worktree(path) is not None:
            raise WorktreeExistsError(path)

        self.store.insert_worktree(NewWorktree(path=path, repo_id=repo.id, branch=branch))
        self.broadcaster.notify()
        logger.info(f"Accepted worktree {branch} for {repo.full_name} at {path}")

        worktree = self.store.get_worktree(path)
        self.runner.spawn(
            "worktree", self._run_create_worktree, repo, path, branch, skip_install, key=repo.id
        )
        return worktree

    def _sync_primary(self, repo: Repository, main_path: Path, remote: str) -> None:
        """Bring the primary checkout up to date; every step may fail."""
        local_path = Path(repo.local_path)

        self._progress(repo.id, "Fetching...")
        try:
            self.git_ops.fetch(local_path, remote)
        except GitOperationError as e:
            logger.warning(f"Fetch failed during main sync of {repo.full_name}: {e}")

        self._progress(repo.id, "Pulling main...")
        try:
            self.git_ops.pull(main_path)
        except GitOperationError as e:
            logger.warning(f"Pull of {main_path} failed: {e}")

        self._run_installs(main_path, repo.id, label="main ")
        self._progress(repo.id, None)

    def _share_into(self, repo: Repository, main_path: Path, path: Path) -> None:
        try:
            wt_config = self.store.get_worktree_config(repo.id)
        except StoreError as e:
            logger.warning(f"Could not read sharing config of {repo.full_name}: {e}")
            return
        if wt_config is None:
            return
        if not wt_config.symlink_patterns and not wt_config.copy_patterns:
            return

        try:
            self.share(main_path, path, wt_config.symlink_patterns, wt_config.copy_patterns)
        except OSError as e:
            logger.warning(f"Failed to share files into {path}: {e}")

    def _run_create_worktree(
        self, repo: Repository, path: str, branch: str, skip_install: bool
    ) -> None:
        local_path = Path(repo.local_path)
        main_path = local_path / PRIMARY_WORKTREE_NAME
        worktree_path = Path(path)
        remote = self._remote_for(repo.id)

        try:
            self._sync_primary(repo, main_path, remote)

            self._progress(path, "Creating worktree...")
            self.worktrees.create_worktree(local_path, worktree_path, branch, remote)

            self._progress(path, "Sharing files...")
            self._share_into(repo, main_path, worktree_path)

            if not skip_install:
                self._run_installs(worktree_path, path)

            self._progress(path, "Getting status...")
            status = self.git_ops.get_status(worktree_path, remote)
            self.store.update_worktree_status(
                path, WorktreeStatus.READY, status.head, status.commit_message
            )
            self.store.update_worktree_git_status(path, status)
            logger.info(f"Worktree ready: {path}")
        except Exception as e:
            self.retain_for_inspection(path, e)
        finally:
            self._progress(path, None)
            self._progress(repo.id, None)

    # Worktree deletion

    def delete_worktree(self, path: Union[str, Path]) -> Worktree:
        """Mark a worktree as deleting and remove it in the background."""
        path = os.path.abspath(os.path.expanduser(str(path)))
        worktree = self.store.get_worktree(path)
        if worktree is None:
            raise WorktreeNotFoundError(path)
        repo = self._require_repository(worktree.repo_id)

        self.store.update_worktree_status(path, WorktreeStatus.DELETING)
        self.broadcaster.notify()
        logger.info(f"Accepted deletion of worktree {path}")

        worktree = self.store.get_worktree(path) or worktree
        self.runner.spawn("delete-worktree", self._run_delete_worktree, repo, path, key=repo.id)
        return worktree

    def _run_delete_worktree(self, repo: Repository, path: str) -> None:
        local_path = Path(repo.local_path)
        try:
            try:
                self.worktrees.remove_worktree(local_path, path)
            except GitOperationError as e:
                logger.warning(f"git worktree remove failed for {path} (may be orphaned): {e}")

            if os.path.lexists(path):
                try:
                    shutil.rmtree(path)
                except OSError as e:
                    logger.warning(f"Failed to remove worktree directory {path}: {e}")

            if os.path.lexists(path):
                logger.warning(f"Worktree directory left on disk: {path}")

            # git keeps listing the path until its metadata is pruned
            if self.worktrees.find_worktree(local_path, path) is not None:
                try:
                    self.worktrees.prune_worktrees(local_path)
                except GitOperationError as e:
                    logger.debug(f"Pruning stale metadata of {path} failed: {e}")
        finally:
            try:
                self.store.delete_worktree(path)
            except StoreError as e:
                logger.error(f"Could not delete worktree row {path}: {e}")
            self.broadcaster.notify()

    # Repository deletion

    def delete_repository(self, repo_id: str) -> None:
        """Remove a repository directory and its rows. Runs synchronously."""
        repo = self._require_repository(repo_id)
        local_path = Path(repo.local_path)

        self._progress(repo_id, "Deleting...")
        try:
            if local_path.exists():
                try:
                    shutil.rmtree(local_path)
                except OSError as e:
                    raise RepositoryDeleteError(str(local_path), str(e)) from e
            self.store.delete_repository(repo_id)
            logger.info(f"Deleted repository {repo.full_name} ({local_path})")
        finally:
            self._progress(repo_id, None)

    # Refresh

    def refresh_repository(self, repo_id: str) -> Repository:
        """Fetch and recompute the status of every worktree in the background."""
        repo = self._require_repository(repo_id)
        self._progress(repo.id, "Fetching...")
        self.runner.spawn("refresh", self._run_refresh, repo, key=repo.id)
        return repo

    def _run_refresh(self, repo: Repository) -> None:
        local_path = Path(repo.local_path)
        remote = self._remote_for(repo.id)
        try:
            try:
                self.git_ops.fetch(local_path, remote)
            except GitOperationError as e:
                logger.error(f"Fetch failed for {repo.full_name}: {e}")

            try:
                worktrees = self.store.list_worktrees(repo.id)
            except StoreError as e:
                logger.error(f"Could not list worktrees of {repo.full_name}: {e}")
                worktrees = []

            for wt in worktrees:
                # Rows owned by a running pipeline are left alone
                if wt.status not in (WorktreeStatus.READY, WorktreeStatus.ERROR):
                    continue
                try:
                    status = self.git_ops.get_status(wt.path, remote)
                    if wt.status == WorktreeStatus.READY:
                        self.store.update_worktree_status(
                            wt.path, WorktreeStatus.READY, status.head, status.commit_message
                        )
                    self.store.update_worktree_git_status(wt.path, status)
                except GitWorktreeKeeperError as e:
                    logger.warning(f"Skipping status refresh of {wt.path}: {e}")

            try:
                self.store.update_repository_synced(repo.id)
            except StoreError as e:
                logger.error(f"Could not record sync of {repo.full_name}: {e}")
            logger.info(f"Refreshed {repo.full_name}")
        finally:
            self._progress(repo.id, None)

    # Sharing configuration

    def get_worktree_config(self, repo_id: str) -> Optional[WorktreeConfig]:
        self._require_repository(repo_id)
        return self.store.get_worktree_config(repo_id)

    def update_worktree_config(
        self,
        repo_id: str,
        symlink_patterns: Optional[List[str]] = None,
        copy_patterns: Optional[List[str]] = None,
        upstream_remote: Optional[str] = None,
    ) -> WorktreeConfig:
        """Overwrite parts of a repository's sharing policy."""
        self._require_repository(repo_id)
        current = self.store.get_worktree_config(repo_id) or WorktreeConfig(
            repo_id=repo_id,
            symlink_patterns=list(self.config.symlink_patterns),
            copy_patterns=list(self.config.copy_patterns),
            upstream_remote=self.config.upstream_remote,
        )
        if symlink_patterns is not None:
            current.symlink_patterns = symlink_patterns
        if copy_patterns is not None:
            current.copy_patterns = copy_patterns
        if upstream_remote is not None and upstream_remote.strip():
            current.upstream_remote = upstream_remote.strip()

        self.store.upsert_worktree_config(current)
        self.broadcaster.notify()
        return current

    # Lifecycle

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no pipeline is running."""
        return self.runner.join_all(timeout)

    def shutdown(self, timeout: Optional[float] = None) -> None:
        self.wait_idle(timeout)
        self.store.close()

    def __enter__(self) -> "WorktreeKeeper":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
