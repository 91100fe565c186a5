"""Integration tests for the clone, worktree, delete and refresh pipelines"""

import os
import shutil
import threading
from pathlib import Path
from unittest.mock import Mock, call, patch

import pytest

from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.exceptions import (
    GitOperationError,
    InstallError,
    InvalidBranchNameError,
    InvalidGitUrlError,
    InvalidStatusTransitionError,
    RepositoryDeleteError,
    RepositoryExistsError,
    RepositoryNotFoundError,
    StoreError,
    WorktreeExistsError,
    WorktreeNotFoundError,
)
from git_worktree_keeper.models.worktree import WorktreeStatus
from git_worktree_keeper.services.install_service import PackageManager

WAIT = 60


def main_path(repo) -> str:
    return os.path.join(repo.local_path, ".main")


class TestClone:
    def test_clone_builds_layout(self, keeper, cloned, config):
        root = Path(cloned.local_path)

        assert root == config.code_dir / "acme" / "widgets"
        assert (root / ".bare").is_dir()
        assert (root / ".git").read_text() == "gitdir: ./.bare\n"
        assert (root / ".main" / "README.md").exists()

        assert cloned.provider == "example"
        assert cloned.default_branch == "main"
        assert cloned.last_synced > 0

    def test_primary_worktree_is_ready(self, keeper, cloned):
        worktrees = keeper.list_worktrees(cloned.id)

        assert len(worktrees) == 1
        primary = worktrees[0]
        assert primary.path == main_path(cloned)
        assert primary.branch == "main"
        assert primary.status == WorktreeStatus.READY
        assert len(primary.head) == 40
        assert primary.commit_message == "Initial commit"
        assert primary.last_status_check is not None

    def test_default_sharing_policy(self, keeper, cloned):
        wt_config = keeper.get_worktree_config(cloned.id)
        assert wt_config.symlink_patterns == [".env", ".env.*", ".claude/**"]
        assert wt_config.copy_patterns == []
        assert wt_config.upstream_remote == "origin"

    def test_progress_is_cleared(self, keeper, cloned):
        assert keeper.snapshot().progress == {}

    def test_returns_before_clone_finishes(self, keeper, origin_url):
        repo = keeper.clone(origin_url, skip_install=True)

        assert repo.full_name == "acme/widgets"
        assert keeper.find_repository("acme/widgets").id == repo.id
        keeper.wait_idle(WAIT)

    def test_duplicate_clone_rejected(self, keeper, cloned, origin_url):
        with pytest.raises(RepositoryExistsError) as exc_info:
            keeper.clone(origin_url + ".git")

        assert str(exc_info.value) == (
            f"Repository acme/widgets already exists at {cloned.local_path}. Delete it first."
        )
        assert len(keeper.list_repositories()) == 1

    def test_invalid_url(self, keeper):
        with pytest.raises(InvalidGitUrlError):
            keeper.clone("not a url")
        assert keeper.list_repositories() == []

    def test_failed_clone_rolls_back(self, keeper, config, origins_dir):
        repo = keeper.clone("https://example.com/acme/missing", skip_install=True)
        assert keeper.wait_idle(WAIT)

        assert keeper.store.get_repository(repo.id) is None
        assert not Path(repo.local_path).exists()
        assert keeper.snapshot().progress == {}

    def test_late_failure_rolls_back_main_worktree(self, keeper, origin_url):
        with patch.object(
            keeper.git_ops, "get_status", side_effect=GitOperationError("status", message="unreadable index")
        ):
            repo = keeper.clone(origin_url, skip_install=True)
            assert keeper.wait_idle(WAIT)

        assert keeper.store.get_repository(repo.id) is None
        assert keeper.store.get_worktree(main_path(repo)) is None
        assert keeper.store.get_worktree_config(repo.id) is None
        assert not Path(repo.local_path).exists()
        assert keeper.snapshot().progress == {}

    def test_clone_replaces_stale_directory(self, keeper, config, origin_url):
        stale = config.code_dir / "acme" / "widgets"
        stale.mkdir(parents=True)
        (stale / "leftover.txt").write_text("old\n")

        repo = keeper.clone(origin_url, skip_install=True)
        assert keeper.wait_idle(WAIT)

        assert not (stale / "leftover.txt").exists()
        assert keeper.list_worktrees(repo.id)[0].status == WorktreeStatus.READY


class TestCreateWorktree:
    def test_feature_branch(self, keeper, cloned):
        wt = keeper.create_worktree(cloned.id, "feature/login", skip_install=True)

        assert wt.path == os.path.join(cloned.local_path, "feature--login")
        assert wt.status == WorktreeStatus.CREATING
        assert keeper.wait_idle(WAIT)

        ready = keeper.store.get_worktree(wt.path)
        assert ready.status == WorktreeStatus.READY
        assert ready.commit_message == "Work on feature/login"
        assert (Path(wt.path) / "feature_login.txt").exists()
        assert [w.path for w in keeper.list_worktrees(cloned.id)] == [main_path(cloned), wt.path]

    def test_new_branch(self, keeper, cloned):
        wt = keeper.create_worktree(cloned.id, "experiment", skip_install=True)
        assert keeper.wait_idle(WAIT)
        assert keeper.store.get_worktree(wt.path).status == WorktreeStatus.READY

    def test_shares_env_files_from_main(self, keeper, cloned):
        primary = Path(main_path(cloned))
        (primary / ".env").write_text("TOKEN=abc\n")
        (primary / ".claude").mkdir()
        (primary / ".claude" / "settings.json").write_text("{}\n")

        wt = keeper.create_worktree(cloned.id, "feature/login", skip_install=True)
        assert keeper.wait_idle(WAIT)

        target = Path(wt.path)
        assert (target / ".env").is_symlink()
        assert (target / ".env").read_text() == "TOKEN=abc\n"
        assert (target / ".claude" / "settings.json").is_symlink()
        # Shared files are ignored and never make the worktree dirty
        assert not keeper.store.get_worktree(wt.path).dirty

    def test_progress_steps(self, keeper, cloned):
        with patch.object(
            keeper.broadcaster, "set_progress", wraps=keeper.broadcaster.set_progress
        ) as set_progress:
            wt = keeper.create_worktree(cloned.id, "feature/login", skip_install=True)
            assert keeper.wait_idle(WAIT)

        calls = set_progress.call_args_list
        for expected in (
            call(cloned.id, "Fetching..."),
            call(cloned.id, "Pulling main..."),
            call(wt.path, "Creating worktree..."),
            call(wt.path, "Sharing files..."),
            call(wt.path, "Getting status..."),
        ):
            assert expected in calls
        assert calls.index(call(wt.path, "Creating worktree...")) < calls.index(
            call(wt.path, "Getting status...")
        )
        assert keeper.snapshot().progress == {}

    def test_install_failure_is_not_fatal(self, config, origin_url):
        installer = Mock()
        installer.detect.return_value = [PackageManager.NPM]
        installer.run_install.side_effect = InstallError("npm install", "boom")

        with WorktreeKeeper(config, installer=installer) as keeper:
            repo = keeper.clone(origin_url)
            assert keeper.wait_idle(WAIT)
            wt = keeper.create_worktree(repo.id, "feature/login")
            assert keeper.wait_idle(WAIT)

            assert keeper.store.get_worktree(wt.path).status == WorktreeStatus.READY
            assert installer.run_install.called

    def test_failure_keeps_row_and_directory(self, keeper, cloned):
        def fail_after_mkdir(root, path, branch, remote):
            Path(path).mkdir()
            (Path(path) / "partial.txt").write_text("x\n")
            raise GitOperationError("worktree add", branch=branch, message="exit 128: fatal")

        with patch.object(keeper.worktrees, "create_worktree", side_effect=fail_after_mkdir):
            wt = keeper.create_worktree(cloned.id, "feature/login", skip_install=True)
            assert keeper.wait_idle(WAIT)

        failed = keeper.store.get_worktree(wt.path)
        assert failed.status == WorktreeStatus.ERROR
        assert (Path(wt.path) / "partial.txt").exists()
        assert keeper.snapshot().progress == {}

        # The repository and its primary checkout are untouched
        assert keeper.store.get_repository(cloned.id) is not None
        assert keeper.store.get_worktree(main_path(cloned)).status == WorktreeStatus.READY

        # A failed worktree can still be deleted
        keeper.delete_worktree(wt.path)
        assert keeper.wait_idle(WAIT)
        assert keeper.store.get_worktree(wt.path) is None
        assert not Path(wt.path).exists()

    def test_duplicate_rejected(self, keeper, cloned):
        keeper.create_worktree(cloned.id, "feature/login", skip_install=True)
        with pytest.raises(WorktreeExistsError):
            keeper.create_worktree(cloned.id, "feature/login", skip_install=True)
        keeper.wait_idle(WAIT)

    def test_default_branch_maps_to_existing_main(self, keeper, cloned):
        with pytest.raises(WorktreeExistsError):
            keeper.create_worktree(cloned.id, "main")

    @pytest.mark.parametrize("branch", ["", "  ", "..", "!!!", ".bare"])
    def test_invalid_branch(self, keeper, cloned, branch):
        with pytest.raises(InvalidBranchNameError):
            keeper.create_worktree(cloned.id, branch)
        assert len(keeper.list_worktrees(cloned.id)) == 1

    def test_path_traversal_stays_inside_repository(self, keeper, cloned):
        wt = keeper.create_worktree(cloned.id, "../../escape", skip_install=True)
        assert os.path.dirname(wt.path) == cloned.local_path
        keeper.wait_idle(WAIT)

    def test_unknown_repository(self, keeper):
        with pytest.raises(RepositoryNotFoundError):
            keeper.create_worktree("missing", "feature/login")


class TestDeleteWorktree:
    def test_delete(self, keeper, cloned):
        wt = keeper.create_worktree(cloned.id, "feature/login", skip_install=True)
        assert keeper.wait_idle(WAIT)

        deleting = keeper.delete_worktree(wt.path)
        assert deleting.status == WorktreeStatus.DELETING
        assert keeper.wait_idle(WAIT)

        assert keeper.store.get_worktree(wt.path) is None
        assert not Path(wt.path).exists()
        assert keeper.worktrees.find_worktree(cloned.local_path, wt.path) is None

    def test_clean_removal_skips_prune(self, keeper, cloned):
        wt = keeper.create_worktree(cloned.id, "feature/login", skip_install=True)
        assert keeper.wait_idle(WAIT)

        with patch.object(keeper.worktrees, "prune_worktrees") as prune:
            keeper.delete_worktree(wt.path)
            assert keeper.wait_idle(WAIT)

        prune.assert_not_called()

    def test_manually_removed_directory_is_pruned(self, keeper, cloned):
        wt = keeper.create_worktree(cloned.id, "feature/login", skip_install=True)
        assert keeper.wait_idle(WAIT)
        shutil.rmtree(wt.path)

        keeper.delete_worktree(wt.path)
        assert keeper.wait_idle(WAIT)

        assert keeper.store.get_worktree(wt.path) is None
        assert keeper.worktrees.find_worktree(cloned.local_path, wt.path) is None

    def test_creating_worktree_cannot_be_deleted(self, keeper, cloned):
        release = threading.Event()
        real_create = keeper.worktrees.create_worktree

        def blocked_create(*args, **kwargs):
            release.wait(WAIT)
            return real_create(*args, **kwargs)

        with patch.object(keeper.worktrees, "create_worktree", side_effect=blocked_create):
            wt = keeper.create_worktree(cloned.id, "feature/login", skip_install=True)
            try:
                with pytest.raises(InvalidStatusTransitionError):
                    keeper.delete_worktree(wt.path)
            finally:
                release.set()
            assert keeper.wait_idle(WAIT)

        created = keeper.store.get_worktree(wt.path)
        assert created.status == WorktreeStatus.READY
        assert Path(wt.path).is_dir()

    def test_row_removed_even_when_git_fails(self, keeper, cloned):
        wt = keeper.create_worktree(cloned.id, "feature/login", skip_install=True)
        assert keeper.wait_idle(WAIT)

        with patch.object(
            keeper.worktrees, "remove_worktree", side_effect=GitOperationError("worktree remove")
        ), patch.object(keeper.worktrees, "prune_worktrees") as prune:
            keeper.delete_worktree(wt.path)
            assert keeper.wait_idle(WAIT)

        assert keeper.store.get_worktree(wt.path) is None
        assert not Path(wt.path).exists()
        prune.assert_called_once()

    def test_unknown_path(self, keeper, cloned):
        with pytest.raises(WorktreeNotFoundError):
            keeper.delete_worktree(os.path.join(cloned.local_path, "ghost"))


class TestDeleteRepository:
    def test_delete(self, keeper, cloned):
        keeper.create_worktree(cloned.id, "feature/login", skip_install=True)
        assert keeper.wait_idle(WAIT)

        keeper.delete_repository(cloned.id)

        assert keeper.list_repositories() == []
        assert not Path(cloned.local_path).exists()
        assert keeper.store.get_worktree(main_path(cloned)) is None
        assert keeper.store.get_worktree_config(cloned.id) is None
        assert keeper.snapshot().progress == {}

    def test_rmtree_failure_keeps_repository(self, keeper, cloned):
        with patch.object(shutil, "rmtree", side_effect=PermissionError("denied")):
            with pytest.raises(RepositoryDeleteError):
                keeper.delete_repository(cloned.id)

        assert keeper.store.get_repository(cloned.id) is not None
        assert keeper.store.get_worktree(main_path(cloned)).status == WorktreeStatus.READY
        assert Path(cloned.local_path).exists()
        assert keeper.snapshot().progress == {}

    def test_can_clone_again_after_delete(self, keeper, cloned, origin_url):
        keeper.delete_repository(cloned.id)
        repo = keeper.clone(origin_url, skip_install=True)
        assert keeper.wait_idle(WAIT)
        assert keeper.list_worktrees(repo.id)[0].status == WorktreeStatus.READY

    def test_unknown(self, keeper):
        with pytest.raises(RepositoryNotFoundError):
            keeper.delete_repository("missing")


class TestRefresh:
    def test_picks_up_remote_commits(self, keeper, cloned, origin_repo):
        origin_path = Path(origin_repo.working_dir)
        (origin_path / "CHANGELOG.md").write_text("new\n")
        origin_repo.index.add(["CHANGELOG.md"])
        origin_repo.index.commit("Upstream change")
        synced_before = cloned.last_synced

        keeper.refresh_repository(cloned.id)
        assert keeper.wait_idle(WAIT)

        primary = keeper.store.get_worktree(main_path(cloned))
        assert primary.behind == 1
        assert primary.ahead == 0
        assert keeper.store.get_repository(cloned.id).last_synced >= synced_before
        assert keeper.snapshot().progress == {}

    def test_detects_dirty_worktree(self, keeper, cloned):
        (Path(main_path(cloned)) / "README.md").write_text("edited\n")

        keeper.refresh_repository(cloned.id)
        assert keeper.wait_idle(WAIT)

        assert keeper.store.get_worktree(main_path(cloned)).dirty

    def test_missing_worktree_is_skipped(self, keeper, cloned):
        wt = keeper.create_worktree(cloned.id, "feature/login", skip_install=True)
        assert keeper.wait_idle(WAIT)
        before = keeper.store.get_worktree(wt.path)
        shutil.rmtree(wt.path)

        keeper.refresh_repository(cloned.id)
        assert keeper.wait_idle(WAIT)

        after = keeper.store.get_worktree(wt.path)
        assert after.status == WorktreeStatus.READY
        assert after.last_status_check == before.last_status_check


class TestSnapshotStream:
    def test_subscriber_sees_final_state(self, keeper, origin_url):
        sub = keeper.subscribe()
        repo = keeper.clone(origin_url, skip_install=True)
        assert keeper.wait_idle(WAIT)

        latest = None
        while sub.pending():
            latest = sub.get(0)
        keeper.broadcaster.unsubscribe(sub)

        entry = latest.find_repository(repo.id)
        assert entry.worktrees[0].status == WorktreeStatus.READY
        assert latest.progress == {}


class TestConfiguration:
    def test_find_repository(self, keeper, cloned):
        assert keeper.find_repository(cloned.id).id == cloned.id
        assert keeper.find_repository("acme/widgets").id == cloned.id
        assert keeper.find_repository("widgets").id == cloned.id
        with pytest.raises(RepositoryNotFoundError):
            keeper.find_repository("nope")

    def test_update_worktree_config(self, keeper, cloned):
        updated = keeper.update_worktree_config(cloned.id, copy_patterns=["config/*.json"])

        assert updated.symlink_patterns == [".env", ".env.*", ".claude/**"]
        assert keeper.get_worktree_config(cloned.id).copy_patterns == ["config/*.json"]

    def test_shutdown_closes_store(self, config):
        keeper = WorktreeKeeper(config)
        keeper.shutdown()
        with pytest.raises(StoreError):
            keeper.store.list_repositories()
