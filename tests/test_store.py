"""Tests for the SQLite store"""

import pytest

from git_worktree_keeper.exceptions import (
    InvalidStatusTransitionError,
    RepositoryExistsError,
    WorktreeExistsError,
    WorktreeNotFoundError,
)
from git_worktree_keeper.models.repository import NewRepository
from git_worktree_keeper.models.worktree import (
    GitStatus,
    NewWorktree,
    WorktreeConfig,
    WorktreeStatus,
)
from git_worktree_keeper.store import Store


def new_repo(owner="acme", name="widgets", path=None):
    return NewRepository(
        provider="github",
        owner=owner,
        name=name,
        clone_url=f"git@github.com:{owner}/{name}.git",
        local_path=path or f"/code/{owner}/{name}",
    )


@pytest.fixture
def repo_id(store):
    return store.insert_repository(new_repo())


class TestRepositories:
    def test_insert_and_get(self, store, repo_id):
        repo = store.get_repository(repo_id)
        assert repo.full_name == "acme/widgets"
        assert repo.default_branch == "main"
        assert repo.last_synced == 0
        assert repo.created_at > 0

    def test_lookup_by_name_and_path(self, store, repo_id):
        assert store.get_repository_by_name("github", "acme", "widgets").id == repo_id
        assert store.get_repository_by_path("/code/acme/widgets").id == repo_id
        assert store.get_repository_by_name("gitlab", "acme", "widgets") is None
        assert store.get_repository("missing") is None

    def test_duplicate_identity_rejected(self, store, repo_id):
        with pytest.raises(RepositoryExistsError):
            store.insert_repository(new_repo(path="/elsewhere/widgets"))

    def test_duplicate_path_rejected(self, store, repo_id):
        with pytest.raises(RepositoryExistsError):
            store.insert_repository(new_repo(owner="other", path="/code/acme/widgets"))

    def test_list_newest_first(self, store, repo_id):
        second = store.insert_repository(new_repo(name="gadgets"))
        assert [r.id for r in store.list_repositories()] == [second, repo_id]

    def test_updates(self, store, repo_id):
        store.update_repository_default_branch(repo_id, "develop")
        store.update_repository_synced(repo_id)
        repo = store.get_repository(repo_id)
        assert repo.default_branch == "develop"
        assert repo.last_synced > 0

    def test_delete_cascades(self, store, repo_id):
        store.insert_worktree(NewWorktree("/code/acme/widgets/.main", repo_id, "main"))
        store.upsert_worktree_config(WorktreeConfig(repo_id, [".env"], []))

        store.delete_repository(repo_id)

        assert store.get_repository(repo_id) is None
        assert store.get_worktree("/code/acme/widgets/.main") is None
        assert store.get_worktree_config(repo_id) is None
        # Identity is free again
        store.insert_repository(new_repo())


class TestWorktrees:
    def test_insert_defaults_to_creating(self, store, repo_id):
        store.insert_worktree(NewWorktree("/code/acme/widgets/.main", repo_id, "main"))
        wt = store.get_worktree("/code/acme/widgets/.main")
        assert wt.status == WorktreeStatus.CREATING
        assert wt.head is None
        assert wt.last_status_check is None

    def test_duplicate_path_rejected(self, store, repo_id):
        store.insert_worktree(NewWorktree("/code/acme/widgets/x", repo_id, "x"))
        with pytest.raises(WorktreeExistsError):
            store.insert_worktree(NewWorktree("/code/acme/widgets/x", repo_id, "x"))

    def test_list_oldest_first(self, store, repo_id):
        for name in (".main", "b", "a"):
            store.insert_worktree(NewWorktree(f"/code/acme/widgets/{name}", repo_id, name))
        paths = [wt.path for wt in store.list_worktrees(repo_id)]
        assert paths == [
            "/code/acme/widgets/.main",
            "/code/acme/widgets/b",
            "/code/acme/widgets/a",
        ]

    def test_status_transitions(self, store, repo_id):
        path = "/code/acme/widgets/x"
        store.insert_worktree(NewWorktree(path, repo_id, "x"))

        store.update_worktree_status(path, WorktreeStatus.READY, head="abc", commit_message="msg")
        wt = store.get_worktree(path)
        assert wt.status == WorktreeStatus.READY
        assert wt.head == "abc"

        # Missing head keeps the stored one
        store.update_worktree_status(path, WorktreeStatus.READY)
        assert store.get_worktree(path).head == "abc"

        with pytest.raises(InvalidStatusTransitionError):
            store.update_worktree_status(path, WorktreeStatus.CREATING)

        store.update_worktree_status(path, WorktreeStatus.DELETING)
        with pytest.raises(InvalidStatusTransitionError):
            store.update_worktree_status(path, WorktreeStatus.READY)

    def test_error_is_terminal_until_deleted(self, store, repo_id):
        path = "/code/acme/widgets/x"
        store.insert_worktree(NewWorktree(path, repo_id, "x"))
        store.update_worktree_status(path, WorktreeStatus.ERROR)
        with pytest.raises(InvalidStatusTransitionError):
            store.update_worktree_status(path, WorktreeStatus.READY)
        store.update_worktree_status(path, WorktreeStatus.DELETING)

    def test_creating_cannot_be_deleted(self, store, repo_id):
        path = "/code/acme/widgets/x"
        store.insert_worktree(NewWorktree(path, repo_id, "x"))
        with pytest.raises(InvalidStatusTransitionError):
            store.update_worktree_status(path, WorktreeStatus.DELETING)
        assert store.get_worktree(path).status == WorktreeStatus.CREATING

    def test_status_of_missing_worktree(self, store):
        with pytest.raises(WorktreeNotFoundError):
            store.update_worktree_status("/nowhere", WorktreeStatus.READY)

    def test_git_status(self, store, repo_id):
        path = "/code/acme/widgets/x"
        store.insert_worktree(NewWorktree(path, repo_id, "x"))
        store.update_worktree_git_status(
            path, GitStatus(branch="x", head="def", dirty=True, ahead=2, behind=1, commit_message="m")
        )
        wt = store.get_worktree(path)
        assert (wt.head, wt.dirty, wt.ahead, wt.behind) == ("def", True, 2, 1)
        assert wt.last_status_check > 0

    def test_delete(self, store, repo_id):
        store.insert_worktree(NewWorktree("/code/acme/widgets/x", repo_id, "x"))
        store.delete_worktree("/code/acme/widgets/x")
        assert store.list_worktrees(repo_id) == []


class TestWorktreeConfig:
    def test_missing(self, store, repo_id):
        assert store.get_worktree_config(repo_id) is None

    def test_upsert_round_trip(self, store, repo_id):
        store.upsert_worktree_config(WorktreeConfig(repo_id, [".env", ".claude/**"], ["config.local"]))
        store.upsert_worktree_config(WorktreeConfig(repo_id, [".env"], [], "upstream"))

        wt_config = store.get_worktree_config(repo_id)
        assert wt_config.symlink_patterns == [".env"]
        assert wt_config.copy_patterns == []
        assert wt_config.upstream_remote == "upstream"


def test_store_on_disk_survives_reopen(temp_dir):
    db_path = temp_dir / "nested" / "repos.db"
    with Store(db_path) as store:
        repo_id = store.insert_repository(new_repo())

    with Store(db_path) as store:
        assert store.get_repository(repo_id).name == "widgets"
