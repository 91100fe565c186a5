"""Pytest fixtures for git-worktree-keeper tests"""
import tempfile
from pathlib import Path

import git
import pytest

from git_worktree_keeper.config import Config
from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.store import Store

# Clone URLs under this prefix resolve to local origin repositories
ORIGIN_HOST = "https://example.com/"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def origins_dir(temp_dir):
    path = temp_dir / "origins"
    path.mkdir()
    return path


@pytest.fixture(autouse=True)
def git_environment(temp_dir, origins_dir, monkeypatch):
    """Isolated git configuration: identity, and example.com rewritten to local paths."""
    gitconfig = temp_dir / "gitconfig"
    gitconfig.write_text(
        "[user]\n"
        "\tname = Test User\n"
        "\temail = test@example.com\n"
        "[init]\n"
        "\tdefaultBranch = main\n"
        "[protocol \"file\"]\n"
        "\tallow = always\n"
        f"[url \"{origins_dir.as_posix()}/\"]\n"
        f"\tinsteadOf = {ORIGIN_HOST}\n"
    )
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_TERMINAL_PROMPT", "0")
    # GitPython commits read identity from the environment, not GIT_CONFIG_GLOBAL
    for role in ("AUTHOR", "COMMITTER"):
        monkeypatch.setenv(f"GIT_{role}_NAME", "Test User")
        monkeypatch.setenv(f"GIT_{role}_EMAIL", "test@example.com")
    return gitconfig


def make_origin(origins_dir: Path, owner: str, name: str, branches=("feature/login",)) -> git.Repo:
    """Create a non-bare origin repository with a main branch and extra branches."""
    repo_path = origins_dir / owner / name
    repo_path.mkdir(parents=True)
    repo = git.Repo.init(repo_path)

    (repo_path / "README.md").write_text(f"# {name}\n")
    (repo_path / ".gitignore").write_text(".env\n.env.*\n.claude/\n")
    repo.index.add(["README.md", ".gitignore"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    repo.git.branch("-M", "main")

    for branch in branches:
        repo.git.checkout("-b", branch)
        feature_file = repo_path / f"{branch.replace('/', '_')}.txt"
        feature_file.write_text(f"{branch}\n")
        repo.index.add([feature_file.name])
        repo.index.commit(f"Work on {branch}")
        repo.git.checkout("main")

    return repo


@pytest.fixture
def origin_repo(origins_dir):
    """Origin for https://example.com/acme/widgets with main and feature/login."""
    repo = make_origin(origins_dir, "acme", "widgets")
    yield repo
    repo.close()


@pytest.fixture
def origin_url(origin_repo):
    return f"{ORIGIN_HOST}acme/widgets"


@pytest.fixture
def config(temp_dir):
    return Config(code_dir=temp_dir / "code", data_dir=temp_dir / "data")


@pytest.fixture
def store():
    store = Store(":memory:")
    yield store
    store.close()


@pytest.fixture
def keeper(config):
    keeper = WorktreeKeeper(config)
    yield keeper
    keeper.shutdown(timeout=30)


@pytest.fixture
def cloned(keeper, origin_url):
    """A repository cloned to completion, without dependency installs."""
    repo = keeper.clone(origin_url, skip_install=True)
    assert keeper.wait_idle(timeout=60)
    return keeper.store.get_repository(repo.id)
