"""Tests for sharing untracked files into worktrees"""

import os

import pytest

from git_worktree_keeper.services.sharing_service import glob_match, parse_patterns, share_files


class TestGlobMatch:
    @pytest.mark.parametrize(
        "pattern,path,expected",
        [
            (".env", ".env", True),
            (".env", "sub/.env", False),
            (".env.*", ".env.local", True),
            (".env.*", ".env", False),
            (".env.*", ".env.d/file", False),
            (".claude/**", ".claude/settings.json", True),
            (".claude/**", ".claude/agents/reviewer.md", True),
            (".claude/**", ".claudex/file", False),
            ("**/*.key", "certs/dev.key", True),
            ("**/*.key", "certs/dev.pem", False),
            ("config/*.json", "config/app.json", True),
            ("config/*.json", "config/nested/app.json", False),
        ],
    )
    def test_patterns(self, pattern, path, expected):
        assert glob_match(pattern, path) is expected


class TestParsePatterns:
    def test_splits_and_strips(self):
        assert parse_patterns(" .env, .env.* ,,.claude/** ") == [".env", ".env.*", ".claude/**"]

    def test_empty(self):
        assert parse_patterns("") == []
        assert parse_patterns(None) == []


@pytest.fixture
def source(temp_dir):
    src = temp_dir / "source"
    (src / ".claude").mkdir(parents=True)
    (src / ".env").write_text("SECRET=1\n")
    (src / ".env.local").write_text("LOCAL=1\n")
    (src / ".claude" / "settings.json").write_text("{}\n")
    (src / "README.md").write_text("readme\n")
    (src / ".bare").mkdir()
    (src / ".bare" / ".env").write_text("never shared\n")
    return src


@pytest.fixture
def target(temp_dir):
    dst = temp_dir / "target"
    dst.mkdir()
    return dst


class TestShareFiles:
    def test_symlinks_matching_files(self, source, target):
        result = share_files(source, target, [".env", ".claude/**"], [])

        assert result.symlinked == 2
        assert result.copied == 0
        assert (target / ".env").is_symlink()
        assert os.readlink(target / ".env") == str(source / ".env")
        assert (target / ".claude" / "settings.json").is_symlink()
        assert not (target / "README.md").exists()
        assert not (target / ".bare").exists()

    def test_copies_matching_files(self, source, target):
        result = share_files(source, target, [], [".env.*"])

        assert result.copied == 1
        copied = target / ".env.local"
        assert copied.exists() and not copied.is_symlink()
        assert copied.read_text() == "LOCAL=1\n"

    def test_symlink_wins_over_copy(self, source, target):
        result = share_files(source, target, [".env"], [".env", ".env.*"])

        assert result.symlinked == 1
        assert result.copied == 1
        assert (target / ".env").is_symlink()
        assert not (target / ".env.local").is_symlink()

    def test_existing_targets_are_kept(self, source, target):
        (target / ".env").write_text("MINE=1\n")

        result = share_files(source, target, [".env"], [])

        assert result.skipped == 1
        assert result.total == 0
        assert (target / ".env").read_text() == "MINE=1\n"

    def test_dangling_symlink_counts_as_existing(self, source, target):
        os.symlink(str(target / "missing"), target / ".env")

        result = share_files(source, target, [".env"], [])

        assert result.skipped == 1
        assert os.readlink(target / ".env") == str(target / "missing")

    def test_second_run_is_a_no_op(self, source, target):
        share_files(source, target, [".env", ".claude/**"], [".env.*"])
        result = share_files(source, target, [".env", ".claude/**"], [".env.*"])

        assert result.total == 0
        assert result.skipped == 3

    def test_no_patterns(self, source, target):
        assert share_files(source, target, [], []).total == 0
        assert os.listdir(target) == []
