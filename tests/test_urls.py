"""Tests for clone URL parsing"""

import pytest

from git_worktree_keeper.services.git.urls import parse_remote_url


class TestParseRemoteUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/acme/widgets",
            "https://github.com/acme/widgets.git",
            "git@github.com:acme/widgets.git",
            "ssh://git@github.com/acme/widgets.git",
            "ssh://git@github.com:2222/acme/widgets",
        ],
    )
    def test_github_forms(self, url):
        parsed = parse_remote_url(url)
        assert parsed is not None
        assert parsed.provider == "github"
        assert parsed.owner == "acme"
        assert parsed.name == "widgets"
        assert parsed.full_name == "acme/widgets"

    def test_other_known_providers(self):
        assert parse_remote_url("git@gitlab.com:team/app.git").provider == "gitlab"
        assert parse_remote_url("https://bitbucket.org/team/app").provider == "bitbucket"
        assert parse_remote_url("https://gitlab.internal.corp/team/app").provider == "gitlab"

    def test_unknown_host_uses_first_label(self):
        parsed = parse_remote_url("https://example.com/acme/widgets")
        assert parsed.provider == "example"
        assert parsed.owner == "acme"

    def test_nested_groups_stay_in_name(self):
        parsed = parse_remote_url("https://gitlab.com/group/sub/project.git")
        assert parsed.owner == "group"
        assert parsed.name == "sub/project"

    def test_keeps_original_url(self):
        url = "git@github.com:acme/widgets.git"
        assert parse_remote_url(url).url == url

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "not a url",
            "https://github.com/",
            "https://github.com/acme",
            "git@github.com:widgets.git",
            "https://github.com/acme/../widgets",
            "https://github.com/../etc",
            "git@github.com:./widgets",
        ],
    )
    def test_rejects_unusable_urls(self, url):
        assert parse_remote_url(url) is None
