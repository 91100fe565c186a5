"""Remote URL parsing."""

import re
from typing import Optional
from urllib.parse import urlparse

from git_worktree_keeper.constants import KNOWN_PROVIDERS
from git_worktree_keeper.models.repository import ParsedGitUrl

# git@github.com:owner/name.git
_SCP_LIKE = re.compile(r"^(?:[^@/\s]+@)?(?P<host>[^:/\s]+):(?P<path>[^/\s].*)$")


def _provider_for_host(host: str) -> str:
    """Known host family by substring, else the first hostname label."""
    host = host.lower()
    for provider in KNOWN_PROVIDERS:
        if provider in host:
            return provider
    return host.split(".")[0]


def _split_path(path: str) -> Optional[tuple[str, str]]:
    """Split 'owner/name[.git]' into its parts."""
    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    if "/" not in path:
        return None

    owner, name = path.split("/", 1)
    name = name.strip("/")
    if not owner or not name:
        return None
    if any(segment in ("", ".", "..") for segment in path.split("/")):
        return None
    return owner, name


def parse_remote_url(url: str) -> Optional[ParsedGitUrl]:
    """Parse a clone URL into provider, owner and name.

    Accepts ``https://host/owner/name``, ``ssh://[user@]host[:port]/owner/name``
    and scp-like ``git@host:owner/name``, each with an optional ``.git`` suffix.

    Returns:
        ParsedGitUrl, or None if the URL is not understood
    """
    if not url:
        return None
    url = url.strip()

    if url.startswith(("http://", "https://", "ssh://")):
        parsed = urlparse(url)
        host = parsed.hostname
        if not host:
            return None
        parts = _split_path(parsed.path)
    else:
        match = _SCP_LIKE.match(url)
        if not match:
            return None
        host = match.group("host")
        parts = _split_path(match.group("path"))

    if parts is None:
        return None

    owner, name = parts
    return ParsedGitUrl(provider=_provider_for_host(host), owner=owner, name=name, url=url)
