"""Export and re-import the set of managed repositories (seed files).

A seed file is JSON Lines, one repository per line::

    {"url": "git@github.com:acme/widgets.git", "worktrees": ["feature/login"]}

The primary worktree is implied and never listed.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Union

from git_worktree_keeper.constants import PRIMARY_WORKTREE_NAME
from git_worktree_keeper.exceptions import AlreadyExistsError, GitWorktreeKeeperError, SeedFileError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.worktree import WorktreeStatus

if TYPE_CHECKING:
    from git_worktree_keeper.core.worktree_keeper import WorktreeKeeper

logger = get_logger(__name__)


@dataclass
class SeedEntry:
    url: str
    worktrees: List[str] = field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps({"url": self.url, "worktrees": self.worktrees})


@dataclass
class GrowResult:
    """What a grow run did."""

    cloned: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)  # Already managed
    failed: List[str] = field(default_factory=list)
    worktrees: List[str] = field(default_factory=list)


def read_seed_file(path: Union[str, Path]) -> List[SeedEntry]:
    """Parse a seed file; blank lines are ignored."""
    entries = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except OSError as e:
        raise SeedFileError(str(path), str(e)) from e

    for number, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise SeedFileError(str(path), f"invalid JSON ({e.msg})", line=number) from e

        if not isinstance(data, dict) or not isinstance(data.get("url"), str) or not data["url"]:
            raise SeedFileError(str(path), "expected an object with a 'url' string", line=number)
        worktrees = data.get("worktrees", [])
        if not isinstance(worktrees, list) or not all(isinstance(b, str) for b in worktrees):
            raise SeedFileError(str(path), "'worktrees' must be a list of branch names", line=number)

        entries.append(SeedEntry(url=data["url"], worktrees=worktrees))
    return entries


def harvest(keeper: "WorktreeKeeper", path: Union[str, Path]) -> int:
    """Write every managed repository and its extra worktree branches to ``path``.

    Returns:
        int: Number of repositories written
    """
    entries = []
    for entry in keeper.snapshot().repositories:
        branches = [
            wt.branch
            for wt in entry.worktrees
            if os.path.basename(wt.path) != PRIMARY_WORKTREE_NAME
        ]
        entries.append(SeedEntry(url=entry.repo.clone_url, worktrees=branches))

    try:
        with open(path, "w", encoding="utf-8") as f:
            for seed in entries:
                f.write(seed.to_json() + "\n")
    except OSError as e:
        raise SeedFileError(str(path), str(e)) from e

    logger.info(f"Harvested {len(entries)} repositories into {path}")
    return len(entries)


def grow(
    keeper: "WorktreeKeeper",
    path: Union[str, Path],
    skip_install: bool = False,
    timeout: Optional[float] = None,
) -> GrowResult:
    """Clone every repository in a seed file, then recreate its worktrees.

    Clones run in parallel; worktrees are only created for repositories whose
    primary worktree ended up ready.
    """
    entries = read_seed_file(path)
    result = GrowResult()
    pending = []

    for seed in entries:
        try:
            repo = keeper.clone(seed.url, skip_install=skip_install)
            result.cloned.append(seed.url)
            pending.append((repo.id, seed))
        except AlreadyExistsError as e:
            logger.info(f"Skipping {seed.url}: {e}")
            result.skipped.append(seed.url)
        except GitWorktreeKeeperError as e:
            logger.error(f"Cannot clone {seed.url}: {e}")
            result.failed.append(seed.url)

    keeper.wait_idle(timeout)

    for repo_id, seed in pending:
        worktrees = keeper.store.list_worktrees(repo_id) if keeper.store.get_repository(repo_id) else []
        primary_ready = any(
            os.path.basename(wt.path) == PRIMARY_WORKTREE_NAME and wt.status == WorktreeStatus.READY
            for wt in worktrees
        )
        if not primary_ready:
            logger.error(f"Clone of {seed.url} did not complete, skipping its worktrees")
            result.cloned.remove(seed.url)
            result.failed.append(seed.url)
            continue

        for branch in seed.worktrees:
            try:
                wt = keeper.create_worktree(repo_id, branch, skip_install=skip_install)
                result.worktrees.append(wt.path)
            except GitWorktreeKeeperError as e:
                logger.error(f"Cannot create worktree {branch} for {seed.url}: {e}")

    keeper.wait_idle(timeout)
    return result
