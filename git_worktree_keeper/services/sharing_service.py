"""Sharing of untracked files (env files, local settings) into new worktrees."""

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

from git_worktree_keeper.constants import BARE_DIR_NAME, GITDIR_POINTER_NAME
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]

_SKIPPED_DIRS = {GITDIR_POINTER_NAME, BARE_DIR_NAME}


@dataclass
class ShareResult:
    """Outcome of one sharing run."""

    symlinked: int = 0
    copied: int = 0
    skipped: int = 0  # Target already present

    @property
    def total(self) -> int:
        return self.symlinked + self.copied


def parse_patterns(value: str) -> List[str]:
    """Split a comma-separated pattern list, dropping blanks."""
    return [p.strip() for p in (value or "").split(",") if p.strip()]


def glob_match(pattern: str, path: str) -> bool:
    """Match a relative POSIX path against a sharing pattern.

    ``**`` matches any number of directories: ``.claude/**`` matches
    everything under ``.claude`` and ``**/*.key`` any ``.key`` file. A
    single ``*`` matches the rest of one segment (``.env.*``). Anything else
    is an exact match.
    """
    if "**" in pattern:
        prefix, suffix = pattern.split("**", 1)
        prefix = prefix.rstrip("/")
        suffix = suffix.lstrip("/")
        rest = path
        if prefix:
            if not path.startswith(prefix + "/"):
                return False
            rest = path[len(prefix) + 1:]
        if not suffix:
            return True
        parts = rest.split("/")
        return any(glob_match(suffix, "/".join(parts[i:])) for i in range(len(parts)))

    if "*" in pattern:
        prefix, suffix = pattern.split("*", 1)
        if not (path.startswith(prefix) and path.endswith(suffix)):
            return False
        if len(path) < len(prefix) + len(suffix):
            return False
        middle = path[len(prefix):len(path) - len(suffix)]
        return "/" not in middle

    return path == pattern


def _matches_any(patterns: List[str], path: str) -> bool:
    return any(glob_match(pattern, path) for pattern in patterns)


def _iter_files(source: Path):
    """Yield file paths relative to ``source``, skipping git metadata."""
    for dirpath, dirnames, filenames in os.walk(source):
        dirnames[:] = [d for d in dirnames if d not in _SKIPPED_DIRS]
        for filename in filenames:
            if filename in _SKIPPED_DIRS:
                continue
            full = Path(dirpath) / filename
            yield full.relative_to(source).as_posix()


def share_files(
    source: PathLike,
    target: PathLike,
    symlink_patterns: List[str],
    copy_patterns: List[str],
) -> ShareResult:
    """Symlink or copy matching files from ``source`` into ``target``.

    Symlink patterns take precedence over copy patterns. Existing targets,
    including dangling symlinks, are never overwritten, so repeating a run is
    a no-op.
    """
    source = Path(source)
    target = Path(target)
    result = ShareResult()

    if not symlink_patterns and not copy_patterns:
        return result

    for rel_path in _iter_files(source):
        if _matches_any(symlink_patterns, rel_path):
            mode = "symlink"
        elif _matches_any(copy_patterns, rel_path):
            mode = "copy"
        else:
            continue

        src = source / rel_path
        dst = target / rel_path
        if dst.exists() or dst.is_symlink():
            result.skipped += 1
            continue

        dst.parent.mkdir(parents=True, exist_ok=True)
        if mode == "symlink":
            os.symlink(os.path.abspath(src), dst)
            result.symlinked += 1
        else:
            shutil.copy2(src, dst)
            result.copied += 1
        logger.debug(f"Shared {rel_path} ({mode})")

    logger.info(
        f"Shared files into {target}: {result.symlinked} symlinked, "
        f"{result.copied} copied, {result.skipped} already present"
    )
    return result
