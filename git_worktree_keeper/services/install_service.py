"""Dependency installation for freshly created worktrees."""

import subprocess
from enum import Enum
from pathlib import Path
from typing import List, Union

from git_worktree_keeper.exceptions import InstallError
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


class PackageManager(Enum):
    """Package managers the keeper knows how to run."""

    BUN = "bun"
    PNPM = "pnpm"
    NPM = "npm"
    CARGO = "cargo"
    UV = "uv"
    POETRY = "poetry"
    PIP = "pip"

    @property
    def command(self) -> str:
        return self.value

    @property
    def install_args(self) -> List[str]:
        if self is PackageManager.CARGO:
            return ["build"]
        if self is PackageManager.UV:
            return ["sync"]
        if self is PackageManager.PIP:
            return ["install", "-r", "requirements.txt"]
        return ["install"]

    @property
    def command_line(self) -> str:
        return " ".join([self.command] + self.install_args)


def detect_package_managers(path: PathLike) -> List[PackageManager]:
    """Detect the package managers a checkout uses.

    At most one JavaScript manager is picked, by lockfile. Cargo and one
    Python manager may be added alongside it.
    """
    path = Path(path)
    managers: List[PackageManager] = []

    if (path / "bun.lock").exists() or (path / "bun.lockb").exists():
        managers.append(PackageManager.BUN)
    elif (path / "pnpm-lock.yaml").exists():
        managers.append(PackageManager.PNPM)
    elif (path / "package-lock.json").exists():
        managers.append(PackageManager.NPM)
    elif (path / "package.json").exists():
        # No lockfile, default to npm
        managers.append(PackageManager.NPM)

    if (path / "Cargo.toml").exists():
        managers.append(PackageManager.CARGO)

    if (path / "uv.lock").exists():
        managers.append(PackageManager.UV)
    elif (path / "poetry.lock").exists():
        managers.append(PackageManager.POETRY)
    elif (path / "requirements.txt").exists():
        managers.append(PackageManager.PIP)

    return managers


class InstallService:
    """Runs package manager installs as subprocesses."""

    def detect(self, path: PathLike) -> List[PackageManager]:
        return detect_package_managers(path)

    def run_install(self, path: PathLike, pm: PackageManager) -> None:
        """Run one install in ``path``; raises InstallError on failure."""
        logger.info(f"Running {pm.command_line} in {path}")
        try:
            result = subprocess.run(
                [pm.command] + pm.install_args,
                cwd=str(path),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            raise InstallError(pm.command_line, str(e)) from e

        if result.returncode != 0:
            raise InstallError(pm.command_line, (result.stderr or "").strip() or f"exit {result.returncode}")
