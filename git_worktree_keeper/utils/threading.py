"""Threading utilities: the background pipeline runner and threading diagnostics."""

import os
import sys
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)


def is_free_threading_enabled() -> bool:
    """Detect if Python is running with free-threading enabled.

    Returns:
        True if running on Python 3.13+ with GIL disabled (free-threading mode)
        False if running with GIL enabled or Python < 3.13
    """
    # sys._is_gil_enabled() is available in Python 3.13+
    return hasattr(sys, "_is_gil_enabled") and not sys._is_gil_enabled()


def get_python_threading_mode() -> str:
    """Get a description of the current threading mode."""
    if hasattr(sys, "_is_gil_enabled"):
        return "GIL-enabled" if sys._is_gil_enabled() else "free-threading"
    return "GIL-enabled (Python < 3.13)"


def get_threading_info() -> Dict[str, Any]:
    """Get information about the Python threading configuration."""
    return {
        "mode": get_python_threading_mode(),
        "free_threading": is_free_threading_enabled(),
        "cpu_count": os.cpu_count() or 1,
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
    }


class PipelineRunner:
    """Runs each pipeline on its own detached daemon thread.

    There is no queue and no cap. With ``serialize_by_key`` pipelines that
    share a key (a repository id) take turns on a per-key lock; otherwise they
    run fully concurrently.
    """

    def __init__(self, serialize_by_key: bool = False):
        self.serialize_by_key = serialize_by_key
        self._threads: List[threading.Thread] = []
        self._key_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()
        self._counter = 0

    def _key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            if key not in self._key_locks:
                self._key_locks[key] = threading.Lock()
            return self._key_locks[key]

    def _run(self, name: str, fn: Callable, args: tuple, key: Optional[str]):
        try:
            if self.serialize_by_key and key is not None:
                with self._key_lock(key):
                    fn(*args)
            else:
                fn(*args)
        except Exception:
            # Pipelines handle their own failures; anything reaching here is a bug
            logger.exception(f"Pipeline {name} crashed")

    def spawn(self, name: str, fn: Callable, *args, key: Optional[str] = None) -> threading.Thread:
        """Start ``fn(*args)`` in the background and return immediately."""
        with self._lock:
            self._counter += 1
            thread = threading.Thread(
                target=self._run,
                args=(name, fn, args, key),
                name=f"{name}-{self._counter}",
                daemon=True,
            )
            # Drop finished threads so the list only tracks in-flight work
            self._threads = [t for t in self._threads if t.is_alive()]
            # Started under the lock: a listed thread is always alive until it finishes
            thread.start()
            self._threads.append(thread)
        logger.debug(f"Started pipeline thread {thread.name}")
        return thread

    def active_count(self) -> int:
        with self._lock:
            return sum(1 for t in self._threads if t.is_alive())

    def join_all(self, timeout: Optional[float] = None) -> bool:
        """Wait for every pipeline, including ones spawned while waiting.

        Returns:
            bool: True if all pipelines finished, False on timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = [t for t in self._threads if t.is_alive()]
            if not pending:
                return True
            for thread in pending:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                thread.join(remaining)
                if deadline is not None and time.monotonic() >= deadline:
                    with self._lock:
                        return not any(t.is_alive() for t in self._threads)
