"""Progress tracking and full-state broadcasting to observers."""

import threading
from collections import deque
from typing import Dict, Iterator, List, Optional

from git_worktree_keeper.constants import DEFAULT_BROADCAST_CAPACITY
from git_worktree_keeper.exceptions import StoreError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.state import FullState, RepoWithWorktrees
from git_worktree_keeper.store import Store

logger = get_logger(__name__)


class Subscription:
    """Receiver side of a broadcast.

    Holds at most ``capacity`` pending snapshots. When full, the oldest one is
    dropped, so a slow consumer skips intermediate states but always gets the
    latest.
    """

    def __init__(self, capacity: int):
        self._buffer: deque = deque(maxlen=capacity)
        self._condition = threading.Condition()
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, state: FullState) -> None:
        with self._condition:
            if self._closed:
                return
            if len(self._buffer) == self._buffer.maxlen:
                self.dropped += 1
            self._buffer.append(state)
            self._condition.notify_all()

    def get(self, timeout: Optional[float] = None) -> Optional[FullState]:
        """Next pending snapshot, or None on timeout or once closed."""
        with self._condition:
            if not self._buffer and not self._closed:
                self._condition.wait(timeout)
            if self._buffer:
                return self._buffer.popleft()
            return None

    def pending(self) -> int:
        with self._condition:
            return len(self._buffer)

    def close(self) -> None:
        with self._condition:
            self._closed = True
            self._condition.notify_all()

    def __iter__(self) -> Iterator[FullState]:
        while True:
            state = self.get()
            if state is None:
                return
            yield state


class StateBroadcaster:
    """Owns the in-flight progress map and fans snapshots out to subscribers."""

    def __init__(self, store: Store, capacity: int = DEFAULT_BROADCAST_CAPACITY):
        self.store = store
        self.capacity = capacity
        self._progress: Dict[str, str] = {}
        self._subscribers: List[Subscription] = []
        self._lock = threading.Lock()
        self._publish_lock = threading.Lock()

    def set_progress(self, key: str, text: Optional[str]) -> None:
        """Set progress text for a repository id or worktree path; None clears it."""
        with self._lock:
            if text is None:
                self._progress.pop(key, None)
            else:
                self._progress[key] = text
        if text is not None:
            logger.debug(f"{key}: {text}")
        self.notify()

    def progress(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._progress)

    def snapshot(self) -> FullState:
        """Read the whole store and merge in the progress map.

        Store errors are logged and leave the affected part empty.
        """
        repositories = []
        try:
            repos = self.store.list_repositories()
        except StoreError as e:
            logger.error(f"Could not list repositories for snapshot: {e}")
            repos = []

        for repo in repos:
            try:
                worktrees = self.store.list_worktrees(repo.id)
            except StoreError as e:
                logger.error(f"Could not list worktrees of {repo.full_name} for snapshot: {e}")
                worktrees = []
            repositories.append(RepoWithWorktrees(repo=repo, worktrees=worktrees))

        return FullState(repositories=repositories, progress=self.progress())

    def notify(self) -> None:
        """Recompute the snapshot and deliver it to every subscriber."""
        with self._lock:
            subscribers = [s for s in self._subscribers if not s.closed]
            self._subscribers = subscribers
        if not subscribers:
            return

        # Snapshot and delivery happen together so the newest state lands last
        with self._publish_lock:
            state = self.snapshot()
            for sub in subscribers:
                sub.put(state)

    def subscribe(self) -> Subscription:
        sub = Subscription(self.capacity)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.close()
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def stream(self, timeout: Optional[float] = None) -> Iterator[FullState]:
        """Yield an initial snapshot, then every broadcast until closed.

        With ``timeout`` the stream ends after that many seconds of silence.
        """
        sub = self.subscribe()
        try:
            yield self.snapshot()
            while True:
                state = sub.get(timeout)
                if state is None:
                    return
                yield state
        finally:
            self.unsubscribe(sub)
