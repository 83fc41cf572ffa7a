"""
"Snapshot changed" notifications.

Writes that affect what a learner sees publish an event here. Listeners (and
polling clients through the version counters) react by re-running the progress
engine on a fresh snapshot; nothing is patched incrementally.
"""
import threading
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class SnapshotChanged:
    scope: str  # "user" (one learner's progress) or "all" (tracks/tasks edited)
    user_id: Optional[int]
    reason: str


Listener = Callable[[SnapshotChanged], None]


class ChangeNotifier:
    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []
        self._global_version = 0
        self._user_versions: dict[int, int] = {}

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def notify_user(self, user_id: int, reason: str) -> SnapshotChanged:
        with self._lock:
            self._user_versions[user_id] = self._user_versions.get(user_id, 0) + 1
        return self._publish(SnapshotChanged(scope="user", user_id=user_id, reason=reason))

    def notify_all(self, reason: str) -> SnapshotChanged:
        with self._lock:
            self._global_version += 1
        return self._publish(SnapshotChanged(scope="all", user_id=None, reason=reason))

    def version_for(self, user_id: int) -> tuple[int, int]:
        """(global_version, user_version). Either moving means the snapshot changed."""
        with self._lock:
            return self._global_version, self._user_versions.get(user_id, 0)

    def _publish(self, event: SnapshotChanged) -> SnapshotChanged:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as exc:
                # A broken listener must not fail the write that triggered it
                print(f"[NOTIFY] listener {listener!r} failed for {event}: {exc!r}", flush=True)
        return event


notifier = ChangeNotifier()
