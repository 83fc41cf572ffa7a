"""
Progress engine: derives progression and unlock state for one user.

Pure functions over a snapshot of tracks, tasks and progress rows. Nothing in
here reads the database or keeps state between calls, so callers simply re-run
it whenever the underlying rows change.

Core rules:
  - Track percent = round-half-up(100 * completed / total), 0 for a track without tasks
  - Current track: latest in-progress task > latest completed task > earliest start date
  - Classification precedence: current > completed > upcoming
  - A track only counts as completed through an explicit track progress row
  - Tasks pointing at a track missing from the snapshot are orphans: skipped and counted
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence, Union

Key = Union[int, str]


class ProgressStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: Union[str, "ProgressStatus", None]) -> "ProgressStatus":
        """Parse a stored/submitted status tag. Raises ValueError for unknown tags."""
        if isinstance(value, ProgressStatus):
            return value
        if value is None:
            return cls.NOT_STARTED
        tag = str(value).strip().lower().replace("_", "-")
        if tag in ("", "pending"):
            return cls.NOT_STARTED
        return cls(tag)


class TrackState(str, Enum):
    CURRENT = "current"
    COMPLETED = "completed"
    UPCOMING = "upcoming"


# Legal per-user task transitions. Re-asserting the current state is always allowed.
TASK_TRANSITIONS = {
    ProgressStatus.NOT_STARTED: frozenset({ProgressStatus.IN_PROGRESS}),
    ProgressStatus.IN_PROGRESS: frozenset({ProgressStatus.COMPLETED, ProgressStatus.NOT_STARTED}),
    ProgressStatus.COMPLETED: frozenset({ProgressStatus.NOT_STARTED}),
}


def is_allowed_transition(current: ProgressStatus, target: ProgressStatus) -> bool:
    return current is target or target in TASK_TRANSITIONS[current]


# ---------------------------------------------------------------------------
# Snapshot projections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrackSnapshot:
    id: Key
    name: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str = "upcoming"  # stored tag, informational only
    description: Optional[str] = None


@dataclass(frozen=True)
class TaskSnapshot:
    id: Key
    track_id: Key
    name: str = ""
    task_order: Optional[int] = None
    deadline: Optional[datetime] = None


@dataclass(frozen=True)
class TaskProgressSnapshot:
    task_id: Key
    status: ProgressStatus
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Snapshot:
    user_id: Key
    tracks: tuple = ()
    tasks: tuple = ()
    progress: Mapping[Key, TaskProgressSnapshot] = field(default_factory=dict)
    completed_track_ids: frozenset = frozenset()


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

def _key_order(key: Key) -> tuple:
    # int ids sort before str ids so mixed snapshots never compare int < str
    return (isinstance(key, str), key)


def order_tasks(tasks: Iterable[TaskSnapshot]) -> list[TaskSnapshot]:
    """Display order inside a track: task_order, NULLs last, then id."""
    return sorted(tasks, key=lambda t: (t.task_order is None, t.task_order or 0, _key_order(t.id)))


def order_tracks(tracks: Iterable[TrackSnapshot]) -> list[TrackSnapshot]:
    """Curriculum order: start date, undated tracks last, then id."""
    return sorted(tracks, key=lambda t: (t.start_date is None, t.start_date or date.min, _key_order(t.id)))


def split_orphans(
    tracks: Iterable[TrackSnapshot], tasks: Iterable[TaskSnapshot]
) -> tuple[dict, list[TaskSnapshot]]:
    """Group tasks per known track (each list in display order) and collect orphans."""
    by_track = {track.id: [] for track in tracks}
    orphans = []
    for task in order_tasks(tasks):
        if task.track_id in by_track:
            by_track[task.track_id].append(task)
        else:
            orphans.append(task)
    return by_track, orphans


# ---------------------------------------------------------------------------
# Per-track derivations
# ---------------------------------------------------------------------------

def status_of(progress: Mapping[Key, TaskProgressSnapshot], task_id: Key) -> ProgressStatus:
    row = progress.get(task_id)
    return row.status if row is not None else ProgressStatus.NOT_STARTED


def compute_track_progress(
    tasks: Sequence[TaskSnapshot], progress: Mapping[Key, TaskProgressSnapshot]
) -> int:
    tasks = list(tasks)
    total = len(tasks)
    if not total:
        return 0
    done = sum(1 for t in tasks if status_of(progress, t.id) is ProgressStatus.COMPLETED)
    # Integer round-half-up of 100 * done / total
    return (200 * done + total) // (2 * total)


def next_incomplete_task_index(
    tasks_in_order: Sequence[TaskSnapshot], progress: Mapping[Key, TaskProgressSnapshot]
) -> int:
    for index, task in enumerate(tasks_in_order):
        if status_of(progress, task.id) is not ProgressStatus.COMPLETED:
            return index
    return -1


def can_complete_track(
    track_id: Key, tasks_of_track: Sequence[TaskSnapshot], progress: Mapping[Key, TaskProgressSnapshot]
) -> bool:
    own = [t for t in tasks_of_track if t.track_id == track_id]
    return bool(own) and all(status_of(progress, t.id) is ProgressStatus.COMPLETED for t in own)


def classify_track(track_id: Key, current_track_id: Optional[Key], completed_track_ids) -> TrackState:
    if track_id == current_track_id:
        return TrackState.CURRENT
    if track_id in completed_track_ids:
        return TrackState.COMPLETED
    return TrackState.UPCOMING


# ---------------------------------------------------------------------------
# Current track
# ---------------------------------------------------------------------------

def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _recency(stamp: Optional[datetime], position: int) -> tuple:
    stamp = _as_utc(stamp)
    return (stamp is not None, stamp, position)


def compute_current_track(
    tracks: Iterable[TrackSnapshot],
    all_tasks_in_order: Iterable[TaskSnapshot],
    progress: Mapping[Key, TaskProgressSnapshot],
) -> Optional[Key]:
    """
    Pick the user's current track. First match wins:
      1. track of the most recently updated in-progress task
      2. track of the most recently completed task
      3. track with the earliest start date (ties by id)
    Equal timestamps go to the task that comes later in curriculum order.
    """
    ordered_tracks = order_tracks(tracks)
    if not ordered_tracks:
        return None

    by_track, _orphans = split_orphans(ordered_tracks, all_tasks_in_order)
    position = {}
    owner = {}
    for track in ordered_tracks:
        for task in by_track[track.id]:
            position[task.id] = len(position)
            owner[task.id] = track.id

    rows = [row for row in progress.values() if row.task_id in owner]

    in_progress = [r for r in rows if r.status is ProgressStatus.IN_PROGRESS]
    if in_progress:
        latest = max(in_progress, key=lambda r: _recency(r.updated_at, position[r.task_id]))
        return owner[latest.task_id]

    completed = [r for r in rows if r.status is ProgressStatus.COMPLETED]
    if completed:
        latest = max(
            completed,
            key=lambda r: _recency(r.completed_at or r.updated_at, position[r.task_id]),
        )
        return owner[latest.task_id]

    return ordered_tracks[0].id


# ---------------------------------------------------------------------------
# Dashboard aggregate
# ---------------------------------------------------------------------------

@dataclass
class TrackSummary:
    track_id: Key
    name: str
    state: TrackState
    stored_status: str
    start_date: Optional[date]
    end_date: Optional[date]
    percent: int
    completed_tasks: int
    total_tasks: int
    can_complete: bool
    next_task_index: int
    next_task_id: Optional[Key]


@dataclass
class Stats:
    tasks_completed: int
    tasks_total: int
    tracks_completed: int
    tracks_total: int
    overall_percent: int
    orphaned_tasks: int


@dataclass
class Dashboard:
    user_id: Key
    current_track_id: Optional[Key]
    current_task_index: int
    current_task_id: Optional[Key]
    tracks: list
    stats: Stats


def summarize_track(
    track: TrackSnapshot,
    tasks_in_order: Sequence[TaskSnapshot],
    progress: Mapping[Key, TaskProgressSnapshot],
    current_track_id: Optional[Key],
    completed_track_ids,
) -> TrackSummary:
    completed = sum(1 for t in tasks_in_order if status_of(progress, t.id) is ProgressStatus.COMPLETED)
    next_index = next_incomplete_task_index(tasks_in_order, progress)
    return TrackSummary(
        track_id=track.id,
        name=track.name,
        state=classify_track(track.id, current_track_id, completed_track_ids),
        stored_status=track.status,
        start_date=track.start_date,
        end_date=track.end_date,
        percent=compute_track_progress(tasks_in_order, progress),
        completed_tasks=completed,
        total_tasks=len(tasks_in_order),
        can_complete=can_complete_track(track.id, tasks_in_order, progress),
        next_task_index=next_index,
        next_task_id=tasks_in_order[next_index].id if next_index >= 0 else None,
    )


def build_dashboard(snapshot: Snapshot) -> Dashboard:
    ordered_tracks = order_tracks(snapshot.tracks)
    by_track, orphans = split_orphans(ordered_tracks, snapshot.tasks)

    sequence = [task for track in ordered_tracks for task in by_track[track.id]]
    current_track_id = compute_current_track(ordered_tracks, sequence, snapshot.progress)

    summaries = [
        summarize_track(
            track, by_track[track.id], snapshot.progress, current_track_id, snapshot.completed_track_ids
        )
        for track in ordered_tracks
    ]

    current_index = next_incomplete_task_index(sequence, snapshot.progress)
    known_ids = set(by_track)
    stats = Stats(
        tasks_completed=sum(s.completed_tasks for s in summaries),
        tasks_total=len(sequence),
        tracks_completed=len(known_ids & set(snapshot.completed_track_ids)),
        tracks_total=len(ordered_tracks),
        overall_percent=compute_track_progress(sequence, snapshot.progress),
        orphaned_tasks=len(orphans),
    )

    return Dashboard(
        user_id=snapshot.user_id,
        current_track_id=current_track_id,
        current_task_index=current_index,
        current_task_id=sequence[current_index].id if current_index >= 0 else None,
        tracks=summaries,
        stats=stats,
    )
