"""
Data access around the progress engine.

Loads per-user snapshots for the engine and performs the writes the learner
API asks for. Refusals come back as result dicts carrying a `reason` code so
routes can pick the right HTTP status.
"""
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session

from trackboard.progress.engine import (
    ProgressStatus, Snapshot, TaskProgressSnapshot, TaskSnapshot, TrackSnapshot, TrackState,
    build_dashboard, can_complete_track, classify_track, compute_current_track, is_allowed_transition,
    order_tasks, order_tracks, split_orphans,
)
from trackboard.progress.models import UserTaskProgress, UserTrackProgress
from trackboard.progress.notifier import notifier
from trackboard.tracks.models import Track, Task
from trackboard.tracks.schedule import derive_schedule_status


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Snapshot loading
# ---------------------------------------------------------------------------

def track_snapshot(track: Track) -> TrackSnapshot:
    return TrackSnapshot(
        id=track.id,
        name=track.name,
        start_date=track.start_date,
        end_date=track.end_date,
        status=track.status,
        description=track.description,
    )


def task_snapshot(task: Task) -> TaskSnapshot:
    return TaskSnapshot(
        id=task.id,
        track_id=task.track_id,
        name=task.name,
        task_order=task.task_order,
        deadline=task.deadline,
    )


def load_snapshot(db: Session, user_id: int) -> Snapshot:
    """Everything the engine needs for one user, read in one go."""
    tracks = db.query(Track).all()
    tasks = db.query(Task).all()
    task_rows = db.query(UserTaskProgress).filter(UserTaskProgress.user_id == user_id).all()
    completed_tracks = (
        db.query(UserTrackProgress.track_id)
        .filter(
            UserTrackProgress.user_id == user_id,
            UserTrackProgress.status == ProgressStatus.COMPLETED.value,
        )
        .all()
    )

    progress = {}
    for row in task_rows:
        try:
            status = ProgressStatus.parse(row.status)
        except ValueError:
            print(f"[PROGRESS] ignoring unknown status {row.status!r} on row {row.id}", flush=True)
            continue
        progress[row.task_id] = TaskProgressSnapshot(
            task_id=row.task_id,
            status=status,
            completed_at=row.completed_at,
            updated_at=row.updated_at,
        )

    return Snapshot(
        user_id=user_id,
        tracks=tuple(track_snapshot(t) for t in tracks),
        tasks=tuple(task_snapshot(t) for t in tasks),
        progress=progress,
        completed_track_ids=frozenset(r[0] for r in completed_tracks),
    )


def get_dashboard(db: Session, user_id: int):
    dashboard = build_dashboard(load_snapshot(db, user_id))
    if dashboard.stats.orphaned_tasks:
        print(f"[PROGRESS] user={user_id} orphaned_tasks={dashboard.stats.orphaned_tasks}", flush=True)
    return dashboard


def track_state_for(db: Session, user_id: int, track_id: int) -> TrackState:
    snapshot = load_snapshot(db, user_id)
    current = compute_current_track(snapshot.tracks, snapshot.tasks, snapshot.progress)
    return classify_track(track_id, current, snapshot.completed_track_ids)


def track_detail(db: Session, user_id: int, track: Track) -> dict:
    """Engine summary of one track plus this user's progress row per task."""
    snapshot = load_snapshot(db, user_id)
    by_track, _orphans = split_orphans(snapshot.tracks, snapshot.tasks)
    dashboard = build_dashboard(snapshot)
    summary = next(s for s in dashboard.tracks if s.track_id == track.id)
    return {
        "summary": summary,
        "progress": {t.id: snapshot.progress.get(t.id) for t in by_track.get(track.id, [])},
    }


# ---------------------------------------------------------------------------
# Task status writes
# ---------------------------------------------------------------------------

def _reopen_completed_track(db: Session, user_id: int, track_id: int) -> bool:
    row = db.query(UserTrackProgress).filter(
        UserTrackProgress.user_id == user_id,
        UserTrackProgress.track_id == track_id,
    ).first()
    if row and row.status == ProgressStatus.COMPLETED.value:
        row.status = ProgressStatus.IN_PROGRESS.value
        row.completed_at = None
        row.updated_at = _now()
        return True
    return False


def reopen_completed_track_for_all(db: Session, track_id: int) -> int:
    """
    Move every learner's completed row for this track back to in-progress.
    Used when a task is added to the track. Does not commit.
    """
    rows = db.query(UserTrackProgress).filter(
        UserTrackProgress.track_id == track_id,
        UserTrackProgress.status == ProgressStatus.COMPLETED.value,
    ).all()
    now = _now()
    for row in rows:
        row.status = ProgressStatus.IN_PROGRESS.value
        row.completed_at = None
        row.updated_at = now
    return len(rows)


def set_task_status(db: Session, user_id: int, task_id: int, status) -> dict:
    """
    Move one task to `status` for this user.
    not-started deletes the row (unmark); otherwise the row is upserted with
    completed_at set only for completed.
    """
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        return {"ok": False, "reason": "UNKNOWN_TASK", "message": "Task not found"}

    try:
        target = ProgressStatus.parse(status)
    except ValueError:
        return {"ok": False, "reason": "INVALID_STATUS", "message": f"Unknown status '{status}'"}

    row = db.query(UserTaskProgress).filter(
        UserTaskProgress.user_id == user_id,
        UserTaskProgress.task_id == task_id,
    ).first()
    current = ProgressStatus.NOT_STARTED
    if row is not None:
        try:
            current = ProgressStatus.parse(row.status)
        except ValueError:
            # load_snapshot skips such rows, so the learner sees this task as not started
            print(f"[PROGRESS] treating unknown status {row.status!r} on row {row.id} as not-started", flush=True)

    if not is_allowed_transition(current, target):
        return {
            "ok": False,
            "reason": "ILLEGAL_TRANSITION",
            "message": f"Cannot move a task from {current.value} to {target.value}",
        }

    base = {"ok": True, "task_id": task_id, "track_id": task.track_id, "previous": current.value}
    if current is target:
        return {**base, "status": target.value, "changed": False}

    now = _now()
    if target is ProgressStatus.NOT_STARTED:
        db.delete(row)
    elif row is None:
        row = UserTaskProgress(
            user_id=user_id,
            task_id=task_id,
            status=target.value,
            completed_at=now if target is ProgressStatus.COMPLETED else None,
            updated_at=now,
        )
        db.add(row)
    else:
        row.status = target.value
        row.completed_at = now if target is ProgressStatus.COMPLETED else None
        row.updated_at = now

    # A completed track must keep every task completed
    reopened = False
    if current is ProgressStatus.COMPLETED:
        reopened = _reopen_completed_track(db, user_id, task.track_id)

    db.commit()
    print(f"[PROGRESS] user={user_id} task={task_id} {current.value} -> {target.value}"
          f"{' (track reopened)' if reopened else ''}", flush=True)
    notifier.notify_user(user_id, "task_status")
    return {**base, "status": target.value, "changed": True, "track_reopened": reopened}


# ---------------------------------------------------------------------------
# Track progress writes
# ---------------------------------------------------------------------------

def _upsert_track_progress(db: Session, user_id: int, track_id: int, status: ProgressStatus):
    now = _now()
    row = db.query(UserTrackProgress).filter(
        UserTrackProgress.user_id == user_id,
        UserTrackProgress.track_id == track_id,
    ).first()
    if row is None:
        row = UserTrackProgress(user_id=user_id, track_id=track_id)
        db.add(row)
    row.status = status.value
    row.completed_at = now if status is ProgressStatus.COMPLETED else None
    row.updated_at = now
    db.commit()
    return row


def complete_track(db: Session, user_id: int, track_id: int) -> dict:
    track = db.query(Track).filter(Track.id == track_id).first()
    if not track:
        return {"ok": False, "reason": "UNKNOWN_TRACK", "message": "Track not found"}

    snapshot = load_snapshot(db, user_id)
    tasks = order_tasks(t for t in snapshot.tasks if t.track_id == track_id)
    if not tasks:
        return {"ok": False, "reason": "TRACK_EMPTY", "message": "A track without tasks cannot be completed"}
    if not can_complete_track(track_id, tasks, snapshot.progress):
        return {"ok": False, "reason": "TASKS_INCOMPLETE", "message": "Complete every task of this track first"}

    _upsert_track_progress(db, user_id, track_id, ProgressStatus.COMPLETED)
    print(f"[PROGRESS] user={user_id} track={track_id} completed", flush=True)
    notifier.notify_user(user_id, "track_completed")
    return {"ok": True, "track_id": track_id, "status": ProgressStatus.COMPLETED.value}


def reopen_track(db: Session, user_id: int, track_id: int) -> dict:
    """Set a track back to in-progress. Only current or completed tracks are unlocked."""
    track = db.query(Track).filter(Track.id == track_id).first()
    if not track:
        return {"ok": False, "reason": "UNKNOWN_TRACK", "message": "Track not found"}

    if track_state_for(db, user_id, track_id) is TrackState.UPCOMING:
        return {"ok": False, "reason": "TRACK_LOCKED", "message": "Upcoming tracks cannot be updated"}

    _upsert_track_progress(db, user_id, track_id, ProgressStatus.IN_PROGRESS)
    print(f"[PROGRESS] user={user_id} track={track_id} reopened", flush=True)
    notifier.notify_user(user_id, "track_reopened")
    return {"ok": True, "track_id": track_id, "status": ProgressStatus.IN_PROGRESS.value}


# ---------------------------------------------------------------------------
# Stored track status (admin)
# ---------------------------------------------------------------------------

def sync_track_statuses(db: Session, today: date | None = None, track_ids=None) -> list[dict]:
    """Re-derive the stored status of tracks from their dates. Returns the changed rows."""
    query = db.query(Track)
    if track_ids is not None:
        query = query.filter(Track.id.in_(list(track_ids)))

    changed = []
    for track in order_tracks(query.all()):
        derived = derive_schedule_status(track.start_date, track.end_date, today)
        if derived is None or derived == track.status:
            continue
        changed.append({"track_id": track.id, "from": track.status, "to": derived})
        track.status = derived

    if changed:
        db.commit()
        print(f"[PROGRESS] synced stored status of {len(changed)} track(s): {changed}", flush=True)
        notifier.notify_all("track_status_sync")
    return changed
