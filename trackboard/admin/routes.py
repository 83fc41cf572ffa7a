"""
Admin panel API: tracks, tasks, users and track assignments.

Superadmins manage everything. Admins only see and edit the tracks assigned
to them (tracks they create are assigned automatically).
"""
from datetime import date, datetime

from fastapi import APIRouter, Depends, Form, HTTPException
from sqlalchemy.orm import Session

from trackboard.auth.models import User
from trackboard.core.config import ROLE_ADMIN, ROLE_SUPERADMIN, ROLES
from trackboard.core.deps import get_admin, get_superadmin
from trackboard.db.session import get_db
from trackboard.progress.engine import order_tasks
from trackboard.progress.models import UserTaskProgress, UserTrackProgress
from trackboard.progress.notifier import notifier
from trackboard.progress.service import reopen_completed_track_for_all, sync_track_statuses
from trackboard.tracks.models import AdminTrackAssignment, Track, Task
from trackboard.tracks.schedule import derive_schedule_status

router = APIRouter(prefix="/admin", tags=["admin"])

TRACK_STATUSES = ("upcoming", "current", "completed")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _parse_date(value: str | None) -> date | None:
    if value is None or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format")


def _parse_deadline(value: str | None) -> datetime | None:
    if value is None or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format")


def _parse_track_status(value: str) -> str:
    status = value.strip().lower()
    if status == "past":
        status = "completed"
    if status not in TRACK_STATUSES:
        raise HTTPException(status_code=400, detail=f"Status must be one of {', '.join(TRACK_STATUSES)}")
    return status


def _parse_clear(value: str | None, allowed: tuple) -> list[str]:
    fields = [f.strip() for f in (value or "").split(",") if f.strip()]
    unknown = [f for f in fields if f not in allowed]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Cannot clear: {', '.join(unknown)}")
    return fields


def _check_dates(start: date | None, end: date | None):
    if start and end and end < start:
        raise HTTPException(status_code=400, detail="End date cannot be before start date")


def _manageable_track_ids(db: Session, user: User) -> set[int] | None:
    """None means every track (superadmin)."""
    if user.role == ROLE_SUPERADMIN:
        return None
    rows = db.query(AdminTrackAssignment.track_id).filter(
        AdminTrackAssignment.admin_user_id == user.id
    ).all()
    return {r[0] for r in rows}


def _get_track(db: Session, user: User, track_id: int) -> Track:
    track = db.query(Track).filter(Track.id == track_id).first()
    if not track:
        raise HTTPException(status_code=404, detail="Track not found")
    allowed = _manageable_track_ids(db, user)
    if allowed is not None and track.id not in allowed:
        raise HTTPException(status_code=403, detail="Track is not assigned to you")
    return track


def _get_task(db: Session, user: User, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    _get_track(db, user, task.track_id)
    return task


def _track_dict(track: Track) -> dict:
    return {
        "id": track.id,
        "name": track.name,
        "description": track.description,
        "status": track.status,
        "schedule_status": derive_schedule_status(track.start_date, track.end_date),
        "start_date": track.start_date.isoformat() if track.start_date else None,
        "end_date": track.end_date.isoformat() if track.end_date else None,
        "task_count": len(track.tasks),
    }


def _task_dict(task: Task) -> dict:
    return {
        "id": task.id,
        "track_id": task.track_id,
        "name": task.name,
        "caption": task.caption,
        "deadline": task.deadline.isoformat() if task.deadline else None,
        "resources_url": task.resources_url,
        "task_order": task.task_order,
    }


def _commit(db: Session, action: str):
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        print(f"[ADMIN] {action} failed: {e!r}", flush=True)
        raise HTTPException(status_code=500, detail=f"Failed to {action}: {str(e)}")


# ======================================================
# TRACKS
# ======================================================
@router.get("/tracks")
def admin_list_tracks(
    db: Session = Depends(get_db),
    user: User = Depends(get_admin),
):
    query = db.query(Track)
    allowed = _manageable_track_ids(db, user)
    if allowed is not None:
        query = query.filter(Track.id.in_(allowed))

    # Newest weeks first; undated tracks at the end
    tracks = query.order_by(Track.start_date.is_(None), Track.start_date.desc(), Track.id.desc()).all()
    return {"tracks": [_track_dict(t) for t in tracks]}


@router.post("/tracks")
def admin_create_track(
    name: str = Form(...),
    description: str = Form(None),
    status: str = Form("upcoming"),
    start_date: str = Form(None),
    end_date: str = Form(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_admin),
):
    if not name.strip():
        raise HTTPException(status_code=400, detail="Name is required")
    start, end = _parse_date(start_date), _parse_date(end_date)
    _check_dates(start, end)

    track = Track(
        name=name.strip(),
        description=(description or "").strip() or None,
        status=_parse_track_status(status),
        start_date=start,
        end_date=end,
    )
    db.add(track)

    if user.role == ROLE_ADMIN:
        # Track and assignment are committed together
        db.flush()
        db.add(AdminTrackAssignment(admin_user_id=user.id, track_id=track.id))
    _commit(db, "create track")

    db.refresh(track)
    print(f"[ADMIN] user={user.id} created track={track.id}", flush=True)
    notifier.notify_all("track_created")
    return {"status": "track created", "track": _track_dict(track)}


@router.put("/tracks/{track_id}")
def admin_update_track(
    track_id: int,
    name: str = Form(None),
    description: str = Form(None),
    status: str = Form(None),
    start_date: str = Form(None),
    end_date: str = Form(None),
    clear: str = Form(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_admin),
):
    """
    Fields left out stay unchanged. `clear` lists optional fields to reset,
    e.g. "description,end_date".
    """
    track = _get_track(db, user, track_id)
    to_clear = _parse_clear(clear, ("description", "start_date", "end_date"))

    if name is not None:
        if not name.strip():
            raise HTTPException(status_code=400, detail="Name is required")
        track.name = name.strip()
    if description is not None:
        track.description = description.strip() or None
    if status is not None:
        track.status = _parse_track_status(status)
    if start_date is not None:
        track.start_date = _parse_date(start_date)
    if end_date is not None:
        track.end_date = _parse_date(end_date)
    for field in to_clear:
        setattr(track, field, None)
    _check_dates(track.start_date, track.end_date)

    _commit(db, "update track")
    db.refresh(track)
    notifier.notify_all("track_updated")
    return {"status": "track updated", "track": _track_dict(track)}


@router.delete("/tracks/{track_id}")
def admin_delete_track(
    track_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_admin),
):
    """Delete a track together with its tasks and every progress row hanging off them."""
    track = _get_track(db, user, track_id)
    task_ids = [t.id for t in track.tasks]

    if task_ids:
        db.query(UserTaskProgress).filter(UserTaskProgress.task_id.in_(task_ids)).delete(synchronize_session=False)
    db.query(UserTrackProgress).filter(UserTrackProgress.track_id == track_id).delete(synchronize_session=False)
    db.query(AdminTrackAssignment).filter(AdminTrackAssignment.track_id == track_id).delete(synchronize_session=False)
    db.delete(track)
    _commit(db, "delete track")

    print(f"[ADMIN] user={user.id} deleted track={track_id} tasks={len(task_ids)}", flush=True)
    notifier.notify_all("track_deleted")
    return {"status": "track deleted", "track_id": track_id, "deleted_tasks": len(task_ids)}


@router.post("/tracks/sync-status")
def admin_sync_track_status(
    db: Session = Depends(get_db),
    user: User = Depends(get_admin),
):
    """Re-derive stored track statuses from their start/end dates."""
    changed = sync_track_statuses(db, track_ids=_manageable_track_ids(db, user))
    return {"changed": changed}


# ======================================================
# TASKS
# ======================================================
@router.get("/tracks/{track_id}/tasks")
def admin_list_tasks(
    track_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_admin),
):
    track = _get_track(db, user, track_id)
    return {"track_id": track.id, "tasks": [_task_dict(t) for t in order_tasks(track.tasks)]}


@router.post("/tracks/{track_id}/tasks")
def admin_create_task(
    track_id: int,
    name: str = Form(...),
    caption: str = Form(None),
    deadline: str = Form(None),
    resources_url: str = Form(None),
    task_order: int = Form(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_admin),
):
    track = _get_track(db, user, track_id)
    if not name.strip():
        raise HTTPException(status_code=400, detail="Name is required")

    task = Task(
        track_id=track.id,
        name=name.strip(),
        caption=(caption or "").strip() or None,
        deadline=_parse_deadline(deadline),
        resources_url=(resources_url or "").strip() or None,
        # Appended at the end unless told otherwise
        task_order=task_order if task_order is not None else len(track.tasks) + 1,
    )
    db.add(task)
    # A completed track must keep every task completed
    reopened = reopen_completed_track_for_all(db, track.id)
    _commit(db, "create task")
    db.refresh(task)

    if reopened:
        print(f"[ADMIN] track={track.id} reopened for {reopened} learner(s) after adding task={task.id}", flush=True)
    notifier.notify_all("task_created")
    return {"status": "task created", "task": _task_dict(task)}


@router.put("/tasks/{task_id}")
def admin_update_task(
    task_id: int,
    name: str = Form(None),
    caption: str = Form(None),
    deadline: str = Form(None),
    resources_url: str = Form(None),
    task_order: int = Form(None),
    clear: str = Form(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_admin),
):
    task = _get_task(db, user, task_id)
    to_clear = _parse_clear(clear, ("caption", "deadline", "resources_url", "task_order"))

    if name is not None:
        if not name.strip():
            raise HTTPException(status_code=400, detail="Name is required")
        task.name = name.strip()
    if caption is not None:
        task.caption = caption.strip() or None
    if deadline is not None:
        task.deadline = _parse_deadline(deadline)
    if resources_url is not None:
        task.resources_url = resources_url.strip() or None
    if task_order is not None:
        task.task_order = task_order
    for field in to_clear:
        setattr(task, field, None)

    _commit(db, "update task")
    db.refresh(task)
    notifier.notify_all("task_updated")
    return {"status": "task updated", "task": _task_dict(task)}


@router.delete("/tasks/{task_id}")
def admin_delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_admin),
):
    task = _get_task(db, user, task_id)
    db.query(UserTaskProgress).filter(UserTaskProgress.task_id == task_id).delete(synchronize_session=False)
    db.delete(task)
    _commit(db, "delete task")

    notifier.notify_all("task_deleted")
    return {"status": "task deleted", "task_id": task_id}


# ======================================================
# USERS
# ======================================================
@router.get("/users")
def admin_list_users(
    db: Session = Depends(get_db),
    user: User = Depends(get_admin),
):
    users = db.query(User).order_by(User.id.asc()).all()
    return {
        "users": [
            {
                "id": u.id,
                "email": u.email,
                "full_name": u.full_name,
                "mobile_number": u.mobile_number,
                "role": u.role,
                "profile_complete": u.is_profile_complete,
                "last_active": u.last_active.isoformat() if u.last_active else None,
            }
            for u in users
        ]
    }


@router.put("/users/{user_id}/role")
def admin_set_role(
    user_id: int,
    role: str = Form(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_superadmin),
):
    role = role.strip().lower()
    if role not in ROLES:
        raise HTTPException(status_code=400, detail=f"Role must be one of {', '.join(ROLES)}")

    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    if target.id == user.id and role != ROLE_SUPERADMIN:
        raise HTTPException(status_code=400, detail="You cannot demote yourself")

    old = target.role
    target.role = role
    if role != ROLE_ADMIN:
        # Assignments only mean something for plain admins
        db.query(AdminTrackAssignment).filter(
            AdminTrackAssignment.admin_user_id == target.id
        ).delete(synchronize_session=False)
    _commit(db, "update role")

    print(f"[ADMIN] user={user.id} changed role of user={target.id} {old} -> {role}", flush=True)
    return {"status": "role updated", "user_id": target.id, "role": role}


# ======================================================
# TRACK ASSIGNMENTS
# ======================================================
@router.get("/tracks/{track_id}/assignments")
def admin_list_assignments(
    track_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_superadmin),
):
    track = _get_track(db, user, track_id)
    rows = db.query(AdminTrackAssignment).filter(AdminTrackAssignment.track_id == track.id).all()
    return {"track_id": track.id, "admin_user_ids": sorted(r.admin_user_id for r in rows)}


@router.post("/tracks/{track_id}/assignments")
def admin_assign_track(
    track_id: int,
    admin_user_id: int = Form(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_superadmin),
):
    track = _get_track(db, user, track_id)
    target = db.query(User).filter(User.id == admin_user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    if target.role != ROLE_ADMIN:
        raise HTTPException(status_code=400, detail="Only admins can be assigned to tracks")

    existing = db.query(AdminTrackAssignment).filter_by(admin_user_id=target.id, track_id=track.id).first()
    if not existing:
        db.add(AdminTrackAssignment(admin_user_id=target.id, track_id=track.id))
        _commit(db, "assign track")
    return {"status": "assigned", "track_id": track.id, "admin_user_id": target.id}


@router.delete("/tracks/{track_id}/assignments/{admin_user_id}")
def admin_unassign_track(
    track_id: int,
    admin_user_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_superadmin),
):
    track = _get_track(db, user, track_id)
    deleted = db.query(AdminTrackAssignment).filter_by(
        admin_user_id=admin_user_id, track_id=track.id
    ).delete(synchronize_session=False)
    if not deleted:
        raise HTTPException(status_code=404, detail="Assignment not found")
    _commit(db, "unassign track")
    return {"status": "unassigned", "track_id": track.id, "admin_user_id": admin_user_id}
