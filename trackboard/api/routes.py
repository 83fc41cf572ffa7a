"""
Learner-facing API: profile, dashboard, tracks and progress updates.
"""
from dataclasses import asdict

from fastapi import APIRouter, Depends, Form, HTTPException
from sqlalchemy.orm import Session

from trackboard.auth.models import MIN_FULL_NAME_LENGTH, MOBILE_RE, User
from trackboard.core.deps import get_current_user, get_onboarded_user
from trackboard.db.session import get_db
from trackboard.progress import service
from trackboard.progress.engine import ProgressStatus, TrackState, order_tasks
from trackboard.progress.notifier import notifier
from trackboard.tracks.models import Track, Task
from trackboard.tracks.schedule import time_remaining

router = APIRouter(prefix="/api", tags=["api"])


# reason code -> HTTP status for refused progress writes
_REASON_STATUS = {
    "UNKNOWN_TASK": 404,
    "UNKNOWN_TRACK": 404,
    "INVALID_STATUS": 400,
    "ILLEGAL_TRANSITION": 409,
    "TRACK_EMPTY": 409,
    "TASKS_INCOMPLETE": 409,
    "TRACK_LOCKED": 409,
}


def _raise_for_refusal(result: dict) -> dict:
    if not result.get("ok"):
        raise HTTPException(status_code=_REASON_STATUS.get(result["reason"], 400), detail=result["message"])
    return result


def _profile(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "mobile_number": user.mobile_number,
        "avatar_url": user.avatar_url,
        "role": user.role,
        "profile_complete": user.is_profile_complete,
    }


# ======================================================
# PROFILE / ONBOARDING
# ======================================================
@router.get("/me")
def get_me(user: User = Depends(get_current_user)):
    return _profile(user)


@router.put("/me/profile")
def update_profile(
    full_name: str = Form(...),
    mobile_number: str = Form(...),
    avatar_url: str = Form(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    full_name = full_name.strip()
    mobile_number = mobile_number.strip()

    if len(full_name) < MIN_FULL_NAME_LENGTH:
        raise HTTPException(status_code=422, detail="Full name must be at least 2 characters")
    if not MOBILE_RE.fullmatch(mobile_number):
        raise HTTPException(status_code=422, detail="Mobile number must be exactly 10 digits")

    user.full_name = full_name
    user.mobile_number = mobile_number
    if avatar_url is not None:
        user.avatar_url = avatar_url.strip() or None
    db.commit()
    db.refresh(user)
    return _profile(user)


# ======================================================
# DASHBOARD
# ======================================================
@router.get("/me/dashboard")
def get_dashboard(
    db: Session = Depends(get_db),
    user: User = Depends(get_onboarded_user),
):
    dashboard = service.get_dashboard(db, user.id)
    payload = asdict(dashboard)

    current_task = None
    if dashboard.current_task_id is not None:
        task = db.query(Task).filter(Task.id == dashboard.current_task_id).first()
        if task:
            current_task = {
                "id": task.id,
                "track_id": task.track_id,
                "name": task.name,
                "caption": task.caption,
                "deadline": task.deadline,
                "time_remaining": time_remaining(task.deadline),
            }
    payload["current_task"] = current_task
    return payload


@router.get("/me/changes")
def get_changes(user: User = Depends(get_current_user)):
    """Poll target: re-fetch the dashboard whenever either version moves."""
    global_version, user_version = notifier.version_for(user.id)
    return {"global_version": global_version, "user_version": user_version}


# ======================================================
# TRACKS
# ======================================================
@router.get("/tracks")
def list_tracks(
    db: Session = Depends(get_db),
    user: User = Depends(get_onboarded_user),
):
    """Tracks grouped the way the tracks page shows them."""
    dashboard = service.get_dashboard(db, user.id)
    grouped = {state.value: [] for state in TrackState}
    for summary in dashboard.tracks:
        grouped[summary.state.value].append(asdict(summary))
    return {"current_track_id": dashboard.current_track_id, "tracks": grouped}


@router.get("/tracks/{track_id}")
def get_track(
    track_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_onboarded_user),
):
    track = db.query(Track).filter(Track.id == track_id).first()
    if not track:
        raise HTTPException(status_code=404, detail="Track not found")

    detail = service.track_detail(db, user.id, track)
    progress = detail["progress"]

    tasks = []
    for task in order_tasks(track.tasks):
        row = progress.get(task.id)
        status = row.status if row else ProgressStatus.NOT_STARTED
        tasks.append({
            "id": task.id,
            "name": task.name,
            "caption": task.caption,
            "task_order": task.task_order,
            "deadline": task.deadline,
            "resources_url": task.resources_url,
            "status": status.value,
            "completed_at": row.completed_at if row else None,
            "time_remaining": time_remaining(task.deadline) if status is not ProgressStatus.COMPLETED else None,
        })

    return {
        "id": track.id,
        "name": track.name,
        "description": track.description,
        "start_date": track.start_date,
        "end_date": track.end_date,
        "summary": asdict(detail["summary"]),
        "tasks": tasks,
    }


# ======================================================
# PROGRESS WRITES
# ======================================================
@router.post("/tasks/{task_id}/status")
def update_task_status(
    task_id: int,
    status: str = Form(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_onboarded_user),
):
    return _raise_for_refusal(service.set_task_status(db, user.id, task_id, status))


@router.post("/tracks/{track_id}/complete")
def complete_track(
    track_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_onboarded_user),
):
    return _raise_for_refusal(service.complete_track(db, user.id, track_id))


@router.post("/tracks/{track_id}/reopen")
def reopen_track(
    track_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_onboarded_user),
):
    return _raise_for_refusal(service.reopen_track(db, user.id, track_id))
