"""
Date-based helpers for tracks and task deadlines.
"""
from datetime import date, datetime, timezone
from typing import Optional


def derive_schedule_status(
    start_date: Optional[date], end_date: Optional[date], today: Optional[date] = None
) -> Optional[str]:
    """
    Status a track should carry according to its calendar dates.
    The end date counts as a full day. Returns None when either date is missing,
    in which case the stored status is left alone.
    """
    if start_date is None or end_date is None:
        return None
    today = today or date.today()
    if today < start_date:
        return "upcoming"
    if today <= end_date:
        return "current"
    return "completed"


def time_remaining(deadline: Optional[datetime], now: Optional[datetime] = None) -> Optional[dict]:
    """Countdown text for a task deadline, e.g. "2d 5h remaining"."""
    if deadline is None:
        return None
    now = now or datetime.now(timezone.utc)
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = int((deadline - now).total_seconds())
    if seconds <= 0:
        return {"expired": True, "text": "Expired"}

    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    if days > 0:
        return {"expired": False, "text": f"{days}d {hours}h remaining"}
    minutes = rest // 60
    return {"expired": False, "text": f"{hours}h {minutes}m remaining"}
