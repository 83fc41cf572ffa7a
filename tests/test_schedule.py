from datetime import date, datetime, timedelta, timezone

from trackboard.tracks.schedule import derive_schedule_status, time_remaining


def test_schedule_status_follows_dates():
    start, end = date(2024, 1, 8), date(2024, 1, 14)
    assert derive_schedule_status(start, end, today=date(2024, 1, 7)) == "upcoming"
    assert derive_schedule_status(start, end, today=date(2024, 1, 8)) == "current"
    # The end date still counts as a full day
    assert derive_schedule_status(start, end, today=date(2024, 1, 14)) == "current"
    assert derive_schedule_status(start, end, today=date(2024, 1, 15)) == "completed"


def test_schedule_status_needs_both_dates():
    assert derive_schedule_status(None, date(2024, 1, 14), today=date(2024, 1, 10)) is None
    assert derive_schedule_status(date(2024, 1, 8), None, today=date(2024, 1, 10)) is None


def test_time_remaining_formats():
    now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert time_remaining(None, now) is None
    assert time_remaining(now - timedelta(minutes=1), now) == {"expired": True, "text": "Expired"}
    assert time_remaining(now + timedelta(days=2, hours=5, minutes=10), now) == {
        "expired": False,
        "text": "2d 5h remaining",
    }
    assert time_remaining(now + timedelta(hours=3, minutes=25), now) == {
        "expired": False,
        "text": "3h 25m remaining",
    }


def test_time_remaining_accepts_naive_deadline():
    now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    naive_deadline = datetime(2024, 1, 2, 12, 0)
    assert time_remaining(naive_deadline, now)["text"] == "1d 0h remaining"
