"""
Seed a small demo curriculum: consecutive weekly tracks with a few tasks each.

- SAFE to run multiple times (tracks are matched by name, never duplicated)
- Does not touch users or progress rows

Usage:
    python scripts/seed_tracks.py [YYYY-MM-DD]   # first Monday, defaults to this week
"""
import sys
from datetime import date, timedelta
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from trackboard.db.base import Base, engine  # noqa: E402
from trackboard.db.session import SessionLocal  # noqa: E402
import trackboard.auth.models  # noqa: E402,F401
import trackboard.progress.models  # noqa: E402,F401
from trackboard.tracks.models import Track, Task  # noqa: E402
from trackboard.tracks.schedule import derive_schedule_status  # noqa: E402

CURRICULUM = [
    ("Week 1: Foundations", ["Set up your environment", "Read the course handbook", "Say hello in the forum"]),
    ("Week 2: Building blocks", ["Watch the lecture", "Finish the exercises", "Submit the quiz"]),
    ("Week 3: First project", ["Pick a project idea", "Write the project plan", "Ship a first version"]),
]


def seed_tracks(first_monday: date):
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        created = 0
        skipped = 0

        for week, (name, task_names) in enumerate(CURRICULUM):
            if db.query(Track).filter(Track.name == name).first():
                skipped += 1
                continue

            start = first_monday + timedelta(weeks=week)
            end = start + timedelta(days=6)
            track = Track(
                name=name,
                start_date=start,
                end_date=end,
                status=derive_schedule_status(start, end) or "upcoming",
            )
            db.add(track)
            db.flush()

            for order, task_name in enumerate(task_names, start=1):
                db.add(Task(track_id=track.id, name=task_name, task_order=order))
            created += 1

        db.commit()

        print("Track seeding complete")
        print(f"   Created: {created}")
        print(f"   Skipped (already existed): {skipped}")

    except Exception as e:
        db.rollback()
        print("Error while seeding tracks")
        print(str(e))
        raise
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) > 1:
        monday = date.fromisoformat(sys.argv[1])
    else:
        today = date.today()
        monday = today - timedelta(days=today.weekday())
    seed_tracks(monday)
