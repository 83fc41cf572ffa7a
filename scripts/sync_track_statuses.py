"""
Re-derive the stored status of every track from its start/end dates.

Meant for a daily cron job so the stored tag (upcoming / current / completed)
follows the calendar. Tracks without both dates keep their stored status.
"""
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from trackboard.db.session import SessionLocal  # noqa: E402
import trackboard.auth.models  # noqa: E402,F401
from trackboard.progress.service import sync_track_statuses  # noqa: E402


def main() -> int:
    db = SessionLocal()
    try:
        changed = sync_track_statuses(db)
        if not changed:
            print("All track statuses already match their dates", flush=True)
        for row in changed:
            print(f"  track {row['track_id']}: {row['from']} -> {row['to']}", flush=True)
        return 0
    except Exception as e:
        db.rollback()
        print(f"ERROR: status sync failed: {e!r}", flush=True)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
