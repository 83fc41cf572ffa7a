"""
Promote an existing account to superadmin.

Usage:
    python scripts/init_superadmin.py someone@example.com

Run once after the first operator has signed up. Safe to re-run.
"""
import sys
import os

# Add the parent directory to the path so we can import trackboard modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from trackboard.db.session import SessionLocal  # noqa: E402
from trackboard.auth.models import User  # noqa: E402
from trackboard.core.config import ROLE_SUPERADMIN  # noqa: E402
from trackboard.tracks.models import AdminTrackAssignment  # noqa: E402


def init_superadmin(email: str) -> bool:
    db = SessionLocal()

    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            print(f"ERROR: No account with email {email!r}.")
            print("Please sign up first, then run this script.")
            return False

        if user.role == ROLE_SUPERADMIN:
            print(f"User {user.id} ({user.email}) is already a superadmin.")
            return True

        user.role = ROLE_SUPERADMIN
        # Superadmins see every track, assignments are meaningless for them
        db.query(AdminTrackAssignment).filter(
            AdminTrackAssignment.admin_user_id == user.id
        ).delete(synchronize_session=False)
        db.commit()

        print(f"SUCCESS: User {user.id} ({user.email}) is now a superadmin.")
        return True

    except Exception as e:
        db.rollback()
        print(f"ERROR: Failed to promote user: {str(e)}")
        return False
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)

    if not init_superadmin(sys.argv[1]):
        sys.exit(1)
