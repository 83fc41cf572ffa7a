import os
import tempfile
import uuid
from pathlib import Path

import pytest

# Point the app at a throwaway SQLite file before anything imports it.
_DB_FILE = Path(tempfile.gettempdir()) / f"trackboard-test-{os.getpid()}.db"
if _DB_FILE.exists():
    _DB_FILE.unlink()
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["SUPERADMIN_EMAILS"] = "root@example.com"

from fastapi.testclient import TestClient  # noqa: E402

from trackboard.main import app  # noqa: E402

PASSWORD = "password123"
SUPERADMIN_EMAIL = "root@example.com"


def login_client(email: str, onboard: bool = True) -> TestClient:
    """Signup (tolerating an existing account), login, and optionally onboard."""
    client = TestClient(app)
    signup = client.post("/auth/signup", data={"email": email, "password": PASSWORD})
    assert signup.status_code in (200, 400)

    login = client.post("/auth/login", data={"email": email, "password": PASSWORD})
    assert login.status_code == 200, login.text
    client.headers["Authorization"] = f"Bearer {login.json()['access_token']}"

    if onboard:
        profile = client.put(
            "/api/me/profile",
            data={"full_name": "Test Learner", "mobile_number": "0123456789"},
        )
        assert profile.status_code == 200, profile.text
    return client


def unique_email(prefix: str = "learner") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}@example.com"


def create_track(admin: TestClient, name: str, start: str, end: str = None, tasks=("A", "B", "C")):
    """Create a track with ordered tasks through the admin API. Returns (track_id, [task ids])."""
    data = {"name": name, "start_date": start}
    if end:
        data["end_date"] = end
    resp = admin.post("/admin/tracks", data=data)
    assert resp.status_code == 200, resp.text
    track_id = resp.json()["track"]["id"]

    task_ids = []
    for order, task_name in enumerate(tasks, start=1):
        resp = admin.post(
            f"/admin/tracks/{track_id}/tasks",
            data={"name": task_name, "task_order": order},
        )
        assert resp.status_code == 200, resp.text
        task_ids.append(resp.json()["task"]["id"])
    return track_id, task_ids


@pytest.fixture
def superadmin() -> TestClient:
    return login_client(SUPERADMIN_EMAIL)


@pytest.fixture
def learner() -> TestClient:
    return login_client(unique_email())
