from fastapi import APIRouter, Depends
from pathlib import Path

from trackboard.auth.models import User
from trackboard.core.deps import get_superadmin
from trackboard.db.base import engine
from trackboard.progress.notifier import notifier

router = APIRouter(prefix="/debug", tags=["debug"])


@router.get("/diagnostics/db")
def db_diagnostics(user: User = Depends(get_superadmin)):
    """
    Lightweight DB diagnostics for debugging deployments.

    Mounted only when ENABLE_DEBUG_ROUTES=1. Never includes the password.
    """
    url = engine.url
    backend = url.get_backend_name()
    info = {
        "backend": backend,
        "url": url.render_as_string(hide_password=True),
    }

    if backend == "sqlite":
        db_path = Path(url.database or "").resolve()
        exists = db_path.exists()
        info.update(
            {
                "sqlite_path": str(db_path),
                "sqlite_exists": exists,
                "sqlite_size_bytes": db_path.stat().st_size if exists else 0,
            }
        )
    else:
        info.update({"database": url.database, "host": url.host, "port": url.port})

    return info


@router.get("/diagnostics/changes")
def change_diagnostics(user: User = Depends(get_superadmin)):
    global_version, user_version = notifier.version_for(user.id)
    return {"global_version": global_version, "own_user_version": user_version}
