from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from trackboard.core.config import ENABLE_DEBUG_ROUTES
from trackboard.db.base import Base, engine

# Import models so create_all picks them up
from trackboard.auth.models import User  # noqa: F401
from trackboard.tracks.models import Track, Task, AdminTrackAssignment  # noqa: F401
from trackboard.progress.models import UserTaskProgress, UserTrackProgress  # noqa: F401

from trackboard.admin.routes import router as admin_router
from trackboard.api.routes import router as api_router
from trackboard.auth.routes import router as auth_router


app = FastAPI(title="Trackboard", version="0.1.0")

# Create database tables (still useful in dev; in production prefer Alembic)
Base.metadata.create_all(bind=engine)

# Only expose debug routes when explicitly enabled.
if ENABLE_DEBUG_ROUTES:
    from trackboard.debug_routes import router as debug_router
    app.include_router(debug_router)

app.include_router(auth_router)
app.include_router(api_router)
app.include_router(admin_router)


@app.get("/", include_in_schema=False)
def root():
    return RedirectResponse(url="/docs")


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok"}
