from datetime import datetime, timezone

from fastapi import Request, Depends, HTTPException
from sqlalchemy.orm import Session

from trackboard.auth.models import User
from trackboard.core.config import ADMIN_ROLES, ROLE_SUPERADMIN
from trackboard.core.security import decode_session_token
from trackboard.db.session import get_db


def _extract_token(request: Request) -> str | None:
    token = request.cookies.get("access_token")
    if not token:
        auth_header = request.headers.get("authorization") or ""
        if auth_header.lower().startswith("bearer "):
            token = auth_header[7:].strip()
    # Cookies may carry "Bearer <token>" too
    if token and token.lower().startswith("bearer "):
        token = token[7:].strip()
    return token or None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
) -> User:
    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = decode_session_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        print(f"[AUTH] reject reason=bad_subject path={request.url.path}", flush=True)
        raise HTTPException(status_code=401, detail="Invalid token payload")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        print(f"[AUTH] reject reason=user_not_found user={user_id} path={request.url.path}", flush=True)
        raise HTTPException(status_code=401, detail="User not found")

    # Keep last_active fresh so admins can see who is around
    try:
        user.last_active = datetime.now(timezone.utc)
        db.commit()
    except Exception as exc:
        db.rollback()
        print(f"[AUTH] last_active update failed user={user_id}: {exc!r}", flush=True)

    return user


def get_onboarded_user(
    user: User = Depends(get_current_user)
) -> User:
    """Progress views stay closed until the profile (name + mobile) is filled in."""
    if not user.is_profile_complete:
        raise HTTPException(status_code=403, detail="Profile incomplete")
    return user


def get_admin(
    user: User = Depends(get_current_user)
) -> User:
    """Dependency to ensure the user is an admin or superadmin."""
    if user.role not in ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def get_superadmin(
    user: User = Depends(get_current_user)
) -> User:
    if user.role != ROLE_SUPERADMIN:
        raise HTTPException(status_code=403, detail="Only a superadmin can perform this action")
    return user
