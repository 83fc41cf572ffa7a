from fastapi import APIRouter, Depends, HTTPException, Form
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from trackboard.auth.models import User
from trackboard.core.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES, IS_PRODUCTION, ROLE_SUPERADMIN, ROLE_USER, SUPERADMIN_EMAILS,
)
from trackboard.core.security import hash_password, verify_password, create_session_token
from trackboard.db.session import get_db

router = APIRouter(prefix="/auth", tags=["auth"])


# =========================
# SIGNUP
# =========================
@router.post("/signup")
def signup(
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    email = email.strip().lower()
    if "@" not in email:
        raise HTTPException(status_code=400, detail="Invalid email")
    if len(password) < 8:
        raise HTTPException(status_code=400, detail="Password must be at least 8 characters")

    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    role = ROLE_SUPERADMIN if email in SUPERADMIN_EMAILS else ROLE_USER
    user = User(
        email=email,
        password_hash=hash_password(password),
        role=role,
    )

    db.add(user)
    db.commit()
    db.refresh(user)

    print(f"[AUTH] signup user={user.id} role={role}", flush=True)
    return {"message": "Signup successful", "user_id": user.id}


# =========================
# LOGIN / LOGOUT
# =========================
@router.post("/login")
def login(
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.email == email.strip().lower()).first()

    if not user or not verify_password(password, user.password_hash):
        print("[AUTH] Invalid credentials", flush=True)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_session_token(user.id, user.role)
    print(f"[AUTH] Login successful user={user.id}", flush=True)

    response = JSONResponse({
        "access_token": token,
        "profile_complete": user.is_profile_complete,
    })
    response.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        samesite="lax",
        secure=IS_PRODUCTION,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return response


@router.post("/logout")
def logout():
    response = JSONResponse({"message": "Logged out"})
    response.delete_cookie("access_token")
    return response
