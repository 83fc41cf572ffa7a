from datetime import datetime, timedelta, timezone
from typing import Optional
import hashlib
import hmac
import os

from jose import jwt, JWTError

from trackboard.core.config import ACCESS_TOKEN_EXPIRE_MINUTES, IS_PRODUCTION

# ======================
# PASSWORD HASHING (PBKDF2)
# ======================

_PBKDF2_ROUNDS = 100_000


def hash_password(password: str) -> str:
    salt = os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, _PBKDF2_ROUNDS)
    return salt.hex() + ":" + digest.hex()


def verify_password(password: str, stored: str) -> bool:
    try:
        salt_hex, hash_hex = stored.split(":")
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode(),
        bytes.fromhex(salt_hex),
        _PBKDF2_ROUNDS,
    )
    return hmac.compare_digest(digest, bytes.fromhex(hash_hex))


# ======================
# SESSION TOKENS (JWT)
# ======================

SECRET_KEY = os.getenv("SECRET_KEY", os.getenv("JWT_SECRET_KEY", ""))
if not SECRET_KEY:
    if IS_PRODUCTION:
        raise RuntimeError("SECRET_KEY or JWT_SECRET_KEY env var is required in production")
    SECRET_KEY = "dev-secret-key-CHANGE-IN-PRODUCTION-trackboard-0123456789"
    print("[AUTH] WARNING: Using default SECRET_KEY for development. DO NOT USE IN PRODUCTION!", flush=True)

ALGORITHM = "HS256"


def create_session_token(user_id: int, role: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    # python-jose rejects non-string "sub" claims
    claims = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def decode_session_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        print("[AUTH] Session token expired", flush=True)
        return None
    except JWTError as e:
        print(f"[AUTH] Session token rejected: {type(e).__name__}", flush=True)
        return None
