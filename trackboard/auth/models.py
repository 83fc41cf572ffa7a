import re

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from trackboard.db.base import Base

MOBILE_RE = re.compile(r"\d{10}")
MIN_FULL_NAME_LENGTH = 2


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)

    # Profile, filled in during onboarding
    full_name = Column(String(255), nullable=True)
    mobile_number = Column(String(20), nullable=True)
    avatar_url = Column(String, nullable=True)

    # "user" (default), "admin" (assigned tracks only), "superadmin"
    role = Column(String(32), default="user", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Updated on every authenticated request
    last_active = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_profile_complete(self) -> bool:
        """Same rules PUT /api/me/profile enforces."""
        name = (self.full_name or "").strip()
        return len(name) >= MIN_FULL_NAME_LENGTH and bool(MOBILE_RE.fullmatch(self.mobile_number or ""))
