from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from trackboard.db.base import Base


class Track(Base):
    """
    A scheduled unit of curriculum (one "week").

    `status` is the stored lifecycle tag (upcoming / current / completed).
    Learner-facing views do not trust it: they classify tracks per user
    through the progress engine. Admins can re-derive it from the dates.
    """
    __tablename__ = "tracks"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(32), nullable=False, default="upcoming")

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    tasks = relationship(
        "Task",
        back_populates="track",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Task.id",
    )


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)

    track_id = Column(Integer, ForeignKey("tracks.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    caption = Column(Text, nullable=True)
    deadline = Column(DateTime(timezone=True), nullable=True)
    resources_url = Column(String, nullable=True)

    # Position inside the track; ties (and NULLs) fall back to id order
    task_order = Column(Integer, nullable=True, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    track = relationship("Track", back_populates="tasks")


class AdminTrackAssignment(Base):
    """Tracks an `admin` (not superadmin) is allowed to manage."""
    __tablename__ = "admin_track_assignments"

    id = Column(Integer, primary_key=True, index=True)

    admin_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    track_id = Column(Integer, ForeignKey("tracks.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("admin_user_id", "track_id", name="uq_admin_track"),
    )
