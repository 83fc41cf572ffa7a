"""
Per-user progress rows for tasks and tracks.

A missing row means "not started". Rows are created on the first status
change and updated in place afterwards; unmarking a task deletes its row.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from trackboard.db.base import Base


class UserTaskProgress(Base):
    __tablename__ = "user_task_progress"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)

    # "in-progress" | "completed"
    status = Column(String(32), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)  # set iff completed

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "task_id", name="uq_user_task"),
    )


class UserTrackProgress(Base):
    """Explicit track completion. Only written once every task is completed."""
    __tablename__ = "user_track_progress"

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    track_id = Column(Integer, ForeignKey("tracks.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(32), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "track_id", name="uq_user_track"),
    )
