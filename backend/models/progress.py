"""Per-user lesson progress records."""

from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, backref

from database import Base


COMPLETED_STATUSES = ("completed", "completado")


class StudentLessonProgress(Base):
    """Tracks a student's progress through one lesson plus time spent on it."""

    __tablename__ = "student_lesson_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_user_lesson_progress"),
        Index("ix_student_lesson_progress_user_updated", "user_id", "updated_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lesson_id = Column(
        Integer,
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # "not_started", "in_progress", "completed"; older rows use "completado"
    status = Column(String(32), nullable=False, default="not_started")
    progress_percentage = Column(Float, nullable=False, default=0)
    total_time_minutes = Column(Integer, nullable=False, default=0)
    completed_at = Column(DateTime, nullable=True)
    updated_at = Column(
        DateTime,
        default=datetime.now,
        onupdate=datetime.now,
        nullable=False,
    )

    lesson = relationship("Lesson")
    user = relationship("User", backref=backref("lesson_progress", passive_deletes=True))
