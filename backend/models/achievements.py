"""Achievements catalog and user unlocks."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import backref, relationship

from database import Base


class Achievement(Base):
    """Defines an unlockable achievement with flexible JSON criteria.

    ``criteria_json`` has been written in several shapes over time
    (``{"type", "value"}``, camelCase legacy keys, JSON text); it is only
    interpreted through ``CriteriaNormalizer``.
    """

    __tablename__ = "achievements"
    __table_args__ = (
        UniqueConstraint("name", name="uq_achievements_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), nullable=False, index=True)
    description = Column(String(512), nullable=True)
    icon_name = Column(String(64), nullable=True)
    category = Column(String(64), nullable=True)
    points = Column(Integer, nullable=False, default=0)
    criteria_json = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    user_unlocks = relationship("UserAchievement", back_populates="achievement")


class UserAchievement(Base):
    """Join table recording when a user unlocked an achievement.

    Rows are write-once; the unique pair is what makes concurrent unlocks safe.
    """

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    achievement_id = Column(
        Integer,
        ForeignKey("achievements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    unlocked_at = Column(DateTime, default=datetime.now, nullable=False)

    user = relationship("User", backref=backref("achievements", passive_deletes=True))
    achievement = relationship("Achievement", back_populates="user_unlocks")
