"""In-app notifications shown to students."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import backref, relationship

from database import Base


class Notification(Base):
    """A notification row; ``type`` is e.g. ``achievement_unlocked``."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(String(64), nullable=False, index=True)
    title = Column(String(256), nullable=False)
    message = Column(String(1024), nullable=False)
    metadata_json = Column(JSON, nullable=True)
    action_url = Column(String(512), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    # Let the database enforce ON DELETE CASCADE without SQLAlchemy issuing
    # "set user_id = NULL" updates on delete.
    user = relationship(
        "User",
        backref=backref("notifications", passive_deletes=True),
    )
