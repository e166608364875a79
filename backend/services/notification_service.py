"""Persists in-app notifications for achievement unlocks."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import ACHIEVEMENT_ACTION_URL
from models.notifications import Notification
from schemas.achievements import AchievementNotificationPayload


logger = logging.getLogger(__name__)

ACHIEVEMENT_UNLOCKED = "achievement_unlocked"


class NotificationService:
    """Writes notification rows; delivery to devices happens elsewhere."""

    def __init__(self, db: Session, action_url: str = ACHIEVEMENT_ACTION_URL):
        self.db = db
        self.action_url = action_url

    def notify_achievement_unlocked(self, payload: AchievementNotificationPayload) -> Notification:
        """
        Store an ``achievement_unlocked`` notification for the payload's user.

        Raises SQLAlchemyError after rolling back if the row cannot be saved.
        """
        notification = Notification(
            user_id=payload.user_id,
            type=ACHIEVEMENT_UNLOCKED,
            title="Achievement Unlocked!",
            message=self._build_message(payload),
            metadata_json={
                "achievementId": payload.achievement_id,
                "achievementName": payload.achievement_name,
                "points": payload.points,
            },
            action_url=self.action_url,
        )
        self.db.add(notification)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return notification

    @staticmethod
    def _build_message(payload: AchievementNotificationPayload) -> str:
        if payload.achievement_description:
            return f'You unlocked "{payload.achievement_name}": {payload.achievement_description}'
        return f'You unlocked "{payload.achievement_name}"'
