"""Achievement evaluation and idempotent unlocking."""

import logging
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models.achievements import Achievement, UserAchievement
from schemas.achievements import AchievementNotificationPayload, EvaluationOutcome
from services.achievement_criteria import CriteriaFormatError, CriteriaNormalizer
from services.metric_evaluator import MetricEvaluator
from services.notification_service import NotificationService
from services.standardized_score import DEFAULT_SCORING_WEIGHTS, ScoringWeights


logger = logging.getLogger(__name__)


class AchievementNotifier(Protocol):
    def notify_achievement_unlocked(self, payload: AchievementNotificationPayload): ...


class AchievementService:
    """Evaluates a user's achievements and records first-time unlocks.

    A definition is unlocked at most once per user. The existence check
    runs before every insert, and the unique (user_id, achievement_id)
    constraint covers concurrent runs: a duplicate insert is treated as
    "already unlocked". Nothing here raises to the caller of
    ``check_and_unlock_all``; achievements that cannot be evaluated stay locked.
    """

    def __init__(
        self,
        db: Session,
        user_id: int,
        now: Optional[datetime] = None,
        normalizer: Optional[CriteriaNormalizer] = None,
        notifier: Optional[AchievementNotifier] = None,
        scoring_weights: ScoringWeights = DEFAULT_SCORING_WEIGHTS,
    ):
        self.db = db
        self.user_id = user_id
        self.normalizer = normalizer or CriteriaNormalizer()
        self.notifier = notifier if notifier is not None else NotificationService(db)
        self.metrics = MetricEvaluator(db, user_id, now=now, scoring_weights=scoring_weights)

    def evaluate(self, achievement: Achievement) -> EvaluationOutcome:
        """Decide whether ``achievement`` should unlock, without writing anything."""
        try:
            criteria = self.normalizer.normalize(achievement.criteria_json)
        except CriteriaFormatError as e:
            logger.warning("Skipping achievement %s: %s", achievement.id, e)
            return EvaluationOutcome(status="skipped", reason="invalid_criteria")

        try:
            current_value = self.metrics.evaluate(criteria.metric_type)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "Metric %r failed for user %s, achievement %s",
                criteria.metric_type, self.user_id, achievement.id,
            )
            return EvaluationOutcome(
                status="skipped",
                metric_type=criteria.metric_type,
                required_value=criteria.required_value,
                reason="store_error",
            )

        return EvaluationOutcome(
            status="evaluated",
            should_unlock=current_value >= criteria.required_value,
            metric_type=criteria.metric_type,
            current_value=current_value,
            required_value=criteria.required_value,
        )

    def unlock(self, achievement: Achievement) -> bool:
        """Record the unlock; True only when this call created the row."""
        if self.is_unlocked(achievement.id):
            return False

        self.db.add(UserAchievement(user_id=self.user_id, achievement_id=achievement.id))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Achievement %s already unlocked for user %s", achievement.id, self.user_id)
            return False

        logger.info("Achievement unlocked: %s for user %s", achievement.name, self.user_id)
        self._notify(achievement)
        return True

    def check_and_unlock_all(self) -> list[str]:
        """Evaluate every active, still-locked achievement.

        Returns the names of achievements unlocked by this call, in catalogue order.
        """
        try:
            achievements = (
                self.db.query(Achievement)
                .filter(Achievement.is_active.is_(True))
                .order_by(Achievement.id)
                .all()
            )
            unlocked_ids = self.get_unlocked_ids()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Could not load achievements for user %s", self.user_id)
            return []

        newly_unlocked = []
        for achievement in achievements:
            if achievement.id in unlocked_ids:
                continue
            try:
                outcome = self.evaluate(achievement)
                if outcome.should_unlock and self.unlock(achievement):
                    newly_unlocked.append(achievement.name)
            except Exception:
                self.db.rollback()
                logger.exception("Achievement %s check failed for user %s", achievement.id, self.user_id)
        return newly_unlocked

    def check_achievement(self, achievement_id: int) -> Optional[dict]:
        """Evaluate a single active achievement and unlock it if due.

        Returns None when no active achievement has ``achievement_id``.
        """
        achievement = (
            self.db.query(Achievement)
            .filter(Achievement.id == achievement_id, Achievement.is_active.is_(True))
            .first()
        )
        if achievement is None:
            return None

        outcome = self.evaluate(achievement)
        already_unlocked = self.is_unlocked(achievement.id)
        newly_unlocked = False
        if not already_unlocked and outcome.should_unlock:
            newly_unlocked = self.unlock(achievement)

        return {
            "achievement_id": achievement.id,
            "name": achievement.name,
            "unlocked": already_unlocked or newly_unlocked or self.is_unlocked(achievement.id),
            "newly_unlocked": newly_unlocked,
            "current_value": outcome.current_value,
            "required_value": outcome.required_value,
        }

    def list_with_status(self) -> list[dict]:
        """Active achievements ordered by points, with the user's unlock state."""
        achievements = (
            self.db.query(Achievement)
            .filter(Achievement.is_active.is_(True))
            .order_by(Achievement.points.asc(), Achievement.id.asc())
            .all()
        )
        unlocked_at = {
            row.achievement_id: row.unlocked_at
            for row in self.db.query(UserAchievement.achievement_id, UserAchievement.unlocked_at)
            .filter(UserAchievement.user_id == self.user_id)
            .all()
        }
        return [
            {
                "id": a.id,
                "name": a.name,
                "description": a.description,
                "icon_name": a.icon_name,
                "category": a.category,
                "points": a.points,
                "is_unlocked": a.id in unlocked_at,
                "unlocked_at": unlocked_at.get(a.id),
            }
            for a in achievements
        ]

    def get_unlocked_ids(self) -> set:
        rows = (
            self.db.query(UserAchievement.achievement_id)
            .filter(UserAchievement.user_id == self.user_id)
            .all()
        )
        return {row.achievement_id for row in rows}

    def is_unlocked(self, achievement_id: int) -> bool:
        return (
            self.db.query(UserAchievement.id)
            .filter(
                UserAchievement.user_id == self.user_id,
                UserAchievement.achievement_id == achievement_id,
            )
            .first()
        ) is not None

    def _notify(self, achievement: Achievement) -> None:
        payload = AchievementNotificationPayload(
            user_id=self.user_id,
            achievement_id=achievement.id,
            achievement_name=achievement.name,
            achievement_description=achievement.description,
            points=achievement.points or 0,
        )
        try:
            self.notifier.notify_achievement_unlocked(payload)
        except Exception:
            # The unlock is already committed; a lost notification is acceptable.
            self.db.rollback()
            logger.exception("Achievement notification failed for user %s", self.user_id)


def check_and_unlock_all(db: Session, user_id: int) -> list[str]:
    """Names of achievements newly unlocked for ``user_id``."""
    return AchievementService(db, user_id).check_and_unlock_all()
