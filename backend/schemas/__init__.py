# Schemas package

from .achievements import (
    UnlockCriteria,
    EvaluationOutcome,
    AchievementNotificationPayload,
    AchievementWithStatus,
    AchievementListResponse,
    CheckAchievementsResponse,
    SingleAchievementCheckResponse,
    StandardizedScoreResponse,
)
