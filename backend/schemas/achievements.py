"""Pydantic schemas for achievement evaluation and endpoints."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class UnlockCriteria(BaseModel):
    """Canonical unlock rule derived from a stored criteria payload."""

    model_config = ConfigDict(frozen=True)

    metric_type: str
    required_value: float = Field(ge=0)


class EvaluationOutcome(BaseModel):
    """Result of evaluating one achievement for one user.

    ``status`` is ``"skipped"`` when the rule could not be evaluated
    (bad criteria or a failed store read); skipped outcomes never unlock.
    """

    status: Literal["evaluated", "skipped"]
    should_unlock: bool = False
    metric_type: Optional[str] = None
    current_value: float = 0
    required_value: Optional[float] = None
    reason: Optional[str] = None


class AchievementNotificationPayload(BaseModel):
    """Handed to the notification collaborator on a first unlock."""

    user_id: int
    achievement_id: int
    achievement_name: str
    achievement_description: Optional[str] = None
    points: int = 0


class AchievementWithStatus(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    icon_name: Optional[str] = None
    category: Optional[str] = None
    points: int
    is_unlocked: bool
    unlocked_at: Optional[datetime] = None


class AchievementListResponse(BaseModel):
    """Response for the catalogue endpoint."""

    achievements: list[AchievementWithStatus]
    total: int
    unlocked_count: int


class CheckAchievementsResponse(BaseModel):
    """Response for a batch check."""

    success: bool
    unlocked_achievements: list[str]
    count: int


class SingleAchievementCheckResponse(BaseModel):
    achievement_id: int
    name: str
    unlocked: bool
    newly_unlocked: bool
    current_value: float
    required_value: Optional[float] = None


class StandardizedScoreResponse(BaseModel):
    user_id: int
    score: int = Field(ge=0, le=500)
    scale_max: int = 500
