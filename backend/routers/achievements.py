"""Achievement and standardized score endpoints.

Authentication and role checks are applied by the host application in
front of these routes; they only take the user id from the path.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import ACHIEVEMENT_CHECK_RATE_LIMIT
from database import get_db
from schemas.achievements import (
    AchievementListResponse,
    AchievementWithStatus,
    CheckAchievementsResponse,
    SingleAchievementCheckResponse,
    StandardizedScoreResponse,
)
from services.achievement_service import AchievementService
from services.standardized_score import SCALE_MAX, StandardizedScoreService


logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.get("/{user_id}/achievements", response_model=AchievementListResponse)
def list_achievements(user_id: int, db: Session = Depends(get_db)):
    """Get every active achievement with the user's unlock status."""
    service = AchievementService(db, user_id)
    achievements = [AchievementWithStatus(**a) for a in service.list_with_status()]

    return AchievementListResponse(
        achievements=achievements,
        total=len(achievements),
        unlocked_count=sum(1 for a in achievements if a.is_unlocked),
    )


@router.post("/{user_id}/achievements/check", response_model=CheckAchievementsResponse)
@limiter.limit(ACHIEVEMENT_CHECK_RATE_LIMIT)
def check_achievements(request: Request, user_id: int, db: Session = Depends(get_db)):
    """
    Evaluate all locked achievements and unlock the ones now earned.

    Achievements that cannot be evaluated stay locked; the response lists
    only achievements unlocked by this request.
    """
    unlocked = AchievementService(db, user_id).check_and_unlock_all()
    logger.info("Achievement check for user %s unlocked %d", user_id, len(unlocked))

    return CheckAchievementsResponse(
        success=True,
        unlocked_achievements=unlocked,
        count=len(unlocked),
    )


@router.get(
    "/{user_id}/achievements/{achievement_id}/check",
    response_model=SingleAchievementCheckResponse,
)
def check_single_achievement(user_id: int, achievement_id: int, db: Session = Depends(get_db)):
    """Evaluate one achievement and unlock it if the user now qualifies."""
    result = AchievementService(db, user_id).check_achievement(achievement_id)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Achievement not found",
        )
    return SingleAchievementCheckResponse(**result)


@router.get("/{user_id}/standardized-score", response_model=StandardizedScoreResponse)
def get_standardized_score(user_id: int, db: Session = Depends(get_db)):
    """Get the user's weighted 0-500 standardized score."""
    try:
        score = StandardizedScoreService(db, user_id).compute()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Standardized score failed for user %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily unavailable. Please try again later.",
        )

    return StandardizedScoreResponse(user_id=user_id, score=score, scale_max=SCALE_MAX)
