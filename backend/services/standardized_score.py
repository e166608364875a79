"""Weighted standardized exam score on the 0-500 scale."""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, aliased

from models.courses import Competency, Course, Lesson
from models.exams import Exam, ExamQuestionAnswer, ExamResult, Question


logger = logging.getLogger(__name__)

SCALE_MAX = 500
SUMMATIVE_EXAM_TYPES = ("simulacro_completo", "diagnostico")


@dataclass(frozen=True)
class ScoringWeights:
    """Lookup tables for the standardized score.

    ``recency_tiers`` and ``time_tiers`` are ``(upper_bound, factor)`` pairs
    scanned in order; recency bounds are inclusive days, time bounds are
    exclusive seconds.
    """

    difficulty: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({
        "facil": 0.7,
        "intermedio": 1.0,
        "dificil": 1.5,
    }))
    default_difficulty: float = 1.0
    competency: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({
        "matematicas": 0.25,
        "razonamiento_cuantitativo": 0.25,
        "lectura_critica": 0.25,
        "ciencias_naturales": 0.20,
        "sociales_y_ciudadanas": 0.15,
        "competencias_ciudadanas": 0.15,
        "sociales": 0.15,
        "ingles": 0.15,
    }))
    default_competency: float = 0.20
    recency_tiers: tuple = ((30, 1.0), (60, 0.9), (90, 0.8), (120, 0.7), (180, 0.6), (365, 0.5))
    oldest_recency: float = 0.3
    time_tiers: tuple = ((5, 0.8), (30, 1.0))
    slowest_time: float = 1.1


DEFAULT_SCORING_WEIGHTS = ScoringWeights()


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def to_scale(percentage: float) -> int:
    """Map a 0-100 percentage onto the 0-500 scale, clamped."""
    return round_half_up(max(0.0, min(float(SCALE_MAX), percentage * 5)))


def competency_key(name: str) -> str:
    """``"Lectura Critica"`` -> ``"lectura_critica"``."""
    return re.sub(r"\s+", "_", name.strip().lower())


def difficulty_weight(difficulty: Optional[str], weights: ScoringWeights = DEFAULT_SCORING_WEIGHTS) -> float:
    return weights.difficulty.get(difficulty or "", weights.default_difficulty)


def time_factor(time_spent_seconds: Optional[float], weights: ScoringWeights = DEFAULT_SCORING_WEIGHTS) -> float:
    if time_spent_seconds is None:
        return 1.0
    for upper_bound, factor in weights.time_tiers:
        if time_spent_seconds < upper_bound:
            return factor
    return weights.slowest_time


def recency_factor(
    completed_at: Optional[datetime],
    now: datetime,
    weights: ScoringWeights = DEFAULT_SCORING_WEIGHTS,
) -> float:
    if completed_at is None:
        return 1.0
    days = (now - completed_at).total_seconds() / 86400
    for max_days, factor in weights.recency_tiers:
        if days <= max_days:
            return factor
    return weights.oldest_recency


def weighted_answer_score(
    is_correct: bool,
    difficulty: Optional[str],
    time_spent_seconds: Optional[float],
    completed_at: Optional[datetime],
    now: datetime,
    weights: ScoringWeights = DEFAULT_SCORING_WEIGHTS,
) -> tuple[float, float]:
    """Return ``(question_score, question_max_score)`` for one answer."""
    ceiling = (
        difficulty_weight(difficulty, weights)
        * time_factor(time_spent_seconds, weights)
        * recency_factor(completed_at, now, weights)
    )
    base = 1 if is_correct else 0
    return base * ceiling, ceiling


def average_completed_score(db: Session, user_id: int) -> int:
    """Mean score over completed exam results, rounded; 0 when there are none."""
    average = (
        db.query(func.avg(ExamResult.score))
        .filter(ExamResult.user_id == user_id, ExamResult.completed_at.isnot(None))
        .scalar()
    )
    if average is None:
        return 0
    return round_half_up(float(average))


class StandardizedScoreService:
    """Computes a user's standardized score from per-question answers.

    Only answers to summative exams count. Each answer is weighted by
    difficulty, response time and recency, summed per competency, turned
    into a percentage, and the percentages are combined with competency
    weights before scaling to 0-500. Users without qualifying answers get
    their average exam score scaled instead.
    """

    def __init__(
        self,
        db: Session,
        user_id: int,
        weights: ScoringWeights = DEFAULT_SCORING_WEIGHTS,
        now: Optional[datetime] = None,
    ):
        self.db = db
        self.user_id = user_id
        self.weights = weights
        self.now = now or datetime.now()

    def compute(self) -> int:
        totals = self.get_competency_totals()
        if not totals:
            average = average_completed_score(self.db, self.user_id)
            logger.debug("User %s has no qualifying answers; using average score %s", self.user_id, average)
            return to_scale(average)
        return self.aggregate(totals)

    def get_competency_totals(self) -> dict:
        """Sum weighted obtained/max scores per competency.

        Returns ``{competency_id: {"key", "obtained", "max_possible"}}``.
        """
        totals: dict = {}
        for row in self._load_answers():
            competency_id, name = self._resolve_competency(row)
            if competency_id is None:
                continue

            obtained, ceiling = weighted_answer_score(
                is_correct=bool(row.is_correct),
                difficulty=row.difficulty_level,
                time_spent_seconds=row.time_spent_seconds,
                completed_at=row.completed_at,
                now=self.now,
                weights=self.weights,
            )
            entry = totals.setdefault(
                competency_id,
                {"key": competency_key(name), "obtained": 0.0, "max_possible": 0.0},
            )
            entry["obtained"] += obtained
            entry["max_possible"] += ceiling
        return totals

    def aggregate(self, totals: dict) -> int:
        weighted_sum = 0.0
        total_weight = 0.0
        for entry in totals.values():
            if entry["max_possible"] == 0:
                continue
            percentage = 100 * entry["obtained"] / entry["max_possible"]
            weight = self.weights.competency.get(entry["key"], self.weights.default_competency)
            weighted_sum += percentage * weight
            total_weight += weight

        if total_weight == 0:
            return 0
        return to_scale(weighted_sum / total_weight)

    def _load_answers(self):
        lesson_competency = aliased(Competency)
        exam_competency = aliased(Competency)
        course_competency = aliased(Competency)

        return (
            self.db.query(
                ExamQuestionAnswer.is_correct,
                ExamQuestionAnswer.time_spent_seconds,
                Question.difficulty_level,
                ExamResult.completed_at,
                lesson_competency.id.label("lesson_competency_id"),
                lesson_competency.name.label("lesson_competency_name"),
                exam_competency.id.label("exam_competency_id"),
                exam_competency.name.label("exam_competency_name"),
                course_competency.id.label("course_competency_id"),
                course_competency.name.label("course_competency_name"),
            )
            .select_from(ExamQuestionAnswer)
            .join(ExamResult, ExamQuestionAnswer.exam_result_id == ExamResult.id)
            .join(Exam, ExamResult.exam_id == Exam.id)
            .join(Question, ExamQuestionAnswer.question_id == Question.id)
            .outerjoin(Lesson, Question.lesson_id == Lesson.id)
            .outerjoin(lesson_competency, Lesson.competency_id == lesson_competency.id)
            .outerjoin(exam_competency, Exam.competency_id == exam_competency.id)
            .outerjoin(Course, Exam.course_id == Course.id)
            .outerjoin(course_competency, Course.competency_id == course_competency.id)
            .filter(
                ExamQuestionAnswer.user_id == self.user_id,
                Exam.exam_type.in_(SUMMATIVE_EXAM_TYPES),
                Exam.is_icfes_exam.is_(True),
            )
            .order_by(ExamQuestionAnswer.id)
            .all()
        )

    @staticmethod
    def _resolve_competency(row) -> tuple:
        # lesson first, then the exam, then the exam's course
        if row.lesson_competency_id is not None:
            return row.lesson_competency_id, row.lesson_competency_name
        if row.exam_competency_id is not None:
            return row.exam_competency_id, row.exam_competency_name
        if row.course_competency_id is not None:
            return row.course_competency_id, row.course_competency_name
        return None, None


def compute_standardized_score(db: Session, user_id: int, now: Optional[datetime] = None) -> int:
    """Standardized 0-500 score for ``user_id``."""
    return StandardizedScoreService(db, user_id, now=now).compute()
