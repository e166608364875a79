"""Computes a user's current value for each achievement metric type."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from models.courses import Competency, Course, CourseEnrollment, CourseModule, ModuleLesson
from models.exams import Exam, ExamResult
from models.progress import COMPLETED_STATUSES, StudentLessonProgress
from services.achievement_criteria import MetricType
from services.standardized_score import (
    DEFAULT_SCORING_WEIGHTS,
    ScoringWeights,
    StandardizedScoreService,
    average_completed_score,
)


logger = logging.getLogger(__name__)

PASSING_SCORE = 60
PERFECT_SCORE = 100
HIGH_SCORE = 90
MASTERY_SCORE = 95
RECENT_RESULTS_WINDOW = 10
STREAK_LOOKBACK_DAYS = 30

# Type names used by the first achievement catalogue.
LEGACY_METRIC_NAMES = {
    "exams_taken": MetricType.EXAMS_COMPLETED.value,
    "total_study_time": MetricType.STUDY_TIME_MINUTES.value,
    "streak_days": MetricType.STUDY_STREAK_DAYS.value,
    # "an exam scored at least value"
    "perfect_exam": MetricType.EXAM_SCORE.value,
}


class MetricEvaluator:
    """Reads a user's activity records and reduces them to one number per metric.

    Every metric is a read-only query; empty inputs evaluate to 0. Store
    errors propagate to the caller, which decides how to degrade.
    """

    def __init__(
        self,
        db: Session,
        user_id: int,
        now: Optional[datetime] = None,
        scoring_weights: ScoringWeights = DEFAULT_SCORING_WEIGHTS,
    ):
        self.db = db
        self.user_id = user_id
        self.now = now or datetime.now()
        self.scoring_weights = scoring_weights
        self._handlers = {
            MetricType.LESSONS_COMPLETED.value: self.lessons_completed,
            MetricType.EXAMS_COMPLETED.value: self.exams_completed,
            MetricType.EXAMS_PASSED.value: self.exams_passed,
            MetricType.PERFECT_SCORE.value: self.perfect_score,
            MetricType.EXAM_SCORE.value: self.exam_score,
            MetricType.HIGH_SCORES_STREAK.value: self.high_scores_streak,
            MetricType.STUDY_TIME_MINUTES.value: self.study_time_minutes,
            MetricType.DAILY_STUDY_TIME.value: self.daily_study_time,
            MetricType.STUDY_STREAK_DAYS.value: self.study_streak_days,
            MetricType.AVERAGE_SCORE.value: self.average_score,
            MetricType.IMPROVEMENT_STREAK.value: self.improvement_streak,
            MetricType.ALL_COMPETENCIES_HIGH.value: self.all_competencies_high,
            MetricType.COURSE_COMPLETED.value: self.course_completed,
            MetricType.DIFFERENT_COMPETENCIES.value: self.different_competencies,
            MetricType.ICFES_SCORE.value: self.icfes_score,
        }

    def evaluate(self, metric_type: str) -> float:
        """Current value for ``metric_type``; unknown types evaluate to 0."""
        name = LEGACY_METRIC_NAMES.get(metric_type, metric_type)
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("Unknown metric type %r for user %s; evaluating to 0", metric_type, self.user_id)
            return 0
        return handler()

    # Lessons and study time

    def lessons_completed(self) -> int:
        return (
            self.db.query(func.count(StudentLessonProgress.id))
            .filter(
                StudentLessonProgress.user_id == self.user_id,
                _lesson_is_completed(),
            )
            .scalar()
        ) or 0

    def study_time_minutes(self) -> int:
        total = (
            self.db.query(func.sum(StudentLessonProgress.total_time_minutes))
            .filter(StudentLessonProgress.user_id == self.user_id)
            .scalar()
        )
        return int(total or 0)

    def daily_study_time(self) -> int:
        start_of_day = self.now.replace(hour=0, minute=0, second=0, microsecond=0)
        total = (
            self.db.query(func.sum(StudentLessonProgress.total_time_minutes))
            .filter(
                StudentLessonProgress.user_id == self.user_id,
                StudentLessonProgress.updated_at >= start_of_day,
                StudentLessonProgress.updated_at < start_of_day + timedelta(days=1),
            )
            .scalar()
        )
        return int(total or 0)

    def study_streak_days(self) -> int:
        """Consecutive days with lesson activity, counting back from today."""
        today = self.now.date()
        window_start = datetime.combine(today - timedelta(days=STREAK_LOOKBACK_DAYS - 1), datetime.min.time())
        rows = (
            self.db.query(StudentLessonProgress.updated_at)
            .filter(
                StudentLessonProgress.user_id == self.user_id,
                StudentLessonProgress.updated_at >= window_start,
            )
            .all()
        )
        active_days = {row.updated_at.date() for row in rows}

        streak = 0
        for offset in range(STREAK_LOOKBACK_DAYS):
            if today - timedelta(days=offset) not in active_days:
                break
            streak += 1
        return streak

    # Exam results

    def exams_completed(self) -> int:
        return self._count_completed_results()

    def exams_passed(self) -> int:
        return self._count_completed_results(ExamResult.score >= PASSING_SCORE)

    def perfect_score(self) -> int:
        return self._count_completed_results(ExamResult.score == PERFECT_SCORE)

    def exam_score(self) -> float:
        best = (
            self.db.query(func.max(ExamResult.score))
            .filter(ExamResult.user_id == self.user_id, ExamResult.completed_at.isnot(None))
            .scalar()
        )
        return best or 0

    def average_score(self) -> int:
        return average_completed_score(self.db, self.user_id)

    def high_scores_streak(self) -> int:
        streak = 0
        for score in self._recent_scores():
            if score < HIGH_SCORE:
                break
            streak += 1
        return streak

    def improvement_streak(self) -> int:
        """Consecutive newest-first pairs where each score beats the one before it."""
        scores = self._recent_scores()
        streak = 0
        for newer, older in zip(scores, scores[1:]):
            if newer <= older:
                break
            streak += 1
        return streak

    def icfes_score(self) -> int:
        return StandardizedScoreService(
            self.db, self.user_id, weights=self.scoring_weights, now=self.now
        ).compute()

    # Competencies and courses

    def all_competencies_high(self) -> int:
        """1 when every competency's completed-exam mean is at least 95."""
        competency_ids = [row.id for row in self.db.query(Competency.id).all()]
        if not competency_ids:
            return 0

        exam_competency = func.coalesce(Exam.competency_id, Course.competency_id)
        rows = (
            self.db.query(exam_competency.label("competency_id"), func.avg(ExamResult.score).label("mean_score"))
            .select_from(ExamResult)
            .join(Exam, ExamResult.exam_id == Exam.id)
            .outerjoin(Course, Exam.course_id == Course.id)
            .filter(ExamResult.user_id == self.user_id, ExamResult.completed_at.isnot(None))
            .group_by(exam_competency)
            .all()
        )
        means = {row.competency_id: row.mean_score for row in rows if row.competency_id is not None}

        for competency_id in competency_ids:
            mean = means.get(competency_id)
            if mean is None or mean < MASTERY_SCORE:
                return 0
        return 1

    def course_completed(self) -> int:
        completed_lessons = {
            row.lesson_id
            for row in self.db.query(StudentLessonProgress.lesson_id)
            .filter(StudentLessonProgress.user_id == self.user_id, _lesson_is_completed())
            .all()
        }

        lessons_by_course: dict = {}
        rows = (
            self.db.query(CourseEnrollment.course_id, ModuleLesson.lesson_id)
            .select_from(CourseEnrollment)
            .outerjoin(CourseModule, CourseModule.course_id == CourseEnrollment.course_id)
            .outerjoin(ModuleLesson, ModuleLesson.module_id == CourseModule.module_id)
            .filter(CourseEnrollment.user_id == self.user_id, CourseEnrollment.is_active.is_(True))
            .all()
        )
        for row in rows:
            lessons = lessons_by_course.setdefault(row.course_id, set())
            if row.lesson_id is not None:
                lessons.add(row.lesson_id)

        # a course without lessons is never "completed"
        return sum(
            1 for lessons in lessons_by_course.values()
            if lessons and lessons <= completed_lessons
        )

    def different_competencies(self) -> int:
        return (
            self.db.query(func.count(func.distinct(Course.competency_id)))
            .select_from(Course)
            .join(CourseEnrollment, CourseEnrollment.course_id == Course.id)
            .filter(
                CourseEnrollment.user_id == self.user_id,
                CourseEnrollment.is_active.is_(True),
                Course.competency_id.isnot(None),
            )
            .scalar()
        ) or 0

    # Helpers

    def _count_completed_results(self, *conditions) -> int:
        return (
            self.db.query(func.count(ExamResult.id))
            .filter(
                ExamResult.user_id == self.user_id,
                ExamResult.completed_at.isnot(None),
                *conditions,
            )
            .scalar()
        ) or 0

    def _recent_scores(self) -> list:
        """Scores of the most recent completed results, newest first."""
        rows = (
            self.db.query(ExamResult.score)
            .filter(ExamResult.user_id == self.user_id, ExamResult.completed_at.isnot(None))
            .order_by(ExamResult.completed_at.desc(), ExamResult.id.desc())
            .limit(RECENT_RESULTS_WINDOW)
            .all()
        )
        return [row.score for row in rows]


def _lesson_is_completed():
    return or_(
        StudentLessonProgress.status.in_(COMPLETED_STATUSES),
        StudentLessonProgress.progress_percentage >= 100,
    )
