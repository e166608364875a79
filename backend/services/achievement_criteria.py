"""Normalization of stored achievement criteria into a canonical rule."""

import enum
import json
import logging
import math
from types import MappingProxyType
from typing import Any, Mapping, Optional

from schemas.achievements import UnlockCriteria


logger = logging.getLogger(__name__)


class MetricType(str, enum.Enum):
    """Metric types the evaluator knows how to compute."""

    LESSONS_COMPLETED = "lessons_completed"
    EXAMS_COMPLETED = "exams_completed"
    EXAMS_PASSED = "exams_passed"
    PERFECT_SCORE = "perfect_score"
    EXAM_SCORE = "exam_score"
    HIGH_SCORES_STREAK = "high_scores_streak"
    STUDY_TIME_MINUTES = "study_time_minutes"
    DAILY_STUDY_TIME = "daily_study_time"
    STUDY_STREAK_DAYS = "study_streak_days"
    AVERAGE_SCORE = "average_score"
    IMPROVEMENT_STREAK = "improvement_streak"
    ALL_COMPETENCIES_HIGH = "all_competencies_high"
    COURSE_COMPLETED = "course_completed"
    DIFFERENT_COMPETENCIES = "different_competencies"
    ICFES_SCORE = "icfes_score"


_KNOWN_METRICS = frozenset(m.value for m in MetricType)


# Legacy camelCase criteria keys -> canonical metric type.
# Order matters: the first key present in a payload wins.
DEFAULT_CRITERIA_ALIASES: Mapping[str, str] = MappingProxyType({
    "lessonsCompleted": MetricType.LESSONS_COMPLETED.value,
    "examsTaken": MetricType.EXAMS_COMPLETED.value,
    "examsPassed": MetricType.EXAMS_PASSED.value,
    "examScore": MetricType.EXAM_SCORE.value,
    "perfectScore": MetricType.PERFECT_SCORE.value,
    "perfectExam": MetricType.PERFECT_SCORE.value,
    "studyTimeMinutes": MetricType.STUDY_TIME_MINUTES.value,
    "totalStudyTime": MetricType.STUDY_TIME_MINUTES.value,
    "studyStreak": MetricType.STUDY_STREAK_DAYS.value,
    "streakDays": MetricType.STUDY_STREAK_DAYS.value,
    "dailyStudyTime": MetricType.DAILY_STUDY_TIME.value,
    "averageScore": MetricType.AVERAGE_SCORE.value,
    "courseCompleted": MetricType.COURSE_COMPLETED.value,
})


class CriteriaFormatError(ValueError):
    """Raised when a criteria payload cannot be turned into a rule."""


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a threshold
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_required_value(value: Any) -> Optional[float]:
    """Coerce a threshold to float, or None when it is not a usable number."""
    if _is_number(value):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


class CriteriaNormalizer:
    """Turns any stored criteria payload into an ``UnlockCriteria``.

    Resolution order:
    1. ``{"type": ..., "value": ...}`` is taken verbatim.
    2. The first legacy alias key present (see ``DEFAULT_CRITERIA_ALIASES``).
    3. The first numeric field; its lower-cased key becomes the metric type
       even when no evaluator implements it.
    Anything else raises ``CriteriaFormatError``.
    """

    def __init__(self, aliases: Optional[Mapping[str, str]] = None):
        self.aliases = MappingProxyType(dict(aliases)) if aliases is not None else DEFAULT_CRITERIA_ALIASES

    def normalize(self, payload: Any) -> UnlockCriteria:
        data = self._decode(payload)

        if "type" in data and "value" in data:
            required_value = _as_required_value(data["value"])
            if required_value is None:
                raise CriteriaFormatError(f"Invalid criteria value: {data['value']!r}")
            return UnlockCriteria(metric_type=str(data["type"]), required_value=required_value)

        for alias, metric_type in self.aliases.items():
            if alias not in data:
                continue
            required_value = _as_required_value(data[alias])
            if required_value is not None:
                return UnlockCriteria(metric_type=metric_type, required_value=required_value)

        for key, value in data.items():
            if not _is_number(value):
                continue
            required_value = _as_required_value(value)
            if required_value is None:
                continue
            metric_type = str(key).lower()
            if metric_type not in _KNOWN_METRICS:
                logger.warning("Criteria key %r does not name a known metric type", key)
            return UnlockCriteria(metric_type=metric_type, required_value=required_value)

        raise CriteriaFormatError(f"No numeric threshold in criteria: {data!r}")

    @staticmethod
    def _decode(payload: Any) -> dict:
        """Accept a mapping or its JSON text form (legacy text column)."""
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                raise CriteriaFormatError(f"Criteria is not valid JSON: {e}") from e
        if not isinstance(payload, Mapping):
            raise CriteriaFormatError(f"Criteria must be an object, got {type(payload).__name__}")
        return dict(payload)

