"""Tests for the standardized 0-500 score."""

from types import MappingProxyType

import pytest
from sqlalchemy.orm import Session

from models.user import User
from services.standardized_score import (
    ScoringWeights,
    StandardizedScoreService,
    competency_key,
    compute_standardized_score,
    difficulty_weight,
    recency_factor,
    time_factor,
    to_scale,
    weighted_answer_score,
)
from tests.fixtures.activity_data import (
    NOW,
    add_answer,
    add_exam_result,
    days_ago,
    make_competency,
    make_exam,
    make_lesson,
)


class TestAnswerFactors:
    """Test the per-answer weighting factors."""

    @pytest.mark.parametrize(
        "difficulty,expected",
        [("facil", 0.7), ("intermedio", 1.0), ("dificil", 1.5), ("experto", 1.0), (None, 1.0)],
    )
    def test_difficulty_weight(self, difficulty, expected):
        assert difficulty_weight(difficulty) == expected

    @pytest.mark.parametrize(
        "seconds,expected",
        [(None, 1.0), (0, 0.8), (4.9, 0.8), (5, 1.0), (29, 1.0), (30, 1.1), (45, 1.1)],
    )
    def test_time_factor(self, seconds, expected):
        assert time_factor(seconds) == expected

    @pytest.mark.parametrize(
        "days,expected",
        [
            (0, 1.0),
            (10, 1.0),
            (30, 1.0),
            (31, 0.9),
            (60, 0.9),
            (75, 0.8),
            (100, 0.7),
            (150, 0.6),
            (200, 0.5),
            (365, 0.5),
            (400, 0.3),
        ],
    )
    def test_recency_tiers(self, days, expected):
        assert recency_factor(days_ago(days), NOW) == expected

    def test_missing_completion_date_has_full_recency(self):
        assert recency_factor(None, NOW) == 1.0

    def test_recent_answer_weighs_at_least_as_much_as_old_one(self):
        recent = weighted_answer_score(True, "intermedio", 12, days_ago(10), NOW)
        old = weighted_answer_score(True, "intermedio", 12, days_ago(200), NOW)

        assert recent[0] >= old[0]
        assert recent[1] >= old[1]

    def test_correct_hard_slow_recent_answer(self):
        """A correct 'dificil' answer in 45s from 10 days ago scores 1.5 * 1.1 * 1.0."""
        score, ceiling = weighted_answer_score(True, "dificil", 45, days_ago(10), NOW)

        assert score == pytest.approx(1.65)
        assert ceiling == pytest.approx(1.65)

    def test_wrong_answer_keeps_its_ceiling(self):
        score, ceiling = weighted_answer_score(False, "facil", 3, days_ago(45), NOW)

        assert score == 0
        assert ceiling == pytest.approx(0.7 * 0.8 * 0.9)


class TestScaleHelpers:
    """Test scaling and key helpers."""

    def test_to_scale_clamps(self):
        assert to_scale(120) == 500
        assert to_scale(-5) == 0
        assert to_scale(100) == 500

    def test_to_scale_rounds_half_up(self):
        assert to_scale(20.5) == 103

    def test_competency_key(self):
        assert competency_key("Lectura  Critica") == "lectura_critica"
        assert competency_key(" Sociales y Ciudadanas ") == "sociales_y_ciudadanas"


@pytest.mark.integration
class TestStandardizedScore:
    """Test score computation against stored answers."""

    def _summative_result(self, db: Session, user: User, competency_name: str, completed_days_ago: float = 10):
        competency = make_competency(db, competency_name)
        exam = make_exam(db, competency=competency)
        return add_exam_result(db, user.id, 0, completed_at=days_ago(completed_days_ago), exam=exam)

    def test_no_activity_scores_zero(self, db_session: Session, test_user: User):
        assert compute_standardized_score(db_session, test_user.id, now=NOW) == 0

    def test_single_correct_answer_scores_maximum(self, db_session: Session, test_user: User):
        result = self._summative_result(db_session, test_user, "Matematicas")
        add_answer(db_session, test_user.id, result, True, difficulty="dificil", time_spent_seconds=45)

        assert compute_standardized_score(db_session, test_user.id, now=NOW) == 500

    def test_competency_totals(self, db_session: Session, test_user: User):
        result = self._summative_result(db_session, test_user, "Matematicas")
        add_answer(db_session, test_user.id, result, True, difficulty="dificil", time_spent_seconds=45)
        add_answer(db_session, test_user.id, result, False, difficulty="facil", time_spent_seconds=10)

        totals = StandardizedScoreService(db_session, test_user.id, now=NOW).get_competency_totals()

        (entry,) = totals.values()
        assert entry["key"] == "matematicas"
        assert entry["obtained"] == pytest.approx(1.65)
        assert entry["max_possible"] == pytest.approx(1.65 + 0.7)

    def test_competencies_are_weighted(self, db_session: Session, test_user: User):
        """100% in matematicas (0.25) and 0% in lectura_critica (0.25) average to 50%."""
        math_result = self._summative_result(db_session, test_user, "Matematicas")
        reading_result = self._summative_result(db_session, test_user, "Lectura Critica")
        add_answer(db_session, test_user.id, math_result, True)
        add_answer(db_session, test_user.id, reading_result, False)

        assert compute_standardized_score(db_session, test_user.id, now=NOW) == 250

    def test_unlisted_competency_uses_default_weight(self, db_session: Session, test_user: User):
        """(100 * 0.20 + 0 * 0.15) / 0.35 * 5 rounds to 286."""
        philosophy = self._summative_result(db_session, test_user, "Filosofia")
        english = self._summative_result(db_session, test_user, "Ingles")
        add_answer(db_session, test_user.id, philosophy, True)
        add_answer(db_session, test_user.id, english, False)

        assert compute_standardized_score(db_session, test_user.id, now=NOW) == 286

    def test_lesson_competency_takes_priority(self, db_session: Session, test_user: User):
        """Answers are grouped by the question's lesson competency before the exam's."""
        science = make_competency(db_session, "Ciencias Naturales")
        result = self._summative_result(db_session, test_user, "Matematicas")
        add_answer(db_session, test_user.id, result, True, lesson=make_lesson(db_session, science))
        add_answer(db_session, test_user.id, result, False)

        # ciencias_naturales 100% (0.20), matematicas 0% (0.25): 20 / 0.45 -> 222
        assert compute_standardized_score(db_session, test_user.id, now=NOW) == 222

    def test_non_summative_exams_fall_back_to_average(self, db_session: Session, test_user: User):
        competency = make_competency(db_session, "Matematicas")
        quiz = make_exam(db_session, exam_type="por_modulo", competency=competency)
        result = add_exam_result(db_session, test_user.id, 80, exam=quiz)
        add_answer(db_session, test_user.id, result, False)

        assert compute_standardized_score(db_session, test_user.id, now=NOW) == 400

    def test_non_icfes_exams_are_ignored(self, db_session: Session, test_user: User):
        competency = make_competency(db_session, "Matematicas")
        exam = make_exam(db_session, competency=competency, is_icfes_exam=False)
        result = add_exam_result(db_session, test_user.id, 50, exam=exam)
        add_answer(db_session, test_user.id, result, True)

        assert compute_standardized_score(db_session, test_user.id, now=NOW) == 250

    def test_fallback_rounds_average_half_up(self, db_session: Session, test_user: User):
        add_exam_result(db_session, test_user.id, 70)
        add_exam_result(db_session, test_user.id, 81)
        add_exam_result(db_session, test_user.id, 10, completed=False)

        # mean 75.5 -> 76 -> 380
        assert compute_standardized_score(db_session, test_user.id, now=NOW) == 380

    def test_answers_without_competency_fall_back(self, db_session: Session, test_user: User):
        exam = make_exam(db_session)
        result = add_exam_result(db_session, test_user.id, 40, exam=exam)
        add_answer(db_session, test_user.id, result, True)

        assert compute_standardized_score(db_session, test_user.id, now=NOW) == 200

    def test_injected_weights(self, db_session: Session, test_user: User):
        math_result = self._summative_result(db_session, test_user, "Matematicas")
        reading_result = self._summative_result(db_session, test_user, "Lectura Critica")
        add_answer(db_session, test_user.id, math_result, True)
        add_answer(db_session, test_user.id, reading_result, False)
        weights = ScoringWeights(
            competency=MappingProxyType({"matematicas": 0.75}),
            default_competency=0.25,
        )

        service = StandardizedScoreService(db_session, test_user.id, weights=weights, now=NOW)

        assert service.compute() == 375

    def test_only_the_users_answers_count(self, db_session: Session, test_user: User):
        other = User(username="otro", email="otro@example.com")
        db_session.add(other)
        db_session.commit()
        result = self._summative_result(db_session, other, "Matematicas")
        add_answer(db_session, other.id, result, True)

        assert compute_standardized_score(db_session, test_user.id, now=NOW) == 0
        assert compute_standardized_score(db_session, other.id, now=NOW) == 500

    def test_score_stays_in_bounds(self, db_session: Session, test_user: User):
        for index, name in enumerate(["Matematicas", "Lectura Critica", "Ingles", "Quimica"]):
            result = self._summative_result(db_session, test_user, name, completed_days_ago=index * 120)
            for answer in range(6):
                add_answer(
                    db_session,
                    test_user.id,
                    result,
                    is_correct=(answer + index) % 3 != 0,
                    difficulty=("facil", "intermedio", "dificil")[answer % 3],
                    time_spent_seconds=answer * 9,
                )

        score = compute_standardized_score(db_session, test_user.id, now=NOW)

        assert isinstance(score, int)
        assert 0 <= score <= 500
