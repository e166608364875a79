"""Tests for the default achievement catalogue."""

import pytest
from sqlalchemy.orm import Session

from models.achievements import Achievement
from scripts.seed_achievements import ACHIEVEMENTS, seed_achievements
from services.achievement_criteria import CriteriaNormalizer, MetricType


class TestCatalogueDefinitions:
    """Every seeded definition is usable by the engine."""

    @pytest.mark.parametrize("data", ACHIEVEMENTS, ids=lambda data: data["name"])
    def test_criteria_use_known_metric(self, data):
        criteria = CriteriaNormalizer().normalize(data["criteria_json"])

        assert criteria.metric_type in {metric.value for metric in MetricType}

    def test_every_metric_type_is_covered(self):
        seeded = {data["criteria_json"]["type"] for data in ACHIEVEMENTS}

        assert seeded == {metric.value for metric in MetricType}

    def test_names_are_unique(self):
        names = [data["name"] for data in ACHIEVEMENTS]

        assert len(names) == len(set(names))


@pytest.mark.integration
class TestSeedAchievements:
    """Test upserting the catalogue."""

    def test_seeding_twice_creates_no_duplicates(self, db_session: Session):
        assert seed_achievements(db_session) == len(ACHIEVEMENTS)
        assert seed_achievements(db_session) == 0

        assert db_session.query(Achievement).count() == len(ACHIEVEMENTS)

    def test_existing_rows_are_updated(self, db_session: Session):
        db_session.add(Achievement(
            name="Primer Paso",
            points=1,
            criteria_json={"lessonsCompleted": 5},
        ))
        db_session.commit()

        seed_achievements(db_session)

        achievement = db_session.query(Achievement).filter(Achievement.name == "Primer Paso").one()
        assert achievement.points == 10
        assert achievement.criteria_json == {"type": "lessons_completed", "value": 1}
