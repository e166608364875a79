#!/usr/bin/env python
"""
Create tables if needed and upsert the default achievement catalogue.
Existing achievements are matched by name and updated in place.
"""
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session

from database import Base, SessionLocal, engine
from models.achievements import Achievement


# Achievement definitions
ACHIEVEMENTS = [
    # Lessons
    {
        "name": "Primer Paso",
        "description": "Complete your first lesson",
        "icon_name": "book",
        "category": "lessons",
        "points": 10,
        "criteria_json": {"type": "lessons_completed", "value": 1},
    },
    {
        "name": "Estudiante Dedicado",
        "description": "Complete 10 lessons",
        "icon_name": "star",
        "category": "lessons",
        "points": 25,
        "criteria_json": {"type": "lessons_completed", "value": 10},
    },
    {
        "name": "Maestro del Aprendizaje",
        "description": "Complete 50 lessons",
        "icon_name": "crown",
        "category": "lessons",
        "points": 100,
        "criteria_json": {"type": "lessons_completed", "value": 50},
    },
    {
        "name": "Primer Curso",
        "description": "Complete every lesson of a course",
        "icon_name": "award",
        "category": "lessons",
        "points": 100,
        "criteria_json": {"type": "course_completed", "value": 1},
    },
    {
        "name": "Explorador",
        "description": "Enroll in courses covering 3 competencies",
        "icon_name": "compass",
        "category": "lessons",
        "points": 30,
        "criteria_json": {"type": "different_competencies", "value": 3},
    },
    # Exams
    {
        "name": "Primer Examen",
        "description": "Complete your first exam",
        "icon_name": "target",
        "category": "exams",
        "points": 15,
        "criteria_json": {"type": "exams_completed", "value": 1},
    },
    {
        "name": "Aprobado",
        "description": "Pass your first exam",
        "icon_name": "check",
        "category": "exams",
        "points": 20,
        "criteria_json": {"type": "exams_passed", "value": 1},
    },
    # Performance
    {
        "name": "Excelencia Academica",
        "description": "Score 90 or more on an exam",
        "icon_name": "trophy",
        "category": "performance",
        "points": 50,
        "criteria_json": {"type": "exam_score", "value": 90},
    },
    {
        "name": "Perfeccionista",
        "description": "Score 100 on an exam",
        "icon_name": "crown",
        "category": "performance",
        "points": 100,
        "criteria_json": {"type": "perfect_score", "value": 1},
    },
    {
        "name": "Racha de Excelencia",
        "description": "Score 90 or more on 3 exams in a row",
        "icon_name": "flame",
        "category": "performance",
        "points": 75,
        "criteria_json": {"type": "high_scores_streak", "value": 3},
    },
    {
        "name": "En Ascenso",
        "description": "Improve your score 3 exams in a row",
        "icon_name": "trending-up",
        "category": "performance",
        "points": 50,
        "criteria_json": {"type": "improvement_streak", "value": 3},
    },
    {
        "name": "Promedio Sobresaliente",
        "description": "Keep an average score of 80 or more",
        "icon_name": "bar-chart",
        "category": "performance",
        "points": 60,
        "criteria_json": {"type": "average_score", "value": 80},
    },
    {
        "name": "Dominio Total",
        "description": "Average 95 or more in every competency",
        "icon_name": "gem",
        "category": "performance",
        "points": 200,
        "criteria_json": {"type": "all_competencies_high", "value": 1},
    },
    {
        "name": "Puntaje 400",
        "description": "Reach a standardized score of 400",
        "icon_name": "graduation-cap",
        "category": "performance",
        "points": 150,
        "criteria_json": {"type": "icfes_score", "value": 400},
    },
    # Time
    {
        "name": "Maraton de Estudio",
        "description": "Study for 2 hours in one day",
        "icon_name": "clock",
        "category": "time",
        "points": 30,
        "criteria_json": {"type": "daily_study_time", "value": 120},
    },
    {
        "name": "Estudiante Constante",
        "description": "Study for 10 hours in total",
        "icon_name": "medal",
        "category": "time",
        "points": 40,
        "criteria_json": {"type": "study_time_minutes", "value": 600},
    },
    # Streaks
    {
        "name": "Racha de 3 Dias",
        "description": "Study 3 days in a row",
        "icon_name": "flame",
        "category": "streak",
        "points": 25,
        "criteria_json": {"type": "study_streak_days", "value": 3},
    },
    {
        "name": "Racha de 7 Dias",
        "description": "Study 7 days in a row",
        "icon_name": "zap",
        "category": "streak",
        "points": 75,
        "criteria_json": {"type": "study_streak_days", "value": 7},
    },
]


def seed_achievements(db: Session) -> int:
    """Insert or update the catalogue; returns the number of new rows."""
    created = 0
    for data in ACHIEVEMENTS:
        achievement = db.query(Achievement).filter(Achievement.name == data["name"]).first()
        if achievement is None:
            db.add(Achievement(**data))
            created += 1
            continue
        for field, value in data.items():
            setattr(achievement, field, value)
    db.commit()
    return created


def main():
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        created = seed_achievements(db)
    finally:
        db.close()

    print(f"Seeded achievements: {created} new, {len(ACHIEVEMENTS) - created} updated.")


if __name__ == "__main__":
    main()
