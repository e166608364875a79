"""Exams, questions, results and per-question answers."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import backref, relationship

from database import Base


class Exam(Base):
    """An exam definition.

    ``exam_type`` values include ``simulacro_completo`` and ``diagnostico``
    (the summative kinds) as well as per-module quizzes.
    """

    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(256), nullable=False)
    exam_type = Column(String(64), nullable=False, index=True)
    is_icfes_exam = Column(Boolean, nullable=False, default=True)
    competency_id = Column(
        Integer,
        ForeignKey("competencies.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    competency = relationship("Competency")
    course = relationship("Course")
    questions = relationship("Question", back_populates="exam")


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(
        Integer,
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lesson_id = Column(
        Integer,
        ForeignKey("lessons.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    difficulty_level = Column(String(32), nullable=False, default="intermedio")

    exam = relationship("Exam", back_populates="questions")
    lesson = relationship("Lesson")


class ExamResult(Base):
    """One attempt at an exam; ``completed_at`` is null while in progress."""

    __tablename__ = "exam_results"
    __table_args__ = (
        Index("ix_exam_results_user_completed", "user_id", "completed_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exam_id = Column(
        Integer,
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    score = Column(Float, nullable=False, default=0)
    is_passed = Column(Boolean, nullable=False, default=False)
    started_at = Column(DateTime, default=datetime.now, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    user = relationship("User", backref=backref("exam_results", passive_deletes=True))
    exam = relationship("Exam")
    answers = relationship("ExamQuestionAnswer", back_populates="exam_result")


class ExamQuestionAnswer(Base):
    __tablename__ = "exam_question_answers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    exam_result_id = Column(
        Integer,
        ForeignKey("exam_results.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_correct = Column(Boolean, nullable=False, default=False)
    time_spent_seconds = Column(Integer, nullable=True)

    exam_result = relationship("ExamResult", back_populates="answers")
    question = relationship("Question")
