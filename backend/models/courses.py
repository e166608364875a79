"""Competencies, courses and their module/lesson structure."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import backref, relationship

from database import Base


class Competency(Base):
    """A subject area such as ``Matematicas`` or ``Lectura Critica``."""

    __tablename__ = "competencies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), unique=True, nullable=False)
    display_name = Column(String(128), nullable=True)


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(256), nullable=False)
    competency_id = Column(
        Integer,
        ForeignKey("competencies.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    competency = relationship("Competency")
    course_modules = relationship("CourseModule", back_populates="course")


class Module(Base):
    __tablename__ = "modules"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(256), nullable=False)

    module_lessons = relationship("ModuleLesson", back_populates="module")


class CourseModule(Base):
    """Ordered membership of a module in a course."""

    __tablename__ = "course_modules"
    __table_args__ = (
        UniqueConstraint("course_id", "module_id", name="uq_course_module"),
    )

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    module_id = Column(
        Integer,
        ForeignKey("modules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order_index = Column(Integer, nullable=False, default=0)

    course = relationship("Course", back_populates="course_modules")
    module = relationship("Module")


class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(256), nullable=False)
    competency_id = Column(
        Integer,
        ForeignKey("competencies.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    competency = relationship("Competency")


class ModuleLesson(Base):
    """Ordered membership of a lesson in a module."""

    __tablename__ = "module_lessons"
    __table_args__ = (
        UniqueConstraint("module_id", "lesson_id", name="uq_module_lesson"),
    )

    id = Column(Integer, primary_key=True, index=True)
    module_id = Column(
        Integer,
        ForeignKey("modules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lesson_id = Column(
        Integer,
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order_index = Column(Integer, nullable=False, default=0)

    module = relationship("Module", back_populates="module_lessons")
    lesson = relationship("Lesson")


class CourseEnrollment(Base):
    __tablename__ = "course_enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_course_enrollment"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    enrolled_at = Column(DateTime, default=datetime.now, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    user = relationship("User", backref=backref("enrollments", passive_deletes=True))
    course = relationship("Course")
