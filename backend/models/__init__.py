"""Model package exports for database initialization."""

from models.user import User
from models.courses import Competency, Course, Module, CourseModule, Lesson, ModuleLesson, CourseEnrollment
from models.exams import Exam, Question, ExamResult, ExamQuestionAnswer
from models.progress import StudentLessonProgress
from models.achievements import Achievement, UserAchievement
from models.notifications import Notification

__all__ = [
    "User",
    "Competency",
    "Course",
    "Module",
    "CourseModule",
    "Lesson",
    "ModuleLesson",
    "CourseEnrollment",
    "Exam",
    "Question",
    "ExamResult",
    "ExamQuestionAnswer",
    "StudentLessonProgress",
    "Achievement",
    "UserAchievement",
    "Notification",
]
