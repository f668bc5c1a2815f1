"""Exam Autograder - Models initialization."""
from autograder.models.exam import Exam, ExamQuestion, ExamType
from autograder.models.session import ExamSession, SessionStatus
from autograder.models.student import Student


__all__ = [
    # Catalog
    "Exam",
    "ExamQuestion",
    "ExamType",
    # Directory
    "Student",
    # Sessions
    "ExamSession",
    "SessionStatus",
]
