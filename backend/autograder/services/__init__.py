"""Exam Autograder - Services initialization."""
from autograder.services.catalog import ExamCatalog, ExamDefinition
from autograder.services.directory import StudentDirectory
from autograder.services.exam_session import ExamSessionService, SessionLockRegistry
from autograder.services.grading import GradingEngine
from autograder.services.results import ResultsService

__all__ = [
    "ExamCatalog",
    "ExamDefinition",
    "ExamSessionService",
    "GradingEngine",
    "ResultsService",
    "SessionLockRegistry",
    "StudentDirectory",
]
