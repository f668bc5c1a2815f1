"""
Exam Autograder - API Dependencies
FastAPI dependencies wiring the grading core to each request
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from autograder.ai.answer_evaluator import AnswerEvaluator, answer_evaluator
from autograder.core.database import get_db
from autograder.services.catalog import ExamCatalog
from autograder.services.exam_session import ExamSessionService
from autograder.services.grading import GradingEngine
from autograder.services.results import ResultsService


def get_answer_evaluator() -> AnswerEvaluator:
    """The process-wide evaluator. Overridden in tests."""
    return answer_evaluator


def get_grading_engine(
    evaluator: Annotated[AnswerEvaluator, Depends(get_answer_evaluator)],
) -> GradingEngine:
    return GradingEngine(evaluator)


def get_exam_catalog(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ExamCatalog:
    return ExamCatalog(db)


def get_session_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    grading_engine: Annotated[GradingEngine, Depends(get_grading_engine)],
) -> ExamSessionService:
    return ExamSessionService(db, grading_engine)


def get_results_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ResultsService:
    return ResultsService(db)


# Type aliases for common dependencies
Catalog = Annotated[ExamCatalog, Depends(get_exam_catalog)]
Sessions = Annotated[ExamSessionService, Depends(get_session_service)]
Results = Annotated[ResultsService, Depends(get_results_service)]
