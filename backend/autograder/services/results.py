"""
Exam Autograder - Results Queries
Read-only views over completed exam sessions
"""
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autograder.models.exam import Exam
from autograder.models.session import ExamSession, SessionStatus
from autograder.services.catalog import ExamCatalog
from autograder.services.directory import normalize_email

DEFAULT_RESULTS_LIMIT = 100


@dataclass(frozen=True)
class ExamResults:
    exam: Exam
    sessions: list[ExamSession]


@dataclass(frozen=True)
class StudentHistory:
    email: str
    sessions: list[ExamSession]

    @property
    def total_exams_taken(self) -> int:
        return len(self.sessions)

    @property
    def average_percentage(self) -> float:
        if not self.sessions:
            return 0.0
        return sum(s.percentage for s in self.sessions) / len(self.sessions)


class ResultsService:
    """Teacher dashboards and student history. Only completed sessions are listed."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    def _completed(self):
        return (
            select(ExamSession)
            .where(ExamSession.status == SessionStatus.COMPLETED.value)
            .order_by(ExamSession.completed_at.desc())
        )
    
    async def all_results(self, limit: int = DEFAULT_RESULTS_LIMIT) -> list[ExamSession]:
        result = await self.db.execute(self._completed().limit(limit))
        return list(result.scalars().all())
    
    async def exam_results(self, exam_id: str) -> ExamResults:
        exam = await ExamCatalog(self.db).get_exam(exam_id)
        result = await self.db.execute(
            self._completed().where(ExamSession.exam_id == exam.id)
        )
        return ExamResults(exam=exam, sessions=list(result.scalars().all()))
    
    async def student_history(self, email: str) -> StudentHistory:
        key = normalize_email(email)
        result = await self.db.execute(
            self._completed().where(ExamSession.student_email == key)
        )
        return StudentHistory(email=key, sessions=list(result.scalars().all()))
