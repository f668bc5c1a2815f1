"""
Exam Autograder - Exam Session State Machine
Batch submission and one-question-at-a-time delivery of an exam attempt
"""
import asyncio
import logging
import uuid
import weakref
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from autograder.core.exceptions import NotFoundError, ProtocolError, ValidationError
from autograder.core.retry import RetryPolicy
from autograder.models.session import ExamSession, SessionStatus
from autograder.services.catalog import ExamCatalog, ExamDefinition, parse_id
from autograder.services.directory import StudentDirectory
from autograder.services.grading import GradingEngine
from autograder.services.types import AnswerRecord, ExamScore, compute_score

logger = logging.getLogger(__name__)


class SessionLockRegistry:
    """
    One asyncio.Lock per session id within this process.

    Locks are held weakly and disappear once nobody waits on them.
    Cross-process writers are caught by the session's version column.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, session_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock


session_locks = SessionLockRegistry()


@dataclass(frozen=True)
class QuestionView:
    """A question as shown to a student. Never carries the answer."""
    question_id: str
    text: str
    type: str
    options: list[str]
    index: int
    total_questions: int


@dataclass(frozen=True)
class AnswerFeedback:
    is_correct: bool
    marks_obtained: int
    max_marks: int
    feedback: str


@dataclass(frozen=True)
class StartResult:
    session_id: str
    question: QuestionView


@dataclass(frozen=True)
class SubmitAnswerResult:
    completed: bool
    previous_answer: AnswerFeedback
    next_question: QuestionView | None = None
    score: ExamScore | None = None


@dataclass(frozen=True)
class SubmissionResult:
    session_id: str
    score: ExamScore
    graded_answers: list[AnswerRecord]


def question_view(exam: ExamDefinition, index: int) -> QuestionView:
    question = exam.questions[index]
    return QuestionView(
        question_id=question.id,
        text=question.text,
        type=question.kind.value,
        options=list(question.options),
        index=index,
        total_questions=len(exam.questions),
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _apply_grading_metadata(session: ExamSession, records: list[AnswerRecord]) -> None:
    degraded = any(r.degraded for r in records)
    session.graded_by = "hybrid" if degraded else "AI"
    session.grading_method = "fallback" if degraded else "llm"
    session.grading_status = "partial" if degraded else "completed"
    session.model_used = next(
        (r.model_used for r in records if r.model_used and not r.degraded),
        "fallback" if degraded else None,
    )


class ExamSessionService:
    """
    Owns the lifecycle of exam attempts.

    ``in_progress`` -> ``completed`` is the only transition. A completed
    session is never written again.
    """

    def __init__(
        self,
        db: AsyncSession,
        grading_engine: GradingEngine,
        catalog: ExamCatalog | None = None,
        directory: StudentDirectory | None = None,
        retry_policy: RetryPolicy | None = None,
        locks: SessionLockRegistry | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.db = db
        self.grading_engine = grading_engine
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.catalog = catalog or ExamCatalog(db, self.retry_policy)
        self.directory = directory or StudentDirectory(db)
        self.locks = locks or session_locks
        self.clock = clock

    async def get_session(self, session_id: str | uuid.UUID, refresh: bool = False) -> ExamSession:
        """
        Raises:
            NotFoundError: If the session does not exist
        """
        session = await self.db.get(
            ExamSession,
            parse_id(session_id, "Session"),
            populate_existing=refresh,
        )
        if session is None:
            raise NotFoundError("Session not found")
        return session

    # Mode A: whole exam submitted at once

    async def submit_exam(
        self,
        student_name: str,
        student_email: str,
        exam_id: str,
        answers: Mapping[str, str],
        duration_taken_seconds: int,
    ) -> SubmissionResult:
        """
        Grade every answer concurrently and store a completed session.

        Raises:
            NotFoundError: If the exam does not exist
            ValidationError: If the duration is negative
            PersistenceError: If the session cannot be stored
        """
        if duration_taken_seconds < 0:
            raise ValidationError("Duration taken cannot be negative")
        exam = await self.catalog.get_definition(exam_id)

        unknown = set(answers) - {q.id for q in exam.questions}
        if unknown:
            logger.info("Ignoring answers for unknown questions on exam %s: %s", exam.id, sorted(unknown))

        records = await self.grading_engine.grade_exam(exam.questions, answers)
        score = compute_score(records, exam.total_marks)
        now = self.clock()

        async def write() -> ExamSession:
            student = await self.directory.find_or_create_by_email(student_email, student_name)
            session = ExamSession(
                student_id=student.id,
                exam_id=uuid.UUID(exam.id),
                student_name=student_name.strip(),
                student_email=student.email,
                exam_title=exam.title,
                status=SessionStatus.COMPLETED.value,
                current_question_index=len(exam.questions),
                answers=[r.to_dict() for r in records],
                marks_obtained=score.marks_obtained,
                total_marks=score.total_marks,
                percentage=score.percentage,
                started_at=now - timedelta(seconds=duration_taken_seconds),
                completed_at=now,
                duration_taken_seconds=duration_taken_seconds,
            )
            _apply_grading_metadata(session, records)
            self.db.add(session)
            await self.db.commit()
            return session

        session = await self.retry_policy.run(write, on_error=self._rollback)
        logger.info(
            "Session %s completed by submission: %d/%d (%.1f%%)",
            session.id, score.marks_obtained, score.total_marks, score.percentage,
        )
        return SubmissionResult(session_id=str(session.id), score=score, graded_answers=records)

    # Mode B: sequential delivery

    async def start_exam(self, student_name: str, student_email: str, exam_id: str) -> StartResult:
        """
        Open an in-progress session and return its first question.

        Raises:
            NotFoundError: If the exam does not exist
            ValidationError: If the exam has no questions
        """
        exam = await self.catalog.get_definition(exam_id)
        if not exam.questions:
            raise ValidationError("Exam has no questions")
        now = self.clock()

        async def write() -> ExamSession:
            student = await self.directory.find_or_create_by_email(student_email, student_name)
            session = ExamSession(
                student_id=student.id,
                exam_id=uuid.UUID(exam.id),
                student_name=student_name.strip(),
                student_email=student.email,
                exam_title=exam.title,
                status=SessionStatus.IN_PROGRESS.value,
                current_question_index=0,
                answers=[],
                marks_obtained=0,
                total_marks=exam.total_marks,
                percentage=0.0,
                started_at=now,
            )
            self.db.add(session)
            await self.db.commit()
            return session

        session = await self.retry_policy.run(write, on_error=self._rollback)
        logger.info("Session %s started on exam %s by %s", session.id, exam.id, session.student_email)
        return StartResult(session_id=str(session.id), question=question_view(exam, 0))

    async def submit_answer(
        self,
        session_id: str,
        question_id: str,
        answer: str,
    ) -> SubmitAnswerResult:
        """
        Grade the pending question and advance the session by one.

        Raises:
            NotFoundError: If the session or its exam does not exist
            ProtocolError: If the session is completed or ``question_id`` is not the pending question
            PersistenceError: If the answer cannot be stored
        """
        key = parse_id(session_id, "Session")
        async with self.locks.lock_for(key):
            session = await self.get_session(key, refresh=True)
            exam = await self.catalog.get_definition(session.exam_id)
            question = self._pending_question(session, exam, question_id)
            expected_version = session.version

            record = await self.grading_engine.grade_question(question, answer)

            async def write() -> ExamSession:
                current = await self.get_session(key, refresh=True)
                if current.version != expected_version:
                    raise ProtocolError("Session was modified by another request")
                self._apply_answer(current, exam, record)
                await self.db.commit()
                return current

            try:
                session = await self.retry_policy.run(write, on_error=self._rollback)
            except StaleDataError:
                await self.db.rollback()
                raise ProtocolError("Session was modified by another request")

        feedback = AnswerFeedback(
            is_correct=record.is_correct,
            marks_obtained=record.marks_obtained,
            max_marks=record.max_marks,
            feedback=record.feedback,
        )
        if session.is_completed:
            return SubmitAnswerResult(
                completed=True,
                previous_answer=feedback,
                score=ExamScore(
                    marks_obtained=session.marks_obtained,
                    total_marks=session.total_marks,
                    percentage=session.percentage,
                ),
            )
        return SubmitAnswerResult(
            completed=False,
            previous_answer=feedback,
            next_question=question_view(exam, session.current_question_index),
        )

    def _pending_question(self, session: ExamSession, exam: ExamDefinition, question_id: str):
        if session.is_completed:
            raise ProtocolError("Exam session already completed")
        question = exam.question_at(session.current_question_index)
        if question is None:
            raise ProtocolError("No question is pending for this session")
        if question.id != str(question_id):
            raise ProtocolError("Invalid question ID")
        return question

    def _apply_answer(self, session: ExamSession, exam: ExamDefinition, record: AnswerRecord) -> None:
        # Reassign the list so the JSON column is flagged dirty
        session.answers = [*session.answers, record.to_dict()]
        session.current_question_index += 1

        records = [AnswerRecord.from_dict(a) for a in session.answers]
        score = compute_score(records, session.total_marks)
        session.marks_obtained = score.marks_obtained
        session.percentage = score.percentage
        _apply_grading_metadata(session, records)

        if session.current_question_index >= len(exam.questions):
            now = self.clock()
            session.status = SessionStatus.COMPLETED.value
            session.completed_at = now
            session.duration_taken_seconds = int(
                (now - _as_utc(session.started_at)).total_seconds()
            )
            logger.info(
                "Session %s completed: %d/%d (%.1f%%)",
                session.id, score.marks_obtained, score.total_marks, score.percentage,
            )
        else:
            logger.info(
                "Session %s accepted answer %d/%d",
                session.id, session.current_question_index, len(exam.questions),
            )

    async def _rollback(self, exc: BaseException) -> None:
        await self.db.rollback()
