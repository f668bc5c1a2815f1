"""
Exam Autograder - Exam Catalog
Stores exam definitions and resolves them for grading
"""
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from autograder.core.exceptions import NotFoundError, ProtocolError, ValidationError
from autograder.core.retry import RetryPolicy
from autograder.models.exam import Exam, ExamQuestion, ExamType
from autograder.models.session import ExamSession, SessionStatus
from autograder.services.content_parser import parse_mcq_content, parse_short_content
from autograder.services.types import Question, QuestionDraft, QuestionKind, make_question

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExamDefinition:
    """Read-only view of an exam used by grading and sessions."""
    id: str
    title: str
    exam_type: str
    duration_seconds: int
    total_marks: int
    questions: tuple[Question, ...]

    def question_at(self, index: int) -> Question | None:
        if 0 <= index < len(self.questions):
            return self.questions[index]
        return None


def parse_id(value: str | uuid.UUID, what: str = "Exam") -> uuid.UUID:
    """Parse an opaque id; unparseable ids do not resolve."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFoundError(f"{what} not found")


def to_definition(exam: Exam) -> ExamDefinition:
    return ExamDefinition(
        id=str(exam.id),
        title=exam.title,
        exam_type=exam.exam_type,
        duration_seconds=exam.duration_seconds,
        total_marks=exam.total_marks,
        questions=tuple(
            make_question(
                row.kind,
                str(row.id),
                row.text,
                row.options,
                row.reference_answer,
                row.max_marks,
            )
            for row in exam.questions
        ),
    )


def _question_rows(drafts: Sequence[QuestionDraft]) -> list[ExamQuestion]:
    rows = []
    for position, draft in enumerate(drafts):
        draft.validate()
        rows.append(ExamQuestion(
            position=position,
            kind=draft.kind.value,
            text=draft.text,
            options=list(draft.options),
            reference_answer=draft.reference_answer,
            max_marks=draft.max_marks,
        ))
    return rows


def _check_exam_fields(title: str, exam_type: str, duration_seconds: int) -> None:
    if not title or not title.strip():
        raise ValidationError("Exam title is required")
    if exam_type not in {t.value for t in ExamType}:
        raise ValidationError(f"Unknown exam type: {exam_type}")
    if duration_seconds <= 0:
        raise ValidationError("Exam duration must be positive")


class ExamCatalog:
    """Service for exam definitions."""
    
    def __init__(self, db: AsyncSession, retry_policy: RetryPolicy | None = None):
        self.db = db
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
    
    async def get_exam(self, exam_id: str | uuid.UUID) -> Exam:
        """
        Raises:
            NotFoundError: If the exam does not exist
        """
        exam = await self.db.get(Exam, parse_id(exam_id))
        if exam is None:
            raise NotFoundError("Exam not found")
        return exam
    
    async def get_definition(self, exam_id: str | uuid.UUID) -> ExamDefinition:
        return to_definition(await self.get_exam(exam_id))
    
    async def get_exam_by_link(self, link: str) -> Exam:
        """
        Resolve a shareable link. Inactive links do not resolve.
        
        Raises:
            NotFoundError: If the link is unknown or no longer active
        """
        result = await self.db.execute(select(Exam).where(Exam.exam_link == link))
        exam = result.scalar_one_or_none()
        if exam is None or not exam.link_active:
            raise NotFoundError("Exam link not found or no longer active")
        return exam
    
    async def list_exams(self) -> list[Exam]:
        result = await self.db.execute(select(Exam).order_by(Exam.created_at.desc()))
        return list(result.scalars().all())
    
    async def save_exam(
        self,
        title: str,
        exam_type: str,
        duration_seconds: int,
        drafts: Sequence[QuestionDraft],
    ) -> Exam:
        """
        Persist a new exam with ``total_marks`` derived from its questions.
        
        Raises:
            ValidationError: If any field or question is invalid
            PersistenceError: If the write keeps failing
        """
        _check_exam_fields(title, exam_type, duration_seconds)
        if not drafts:
            raise ValidationError("No valid questions found")
        _question_rows(drafts)
        
        async def write() -> Exam:
            exam = Exam(
                title=title.strip(),
                exam_type=exam_type,
                duration_seconds=duration_seconds,
                questions=_question_rows(drafts),
            )
            exam.recompute_total_marks()
            self.db.add(exam)
            await self.db.commit()
            await self.db.refresh(exam)
            return exam
        
        exam = await self.retry_policy.run(write, on_error=self._rollback)
        logger.info(
            "Created exam %s (%s) with %d questions, %d marks",
            exam.id, exam.title, len(exam.questions), exam.total_marks,
        )
        return exam
    
    async def create_from_content(
        self,
        title: str,
        exam_type: str,
        duration_minutes: int,
        mcq_content: str | None,
        short_content: str | None,
        mcq_marks: int,
        short_marks: int,
    ) -> Exam:
        """
        Parse teacher-authored blocks (multiple choice first) into a new exam.
        
        Raises:
            ValidationError: If both blocks are blank or a block has no valid question
        """
        drafts: list[QuestionDraft] = []
        if mcq_content and mcq_content.strip():
            drafts.extend(parse_mcq_content(mcq_content, mcq_marks))
        if short_content and short_content.strip():
            drafts.extend(parse_short_content(short_content, short_marks))
        if not drafts:
            raise ValidationError("No valid questions found")
        
        return await self.save_exam(
            title=title,
            exam_type=exam_type,
            duration_seconds=duration_minutes * 60,
            drafts=drafts,
        )
    
    async def update_exam(
        self,
        exam_id: str | uuid.UUID,
        title: str | None = None,
        exam_type: str | None = None,
        duration_seconds: int | None = None,
        drafts: Sequence[QuestionDraft] | None = None,
    ) -> Exam:
        """
        Update exam fields; a new question list replaces the old one.
        
        Completed sessions keep their own copies of question text and marks.
        Sessions still in progress index into the current question list, so
        the list cannot be replaced while any exist.
        
        Raises:
            ValidationError: If any field or question is invalid
            ProtocolError: If questions are replaced while sessions are in progress
        """
        exam = await self.get_exam(exam_id)
        _check_exam_fields(
            title if title is not None else exam.title,
            exam_type if exam_type is not None else exam.exam_type,
            duration_seconds if duration_seconds is not None else exam.duration_seconds,
        )
        if drafts is not None:
            if not drafts:
                raise ValidationError("No valid questions found")
            rows = _question_rows(drafts)
            in_progress = await self._count_in_progress(exam.id)
            if in_progress:
                raise ProtocolError(
                    f"Exam has {in_progress} session(s) in progress; questions cannot be replaced"
                )
        
        if title is not None:
            exam.title = title.strip()
        if exam_type is not None:
            exam.exam_type = exam_type
        if duration_seconds is not None:
            exam.duration_seconds = duration_seconds
        if drafts is not None:
            exam.questions = rows
        exam.recompute_total_marks()
        
        await self._commit(exam)
        logger.info("Updated exam %s (%d marks)", exam.id, exam.total_marks)
        return exam
    
    async def delete_exam(self, exam_id: str | uuid.UUID) -> int:
        """
        Delete an exam and every session started from it.
        
        Returns:
            Number of sessions removed
        """
        exam = await self.get_exam(exam_id)
        result = await self.db.execute(
            delete(ExamSession).where(ExamSession.exam_id == exam.id)
        )
        await self.db.delete(exam)
        await self._commit()
        logger.info("Deleted exam %s and %d sessions", exam.id, result.rowcount)
        return result.rowcount
    
    async def _count_in_progress(self, exam_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(ExamSession)
            .where(
                ExamSession.exam_id == exam_id,
                ExamSession.status == SessionStatus.IN_PROGRESS.value,
            )
        )
        return result.scalar_one()
    
    async def activate_link(self, exam_id: str | uuid.UUID) -> Exam:
        exam = await self.get_exam(exam_id)
        if not exam.exam_link:
            exam.exam_link = secrets.token_urlsafe(16)
        exam.link_active = True
        exam.link_expired_at = None
        await self._commit(exam)
        return exam
    
    async def deactivate_link(self, exam_id: str | uuid.UUID) -> Exam:
        exam = await self.get_exam(exam_id)
        exam.link_active = False
        exam.link_expired_at = datetime.now(timezone.utc)
        await self._commit(exam)
        return exam
    
    async def _commit(self, exam: Exam | None = None) -> None:
        # In-place edits cannot be replayed after a rollback, so no retries here
        await self.db.commit()
        if exam is not None:
            await self.db.refresh(exam)
    
    async def _rollback(self, exc: BaseException) -> None:
        await self.db.rollback()


def drafts_from_payload(items: Sequence[dict]) -> list[QuestionDraft]:
    """Build drafts from explicit question payloads (type/text/options/answer/marks)."""
    drafts = []
    for number, item in enumerate(items, start=1):
        try:
            kind = QuestionKind(item["type"])
        except (KeyError, ValueError):
            raise ValidationError(f"Question {number}: unknown type {item.get('type')!r}")
        drafts.append(QuestionDraft(
            kind=kind,
            text=item.get("text", ""),
            options=tuple(item.get("options") or ()),
            reference_answer=item.get("answer", ""),
            max_marks=item.get("marks", 0),
            question_number=number,
        ))
    return drafts
