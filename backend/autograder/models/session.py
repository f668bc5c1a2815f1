"""
Exam Autograder - Exam Session Model
One student's attempt at one exam
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from autograder.core.database import Base
from autograder.models.exam import JSONType


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ExamSession(Base):
    """
    Persisted exam attempt.

    Student and exam fields are denormalized at start so results survive
    later edits or deletion of the exam. ``answers`` holds AnswerRecord dicts
    in question order; ``marks_obtained`` and ``percentage`` are always
    written from them.
    """
    
    __tablename__ = "exam_sessions"
    
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), 
        primary_key=True, 
        default=uuid.uuid4
    )
    # No FK on the exam: deletion of sessions is done explicitly by the catalog
    exam_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), index=True)
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), 
        ForeignKey("students.id", ondelete="CASCADE"),
        index=True
    )
    
    student_name: Mapped[str] = mapped_column(String(200))
    student_email: Mapped[str] = mapped_column(String(255), index=True)
    exam_title: Mapped[str] = mapped_column(String(255))
    
    status: Mapped[str] = mapped_column(String(20), default=SessionStatus.IN_PROGRESS.value)
    current_question_index: Mapped[int] = mapped_column(Integer, default=0)
    answers: Mapped[list] = mapped_column(JSONType, default=list)
    
    marks_obtained: Mapped[int] = mapped_column(Integer, default=0)
    total_marks: Mapped[int] = mapped_column(Integer, default=0)
    percentage: Mapped[float] = mapped_column(Float, default=0.0)
    
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_taken_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    
    # Grading metadata
    graded_by: Mapped[str] = mapped_column(String(20), default="AI")
    grading_method: Mapped[str] = mapped_column(String(20), default="llm")
    grading_status: Mapped[str] = mapped_column(String(20), default="completed")
    model_used: Mapped[str | None] = mapped_column(Text, nullable=True)
    
    # Optimistic concurrency guard
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), 
        server_default=func.now()
    )
    
    __mapper_args__ = {"version_id_col": version}
    
    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED.value
