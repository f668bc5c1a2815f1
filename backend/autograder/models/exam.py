"""
Exam Autograder - Exam Models
SQLAlchemy models for authored exams and their questions
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autograder.core.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class ExamType(str, Enum):
    """Informational exam category; grading is per question kind."""
    MCQ = "MCQ"
    SHORT = "Short"
    MIXED = "Mixed"


class Exam(Base):
    """An authored exam. ``total_marks`` is derived from its questions."""
    
    __tablename__ = "exams"
    
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), 
        primary_key=True, 
        default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String(255), index=True)
    exam_type: Mapped[str] = mapped_column(String(20), default=ExamType.MIXED.value)
    duration_seconds: Mapped[int] = mapped_column(Integer)
    total_marks: Mapped[int] = mapped_column(Integer, default=0)
    created_by: Mapped[str] = mapped_column(String(100), default="teacher")
    
    # Shareable link (capability token)
    exam_link: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    link_active: Mapped[bool] = mapped_column(Boolean, default=True)
    link_expired_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), 
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), 
        server_default=func.now(),
        onupdate=func.now()
    )
    
    # Presentation order is position order
    questions: Mapped[list["ExamQuestion"]] = relationship(
        "ExamQuestion",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="ExamQuestion.position",
        lazy="selectin",
    )
    
    @property
    def duration(self) -> int:
        """Duration in whole minutes, as authored."""
        return self.duration_seconds // 60
    
    @property
    def question_count(self) -> int:
        return len(self.questions)
    
    def recompute_total_marks(self) -> int:
        self.total_marks = sum(q.max_marks for q in self.questions)
        return self.total_marks


class ExamQuestion(Base):
    """A question row owned by an exam."""
    
    __tablename__ = "exam_questions"
    
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), 
        primary_key=True, 
        default=uuid.uuid4
    )
    exam_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), 
        ForeignKey("exams.id", ondelete="CASCADE"),
        index=True
    )
    position: Mapped[int] = mapped_column(Integer)
    kind: Mapped[str] = mapped_column(String(10))  # "MCQ" or "Short"
    text: Mapped[str] = mapped_column(Text)
    options: Mapped[list] = mapped_column(JSONType, default=list)
    reference_answer: Mapped[str] = mapped_column(Text)
    max_marks: Mapped[int] = mapped_column(Integer)
    
    exam: Mapped["Exam"] = relationship("Exam", back_populates="questions")
