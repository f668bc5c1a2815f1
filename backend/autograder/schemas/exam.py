"""
Exam Autograder - Exam Schemas
Pydantic schemas for exam authoring requests and responses
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from autograder.models.exam import ExamType


class StructureQuizRequest(BaseModel):
    """Teacher-authored exam as two free-text blocks."""
    model_config = ConfigDict(populate_by_name=True)
    
    exam_title: str = Field(..., min_length=1, alias="examTitle")
    exam_type: ExamType = Field(default=ExamType.MIXED, alias="examType")
    duration: int = Field(..., gt=0, description="Duration in minutes")
    mcq_content: str | None = Field(default=None, alias="mcqContent")
    short_content: str | None = Field(default=None, alias="shortContent")
    mcq_marks: int = Field(default=1, gt=0, alias="mcqMarks")
    short_marks: int = Field(default=1, gt=0, alias="shortMarks")


class QuestionPayload(BaseModel):
    """An explicitly authored question."""
    type: str = Field(..., description="MCQ or Short")
    text: str
    options: list[str] = Field(default_factory=list)
    answer: str
    marks: int = Field(..., gt=0)


class ExamUpdateRequest(BaseModel):
    """Partial exam update; ``questions`` replaces the whole list."""
    exam_title: str | None = Field(default=None, min_length=1)
    exam_type: ExamType | None = None
    duration: int | None = Field(default=None, gt=0, description="Duration in minutes")
    questions: list[QuestionPayload] | None = None


class QuestionResponse(BaseModel):
    """A question as seen by the exam author."""
    model_config = ConfigDict(from_attributes=True)
    
    id: uuid.UUID
    type: str = Field(validation_alias="kind")
    text: str
    options: list[str]
    answer: str = Field(validation_alias="reference_answer")
    marks: int = Field(validation_alias="max_marks")


class ExamResponse(BaseModel):
    """Full exam, including answers. Teacher-facing."""
    model_config = ConfigDict(from_attributes=True)
    
    id: uuid.UUID
    exam_title: str = Field(validation_alias="title")
    exam_type: str
    duration: int
    duration_seconds: int
    total_marks: int
    exam_link: str | None = None
    link_active: bool
    link_expired_at: datetime | None = None
    created_at: datetime
    questions: list[QuestionResponse]


class ExamSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    id: uuid.UUID
    exam_title: str = Field(validation_alias="title")
    exam_type: str
    duration: int
    total_marks: int
    question_count: int
    created_at: datetime


class PublicQuestion(BaseModel):
    """A question as seen by a student: no answer."""
    model_config = ConfigDict(from_attributes=True)
    
    id: uuid.UUID
    type: str = Field(validation_alias="kind")
    text: str
    options: list[str]
    marks: int = Field(validation_alias="max_marks")


class PublicExamResponse(BaseModel):
    """Exam as delivered to a student for batch answering."""
    model_config = ConfigDict(from_attributes=True)
    
    id: uuid.UUID
    exam_title: str = Field(validation_alias="title")
    exam_type: str
    duration: int
    total_marks: int
    questions: list[PublicQuestion]


class ExamDeletedResponse(BaseModel):
    success: bool = True
    message: str
    sessions_deleted: int
