"""
Exam Autograder - Exam Session Schemas
Pydantic schemas for taking exams and reading results
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class StudentIdentity(BaseModel):
    student_name: str = Field(..., min_length=1)
    student_email: EmailStr


class StartExamRequest(StudentIdentity):
    exam_id: str


class QuestionView(BaseModel):
    """The pending question. Never carries the answer."""
    model_config = ConfigDict(from_attributes=True)
    
    question_id: str
    text: str
    type: str
    options: list[str]
    index: int
    total_questions: int


class StartExamResponse(BaseModel):
    success: bool = True
    session_id: str
    question: QuestionView


class SubmitAnswerRequest(BaseModel):
    session_id: str
    question_id: str
    answer: str = ""


class AnswerFeedback(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    is_correct: bool
    marks_obtained: int
    max_marks: int
    feedback: str


class SubmitAnswerResponse(BaseModel):
    success: bool = True
    completed: bool
    previous_answer: AnswerFeedback
    next_question: QuestionView | None = None
    marks_obtained: int | None = None
    total_marks: int | None = None
    percentage: float | None = None
    feedback: str | None = None


class SubmitExamRequest(StudentIdentity):
    exam_id: str
    answers: dict[str, str] = Field(default_factory=dict, description="question_id -> answer")
    duration_taken: int = Field(default=0, ge=0, description="Seconds spent on the exam")


class GradingDetails(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    similarity_score: float
    key_concepts_matched: list[str] = Field(default_factory=list)
    improvement_suggestions: str = ""
    grading_breakdown: dict[str, float] = Field(default_factory=dict)


class GradedAnswer(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    
    question_id: str
    question_text: str
    question_type: str
    student_answer: str
    correct_answer: str
    is_correct: bool
    marks_obtained: int
    max_marks: int
    feedback: str
    grading_details: GradingDetails


class SubmitExamResponse(BaseModel):
    success: bool = True
    session_id: str
    marks_obtained: int
    total_marks: int
    percentage: float
    graded_answers: list[GradedAnswer]


class SessionSummary(BaseModel):
    """Completed session row for dashboards."""
    model_config = ConfigDict(from_attributes=True)
    
    id: uuid.UUID
    exam_id: uuid.UUID
    exam_title: str
    student_name: str
    student_email: str
    status: str
    marks_obtained: int
    total_marks: int
    percentage: float
    started_at: datetime
    completed_at: datetime | None = None
    duration_taken: int | None = Field(default=None, validation_alias="duration_taken_seconds")
    graded_by: str
    grading_status: str


class SessionResultResponse(SessionSummary):
    """A session with every graded answer."""
    current_question_index: int
    grading_method: str
    model_used: str | None = None
    answers: list[GradedAnswer]


class StudentHistoryResponse(BaseModel):
    email: str
    total_exams_taken: int
    average_percentage: float
    sessions: list[SessionSummary]
