"""
Exam Autograder - Quiz Authoring API
Endpoints for structuring, listing, editing and sharing exams
"""
from fastapi import APIRouter, status

from autograder.api.deps import Catalog
from autograder.schemas.exam import (
    ExamDeletedResponse,
    ExamResponse,
    ExamSummary,
    ExamUpdateRequest,
    PublicExamResponse,
    StructureQuizRequest,
)
from autograder.services.catalog import drafts_from_payload

router = APIRouter(prefix="/quizzes", tags=["Quizzes"])


@router.post("/structure", response_model=ExamResponse, status_code=status.HTTP_201_CREATED)
async def structure_quiz(request: StructureQuizRequest, catalog: Catalog):
    """
    Parse teacher-authored MCQ and short-answer blocks into a stored exam.
    Returns the exam with generated question ids and total marks.
    """
    exam = await catalog.create_from_content(
        title=request.exam_title,
        exam_type=request.exam_type.value,
        duration_minutes=request.duration,
        mcq_content=request.mcq_content,
        short_content=request.short_content,
        mcq_marks=request.mcq_marks,
        short_marks=request.short_marks,
    )
    return ExamResponse.model_validate(exam)


@router.get("", response_model=list[ExamSummary])
async def list_quizzes(catalog: Catalog):
    """List all exams, newest first."""
    exams = await catalog.list_exams()
    return [ExamSummary.model_validate(exam) for exam in exams]


@router.get("/link/{token}", response_model=PublicExamResponse)
async def get_quiz_by_link(token: str, catalog: Catalog):
    """Resolve an active share link to the student view of its exam."""
    exam = await catalog.get_exam_by_link(token)
    return PublicExamResponse.model_validate(exam)


@router.get("/{exam_id}", response_model=ExamResponse)
async def get_quiz(exam_id: str, catalog: Catalog):
    exam = await catalog.get_exam(exam_id)
    return ExamResponse.model_validate(exam)


@router.put("/{exam_id}", response_model=ExamResponse)
async def update_quiz(exam_id: str, request: ExamUpdateRequest, catalog: Catalog):
    """Update exam details; total marks are recomputed from the questions."""
    drafts = None
    if request.questions is not None:
        drafts = drafts_from_payload([q.model_dump() for q in request.questions])
    exam = await catalog.update_exam(
        exam_id,
        title=request.exam_title,
        exam_type=request.exam_type.value if request.exam_type else None,
        duration_seconds=request.duration * 60 if request.duration else None,
        drafts=drafts,
    )
    return ExamResponse.model_validate(exam)


@router.delete("/{exam_id}", response_model=ExamDeletedResponse)
async def delete_quiz(exam_id: str, catalog: Catalog):
    """Delete an exam and every session taken on it."""
    removed = await catalog.delete_exam(exam_id)
    return ExamDeletedResponse(
        message="Exam and all related sessions deleted successfully",
        sessions_deleted=removed,
    )


@router.post("/{exam_id}/link", response_model=ExamResponse)
async def activate_quiz_link(exam_id: str, catalog: Catalog):
    """Issue or re-activate the exam's share link."""
    exam = await catalog.activate_link(exam_id)
    return ExamResponse.model_validate(exam)


@router.delete("/{exam_id}/link", response_model=ExamResponse)
async def deactivate_quiz_link(exam_id: str, catalog: Catalog):
    """Expire the exam's share link."""
    exam = await catalog.deactivate_link(exam_id)
    return ExamResponse.model_validate(exam)
