"""
Exam Autograder - Teacher Results API
"""
from fastapi import APIRouter, Query
from pydantic import BaseModel

from autograder.api.deps import Results
from autograder.schemas.exam import ExamResponse
from autograder.schemas.session import SessionResultResponse
from autograder.services.results import DEFAULT_RESULTS_LIMIT

router = APIRouter(prefix="/teacher", tags=["Teacher"])


class ExamResultsResponse(BaseModel):
    exam: ExamResponse
    sessions: list[SessionResultResponse]


@router.get("/results", response_model=list[SessionResultResponse])
async def all_results(
    results: Results,
    limit: int = Query(default=DEFAULT_RESULTS_LIMIT, ge=1, le=500),
):
    """Most recently completed sessions across all exams."""
    sessions = await results.all_results(limit=limit)
    return [SessionResultResponse.model_validate(s) for s in sessions]


@router.get("/exams/{exam_id}/results", response_model=ExamResultsResponse)
async def exam_results(exam_id: str, results: Results):
    """One exam with its completed sessions."""
    data = await results.exam_results(exam_id)
    return ExamResultsResponse(
        exam=ExamResponse.model_validate(data.exam),
        sessions=[SessionResultResponse.model_validate(s) for s in data.sessions],
    )
