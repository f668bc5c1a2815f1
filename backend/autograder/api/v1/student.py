"""
Exam Autograder - Student API
Endpoints for taking exams and reading results
"""
from fastapi import APIRouter

from autograder.api.deps import Catalog, Results, Sessions
from autograder.schemas.exam import PublicExamResponse
from autograder.schemas.session import (
    AnswerFeedback,
    QuestionView,
    SessionResultResponse,
    SessionSummary,
    StartExamRequest,
    StartExamResponse,
    StudentHistoryResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
    SubmitExamRequest,
    SubmitExamResponse,
)

router = APIRouter(prefix="/student", tags=["Student"])


@router.get("/exams/{exam_id}", response_model=PublicExamResponse)
async def get_exam_for_student(exam_id: str, catalog: Catalog):
    """Exam questions without answers, for batch answering."""
    exam = await catalog.get_exam(exam_id)
    return PublicExamResponse.model_validate(exam)


@router.post("/submit-exam", response_model=SubmitExamResponse)
async def submit_exam(request: SubmitExamRequest, sessions: Sessions):
    """
    Submit every answer at once.
    All questions are graded concurrently; answers come back in exam order.
    """
    result = await sessions.submit_exam(
        student_name=request.student_name,
        student_email=request.student_email,
        exam_id=request.exam_id,
        answers=request.answers,
        duration_taken_seconds=request.duration_taken,
    )
    return SubmitExamResponse(
        session_id=result.session_id,
        marks_obtained=result.score.marks_obtained,
        total_marks=result.score.total_marks,
        percentage=result.score.percentage,
        graded_answers=[record.to_dict() for record in result.graded_answers],
    )


@router.post("/start-exam", response_model=StartExamResponse)
async def start_exam(request: StartExamRequest, sessions: Sessions):
    """Open a one-question-at-a-time session and return the first question."""
    result = await sessions.start_exam(
        student_name=request.student_name,
        student_email=request.student_email,
        exam_id=request.exam_id,
    )
    return StartExamResponse(
        session_id=result.session_id,
        question=QuestionView.model_validate(result.question),
    )


@router.post("/submit-answer", response_model=SubmitAnswerResponse)
async def submit_answer(request: SubmitAnswerRequest, sessions: Sessions):
    """
    Grade the pending question and move on.
    Only the pending question may be answered; completed sessions reject answers.
    """
    result = await sessions.submit_answer(
        session_id=request.session_id,
        question_id=request.question_id,
        answer=request.answer,
    )
    previous = AnswerFeedback.model_validate(result.previous_answer)
    if result.completed:
        return SubmitAnswerResponse(
            completed=True,
            previous_answer=previous,
            marks_obtained=result.score.marks_obtained,
            total_marks=result.score.total_marks,
            percentage=result.score.percentage,
            feedback="Exam completed!",
        )
    return SubmitAnswerResponse(
        completed=False,
        previous_answer=previous,
        next_question=QuestionView.model_validate(result.next_question),
    )


@router.get("/results/{session_id}", response_model=SessionResultResponse)
async def get_session_result(session_id: str, sessions: Sessions):
    session = await sessions.get_session(session_id)
    return SessionResultResponse.model_validate(session)


@router.get("/history", response_model=StudentHistoryResponse)
async def get_student_history(email: str, results: Results):
    """Completed sessions for one student with derived totals."""
    history = await results.student_history(email)
    return StudentHistoryResponse(
        email=history.email,
        total_exams_taken=history.total_exams_taken,
        average_percentage=history.average_percentage,
        sessions=[SessionSummary.model_validate(s) for s in history.sessions],
    )
