"""
Exam Autograder - Exam Catalog Tests
"""
import uuid

import pytest

from autograder.core.exceptions import NotFoundError, ProtocolError, ValidationError
from autograder.services.catalog import ExamCatalog, drafts_from_payload, to_definition
from autograder.services.exam_session import ExamSessionService
from autograder.services.grading import GradingEngine
from autograder.services.results import ResultsService
from autograder.services.types import MultipleChoiceQuestion, ShortAnswerQuestion

MCQ_BLOCK = """
1. Pick the even number
A. 1
B. 2
C. 3
D. 5
(Correct: B)
"""


@pytest.fixture
def catalog(db_session, fast_retry) -> ExamCatalog:
    return ExamCatalog(db_session, fast_retry)


@pytest.mark.asyncio
async def test_create_from_content_orders_and_totals(mixed_exam):
    assert mixed_exam.total_marks == 14
    assert mixed_exam.duration_seconds == 15 * 60
    assert mixed_exam.duration == 15
    assert [q.kind for q in mixed_exam.questions] == ["MCQ", "MCQ", "Short", "Short"]
    assert [q.position for q in mixed_exam.questions] == [0, 1, 2, 3]
    assert mixed_exam.questions[0].reference_answer == "4"
    assert mixed_exam.questions[1].reference_answer == "Mars"
    assert len({q.id for q in mixed_exam.questions}) == 4


@pytest.mark.asyncio
async def test_definition_builds_question_variants(mixed_exam):
    definition = to_definition(mixed_exam)
    
    assert isinstance(definition.questions[0], MultipleChoiceQuestion)
    assert isinstance(definition.questions[2], ShortAnswerQuestion)
    assert definition.question_at(3).text == "What causes the seasons on Earth?"
    assert definition.question_at(4) is None
    assert definition.question_at(-1) is None


@pytest.mark.asyncio
async def test_create_requires_some_question(catalog):
    with pytest.raises(ValidationError):
        await catalog.create_from_content(
            title="Empty", exam_type="Mixed", duration_minutes=5,
            mcq_content="   ", short_content=None, mcq_marks=1, short_marks=1,
        )


@pytest.mark.asyncio
@pytest.mark.parametrize("title, exam_type, minutes", [
    ("", "MCQ", 10),
    ("Quiz", "Essay", 10),
    ("Quiz", "MCQ", 0),
])
async def test_create_rejects_bad_exam_fields(catalog, title, exam_type, minutes):
    with pytest.raises(ValidationError):
        await catalog.create_from_content(
            title=title, exam_type=exam_type, duration_minutes=minutes,
            mcq_content=MCQ_BLOCK, short_content=None, mcq_marks=1, short_marks=1,
        )
    assert await catalog.list_exams() == []


@pytest.mark.asyncio
async def test_get_exam_unknown_ids(catalog):
    with pytest.raises(NotFoundError):
        await catalog.get_exam(str(uuid.uuid4()))
    with pytest.raises(NotFoundError):
        await catalog.get_exam("nope")


@pytest.mark.asyncio
async def test_update_replaces_questions_and_recomputes_total(catalog, mixed_exam):
    drafts = drafts_from_payload([
        {"type": "MCQ", "text": "Pick B", "options": ["A", "B", "C", "D"], "answer": "B", "marks": 3},
        {"type": "Short", "text": "Why?", "answer": "Because", "marks": 4},
    ])
    
    exam = await catalog.update_exam(mixed_exam.id, title="Renamed", drafts=drafts)
    
    assert exam.title == "Renamed"
    assert exam.total_marks == 7
    assert [q.text for q in exam.questions] == ["Pick B", "Why?"]
    assert exam.duration_seconds == 15 * 60


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"type": "MCQ", "text": "Pick", "options": ["A", "B", "C", "D"], "answer": "E", "marks": 1},
    {"type": "MCQ", "text": "Pick", "options": ["A", "B"], "answer": "A", "marks": 1},
    {"type": "Short", "text": "  ", "answer": "x", "marks": 1},
    {"type": "Short", "text": "Why?", "answer": "x", "marks": 0},
    {"type": "Essay", "text": "Why?", "answer": "x", "marks": 1},
])
async def test_update_rejects_invalid_questions(catalog, mixed_exam, payload):
    with pytest.raises(ValidationError):
        await catalog.update_exam(mixed_exam.id, drafts=drafts_from_payload([payload]))
    
    exam = await catalog.get_exam(mixed_exam.id)
    assert exam.total_marks == 14
    assert len(exam.questions) == 4


@pytest.mark.asyncio
async def test_delete_removes_exam_and_its_sessions(
    catalog, db_session, evaluator, fast_retry, mixed_exam, sample_student
):
    sessions = ExamSessionService(db_session, GradingEngine(evaluator), retry_policy=fast_retry)
    await sessions.submit_exam(
        exam_id=str(mixed_exam.id), answers={}, duration_taken_seconds=5, **sample_student,
    )
    await sessions.start_exam(exam_id=str(mixed_exam.id), **sample_student)
    
    removed = await catalog.delete_exam(mixed_exam.id)
    
    assert removed == 2
    with pytest.raises(NotFoundError):
        await catalog.get_exam(mixed_exam.id)
    assert await ResultsService(db_session).all_results() == []


@pytest.mark.asyncio
async def test_share_link_lifecycle(catalog, mixed_exam):
    exam = await catalog.activate_link(mixed_exam.id)
    token = exam.exam_link
    assert token
    assert (await catalog.get_exam_by_link(token)).id == mixed_exam.id
    
    await catalog.deactivate_link(mixed_exam.id)
    with pytest.raises(NotFoundError):
        await catalog.get_exam_by_link(token)
    
    # Re-activation keeps the same token
    exam = await catalog.activate_link(mixed_exam.id)
    assert exam.exam_link == token
    assert exam.link_expired_at is None
    assert (await catalog.get_exam_by_link(token)).id == mixed_exam.id


@pytest.mark.asyncio
async def test_unknown_link_does_not_resolve(catalog):
    with pytest.raises(NotFoundError):
        await catalog.get_exam_by_link("missing-token")


@pytest.mark.asyncio
async def test_update_refuses_new_questions_while_sessions_in_progress(
    catalog, db_session, evaluator, fast_retry, mixed_exam, sample_student
):
    sessions = ExamSessionService(db_session, GradingEngine(evaluator), retry_policy=fast_retry)
    started = await sessions.start_exam(exam_id=str(mixed_exam.id), **sample_student)
    drafts = drafts_from_payload([
        {"type": "Short", "text": "Why?", "answer": "Because", "marks": 4},
    ])
    
    with pytest.raises(ProtocolError):
        await catalog.update_exam(mixed_exam.id, drafts=drafts)
    
    exam = await catalog.get_exam(mixed_exam.id)
    assert exam.total_marks == 14
    assert len(exam.questions) == 4
    
    # Once the session completes the questions may be replaced
    for question in to_definition(exam).questions:
        await sessions.submit_answer(started.session_id, question.id, "4")
    exam = await catalog.update_exam(mixed_exam.id, drafts=drafts)
    assert exam.total_marks == 4
