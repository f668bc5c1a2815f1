"""
Exam Autograder - Grading Engine Tests
"""
import asyncio
import math

import pytest

from autograder.ai.answer_evaluator import FALLBACK_FEEDBACK
from autograder.services.grading import PASS_THRESHOLD, GradingEngine
from autograder.services.types import MultipleChoiceQuestion, ShortAnswerQuestion


def mcq(id: str = "q1", max_marks: int = 2) -> MultipleChoiceQuestion:
    return MultipleChoiceQuestion(
        id=id,
        text="What is 2+2?",
        options=("3", "4", "5", "6"),
        reference_answer="4",
        max_marks=max_marks,
    )


def short(id: str = "s1", text: str = "Explain photosynthesis.", max_marks: int = 5) -> ShortAnswerQuestion:
    return ShortAnswerQuestion(
        id=id,
        text=text,
        reference_answer="Expected answer based on course material",
        max_marks=max_marks,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("answer", ["4", "  4  ", "4\n"])
async def test_mcq_exact_match_scores_full_marks(grading_engine, evaluator, answer):
    record = await grading_engine.grade_question(mcq(), answer)
    
    assert record.is_correct is True
    assert record.marks_obtained == 2
    assert record.max_marks == 2
    assert record.correct_answer == "4"
    assert record.student_answer == answer
    assert evaluator.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("answer", ["3", "four", "", "4.0", " 5 "])
async def test_mcq_anything_else_scores_zero(grading_engine, answer):
    record = await grading_engine.grade_question(mcq(), answer)
    assert record.is_correct is False
    assert record.marks_obtained == 0


@pytest.mark.asyncio
async def test_mcq_match_is_case_sensitive(grading_engine):
    question = MultipleChoiceQuestion(
        id="q2", text="Pick", options=("Alpha", "Beta", "Gamma", "Delta"),
        reference_answer="Beta", max_marks=1,
    )
    assert (await grading_engine.grade_question(question, "beta")).is_correct is False
    assert (await grading_engine.grade_question(question, "Beta")).is_correct is True


@pytest.mark.asyncio
@pytest.mark.parametrize("answer", ["", "   ", "\n\t", None])
async def test_blank_short_answer_never_scores(grading_engine, evaluator, answer):
    record = await grading_engine.grade_question(short(), answer)
    
    assert record.marks_obtained == 0
    assert record.is_correct is False
    assert evaluator.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("similarity, marks, correct", [
    (1.0, 5, True),
    (0.8, 4, True),
    (0.7, 4, True),   # 3.5 rounds half up
    (0.5, 3, False),  # 2.5 rounds half up
    (0.3, 2, False),
    (0.0, 0, False),
])
async def test_short_answer_marks_follow_similarity(make_evaluator, similarity, marks, correct):
    evaluator = make_evaluator(similarity=similarity)
    engine = GradingEngine(evaluator)
    
    record = await engine.grade_question(short(max_marks=5), "Plants turn light into sugar")
    
    assert record.marks_obtained == marks
    assert record.is_correct is correct
    assert record.is_correct == (similarity >= PASS_THRESHOLD)
    assert record.grading_details.similarity_score == pytest.approx(similarity)
    assert record.degraded is False
    assert evaluator.calls[0]["question_text"] == "Explain photosynthesis."


@pytest.mark.asyncio
async def test_short_answer_keeps_evaluator_feedback(grading_engine):
    record = await grading_engine.grade_question(short(), "an answer")
    assert record.feedback == "Good understanding shown"
    assert record.grading_details.key_concepts_matched == ["core idea"]
    assert record.grading_details.improvement_suggestions == "Add an example"
    assert record.model_used == "stub-model"


@pytest.mark.asyncio
@pytest.mark.parametrize("max_marks", [1, 2, 3, 5])
async def test_raising_evaluator_uses_degraded_policy(make_evaluator, max_marks):
    engine = GradingEngine(make_evaluator(error=ConnectionError("network down")))
    
    record = await engine.grade_question(short(max_marks=max_marks), "some text")
    
    assert record.marks_obtained == math.ceil(max_marks * 0.7)
    assert record.is_correct is True
    assert record.feedback == FALLBACK_FEEDBACK
    assert record.degraded is True


@pytest.mark.asyncio
async def test_evaluator_fallback_result_uses_same_policy(make_evaluator):
    raising = GradingEngine(make_evaluator(error=TimeoutError()))
    degraded = GradingEngine(make_evaluator(degraded=True))
    
    a = await raising.grade_question(short(max_marks=2), "some text")
    b = await degraded.grade_question(short(max_marks=2), "some text")
    
    assert (a.marks_obtained, a.is_correct) == (b.marks_obtained, b.is_correct) == (2, True)


@pytest.mark.asyncio
async def test_batch_preserves_question_order_under_reversed_latency(make_evaluator):
    questions = [short(id=f"s{i}", text=f"Question {i}") for i in range(5)]
    # First question finishes last
    evaluator = make_evaluator(delays={f"Question {i}": 0.05 * (5 - i) for i in range(5)})
    engine = GradingEngine(evaluator)
    
    records = await engine.grade_exam(questions, {q.id: f"answer {q.id}" for q in questions})
    
    assert [r.question_id for r in records] == [q.id for q in questions]
    assert [r.student_answer for r in records] == [f"answer s{i}" for i in range(5)]


@pytest.mark.asyncio
async def test_batch_grades_missing_answers_as_blank(grading_engine, evaluator):
    questions = [mcq(id="m1"), short(id="s1"), short(id="s2", text="Other")]
    
    records = await grading_engine.grade_exam(questions, {"m1": "4", "s2": "ok"})
    
    assert [r.marks_obtained for r in records] == [2, 0, 4]
    assert records[1].student_answer == ""
    assert len(evaluator.calls) == 1


@pytest.mark.asyncio
async def test_batch_issues_every_evaluator_call_before_any_returns(make_evaluator):
    questions = [short(id=f"s{i}", text=f"Question {i}") for i in range(4)]
    gate = asyncio.Event()
    evaluator = make_evaluator(gate=gate)
    engine = GradingEngine(evaluator)
    
    task = asyncio.create_task(
        engine.grade_exam(questions, {q.id: f"answer {q.id}" for q in questions})
    )
    
    async def all_calls_started():
        while len(evaluator.calls) < len(questions):
            await asyncio.sleep(0.01)
    
    # Every call blocks on the gate, so only concurrent grading gets this far
    try:
        await asyncio.wait_for(all_calls_started(), timeout=2.0)
    finally:
        gate.set()
    records = await asyncio.wait_for(task, timeout=2.0)
    
    assert [r.question_id for r in records] == [q.id for q in questions]
    assert all(r.marks_obtained == 4 for r in records)


@pytest.mark.asyncio
async def test_short_answer_keeps_rubric_breakdown(grading_engine):
    record = await grading_engine.grade_question(short(), "an answer")
    
    assert record.grading_details.grading_breakdown == {
        "understanding": 2.5, "details": 1.0, "clarity": 1.0,
    }
    stored = record.to_dict()
    assert stored["grading_details"]["grading_breakdown"]["understanding"] == 2.5


@pytest.mark.asyncio
async def test_degraded_answer_has_no_breakdown(make_evaluator):
    engine = GradingEngine(make_evaluator(degraded=True))
    record = await engine.grade_question(short(), "an answer")
    assert record.grading_details.grading_breakdown == {}
