"""
Exam Autograder - Grading Engine
Exact-match grading for multiple choice, evaluator grading for short answers
"""
import asyncio
import logging
import math
from collections.abc import Mapping, Sequence

from autograder.ai.answer_evaluator import (
    FALLBACK_FEEDBACK,
    FALLBACK_SIMILARITY,
    FALLBACK_SUGGESTIONS,
    AnswerEvaluator,
    EvaluationResult,
)
from autograder.services.types import (
    AnswerRecord,
    GradingDetail,
    MultipleChoiceQuestion,
    Question,
    ShortAnswerQuestion,
)

logger = logging.getLogger(__name__)

# Similarity at or above this counts as correct. Fixed for every question.
PASS_THRESHOLD = 0.7

BLANK_FEEDBACK = "No answer submitted"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class GradingEngine:
    """
    Grades single questions and whole exams.

    Degraded grading is uniform: whenever the evaluator reports a fallback
    result or raises, a non-blank short answer receives
    ``ceil(max_marks * 0.7)`` and counts as correct. Blank short answers
    never reach the evaluator and always score zero.
    """

    def __init__(self, evaluator: AnswerEvaluator):
        self.evaluator = evaluator

    async def grade_question(self, question: Question, student_answer: str | None) -> AnswerRecord:
        """Grade one answer. Never raises for evaluator failures."""
        answer = student_answer or ""
        if isinstance(question, MultipleChoiceQuestion):
            return self._grade_multiple_choice(question, answer)
        if isinstance(question, ShortAnswerQuestion):
            return await self._grade_short_answer(question, answer)
        raise TypeError(f"Unsupported question type: {type(question).__name__}")

    async def grade_exam(
        self,
        questions: Sequence[Question],
        answers: Mapping[str, str],
    ) -> list[AnswerRecord]:
        """
        Grade every question concurrently.

        Missing answers are graded as blank. The returned records follow
        ``questions`` order regardless of completion order.
        """
        return list(await asyncio.gather(*(
            self.grade_question(question, answers.get(question.id, ""))
            for question in questions
        )))

    def _grade_multiple_choice(self, question: MultipleChoiceQuestion, answer: str) -> AnswerRecord:
        is_correct = answer.strip() == question.reference_answer.strip()
        return AnswerRecord(
            question_id=question.id,
            question_text=question.text,
            question_type=question.kind.value,
            student_answer=answer,
            correct_answer=question.reference_answer,
            is_correct=is_correct,
            marks_obtained=question.max_marks if is_correct else 0,
            max_marks=question.max_marks,
            feedback="Correct answer" if is_correct else "Incorrect answer",
            grading_details=GradingDetail(
                similarity_score=1.0 if is_correct else 0.0,
                improvement_suggestions=(
                    "Great job!" if is_correct else "Review the correct answer carefully"
                ),
            ),
        )

    async def _grade_short_answer(self, question: ShortAnswerQuestion, answer: str) -> AnswerRecord:
        if not answer.strip():
            return self._record(
                question,
                answer,
                is_correct=False,
                marks=0,
                feedback=BLANK_FEEDBACK,
                detail=GradingDetail(similarity_score=0.0),
            )

        try:
            result = await self.evaluator.evaluate(
                student_answer=answer,
                reference_answer=question.reference_answer,
                question_text=question.text,
            )
        except Exception as e:
            logger.warning("Evaluator raised for question %s: %r", question.id, e)
            result = None

        if result is None or result.degraded:
            return self._degraded_record(question, answer, result)

        similarity = min(1.0, max(0.0, result.similarity))
        marks = min(question.max_marks, max(0, round_half_up(similarity * question.max_marks)))
        return self._record(
            question,
            answer,
            is_correct=similarity >= PASS_THRESHOLD,
            marks=marks,
            feedback=result.feedback,
            detail=GradingDetail(
                similarity_score=similarity,
                key_concepts_matched=list(result.matched_concepts),
                improvement_suggestions=result.suggestions,
                grading_breakdown=dict(result.grading_breakdown),
            ),
            model_used=result.model_used or None,
        )

    def _degraded_record(
        self,
        question: ShortAnswerQuestion,
        answer: str,
        result: EvaluationResult | None,
    ) -> AnswerRecord:
        return self._record(
            question,
            answer,
            is_correct=True,
            marks=math.ceil(question.max_marks * FALLBACK_SIMILARITY),
            feedback=FALLBACK_FEEDBACK,
            detail=GradingDetail(
                similarity_score=FALLBACK_SIMILARITY,
                improvement_suggestions=(result.suggestions if result else FALLBACK_SUGGESTIONS),
            ),
            degraded=True,
            model_used="fallback",
        )

    @staticmethod
    def _record(
        question: ShortAnswerQuestion,
        answer: str,
        *,
        is_correct: bool,
        marks: int,
        feedback: str,
        detail: GradingDetail,
        degraded: bool = False,
        model_used: str | None = None,
    ) -> AnswerRecord:
        return AnswerRecord(
            question_id=question.id,
            question_text=question.text,
            question_type=question.kind.value,
            student_answer=answer,
            correct_answer=question.reference_answer,
            is_correct=is_correct,
            marks_obtained=marks,
            max_marks=question.max_marks,
            feedback=feedback,
            grading_details=detail,
            degraded=degraded,
            model_used=model_used,
        )
