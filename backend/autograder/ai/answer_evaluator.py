"""
Exam Autograder - Answer Evaluator
LLM rubric grading for short answers with a deterministic fallback
"""
import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from autograder.ai.llm import LLMClient
from autograder.ai.telemetry import get_tracer
from autograder.core.config import settings

logger = logging.getLogger(__name__)

RUBRIC_MAX_POINTS = 5.0
LLM_CONFIDENCE = 0.9
FALLBACK_SIMILARITY = 0.7
FALLBACK_CONFIDENCE = 0.5
FALLBACK_FEEDBACK = "Graded without AI due to service error"
FALLBACK_SUGGESTIONS = "Unable to provide detailed feedback"
FALLBACK_MODEL = "fallback"


@dataclass
class EvaluationResult:
    """Normalized evaluation of one free-text answer."""
    similarity: float
    feedback: str
    matched_concepts: list[str] = field(default_factory=list)
    suggestions: str = ""
    confidence: float = LLM_CONFIDENCE
    model_used: str = ""
    degraded: bool = False
    grading_breakdown: Dict[str, float] = field(default_factory=dict)


class AnswerEvaluator(Protocol):
    """Anything that can score a free-text answer in [0, 1]."""

    async def evaluate(
        self,
        student_answer: str,
        reference_answer: str,
        question_text: str,
    ) -> EvaluationResult:
        ...


def fallback_evaluation(student_answer: str) -> EvaluationResult:
    """Score used when the LLM cannot be reached; blank answers get nothing."""
    return EvaluationResult(
        similarity=FALLBACK_SIMILARITY if student_answer.strip() else 0.0,
        feedback=FALLBACK_FEEDBACK,
        matched_concepts=[],
        suggestions=FALLBACK_SUGGESTIONS,
        confidence=FALLBACK_CONFIDENCE,
        model_used=FALLBACK_MODEL,
        degraded=True,
    )


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class LLMAnswerEvaluator:
    """
    Lenient rubric grader backed by an LLM.

    Every call is bounded by a timeout. Any failure (no provider, timeout,
    transport error, malformed JSON) returns ``fallback_evaluation`` instead
    of raising. There are no retries here.
    """

    SYSTEM_PROMPT = (
        "You are a lenient and encouraging exam grader. Be generous with marks and "
        "focus on rewarding understanding rather than penalizing imperfections. Give "
        "students the benefit of the doubt and provide positive, constructive feedback."
    )

    PROMPT_TEMPLATE = """As a lenient and encouraging exam grader, evaluate the student's answer with generosity while providing constructive feedback.

Question: {question}

Expected Answer: {reference_answer}

Student's Answer: {student_answer}

Grading Guidelines - Be Generous:
1. Award full marks if the core concept is understood, even if wording differs
2. Give substantial partial credit for partially correct answers
3. Focus on what the student got right rather than what's missing
4. Accept alternative valid explanations or approaches
5. Don't penalize for minor wording differences or stylistic choices
6. Reward demonstrating understanding even if the answer isn't complete

The expected answer may only describe what a good answer covers; judge the
student's answer against the question itself as well.

Award marks out of 5:
1. Core understanding (max 3 points) - Award generously if main idea is present
2. Supporting details (max 1 point) - Partial credit easily given
3. Clarity (max 1 point) - Award unless completely unclear

Respond with ONLY this JSON (no markdown):
{{
    "marks": <marks out of 5>,
    "feedback": "<encouraging feedback highlighting what was done well>",
    "key_concepts_matched": ["concept1", "concept2"],
    "improvement_suggestions": "<optional gentle suggestions if needed>",
    "grading_breakdown": {{
        "understanding": <points out of 3>,
        "details": <points out of 1>,
        "clarity": <points out of 1>
    }}
}}"""

    def __init__(self, client: Optional[LLMClient] = None, timeout: Optional[float] = None):
        self.client = client or LLMClient()
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS

    async def evaluate(
        self,
        student_answer: str,
        reference_answer: str,
        question_text: str,
    ) -> EvaluationResult:
        """
        Evaluate a student's answer.

        Args:
            student_answer: The student's submitted answer
            reference_answer: Model answer or grading hint
            question_text: The question that was asked

        Returns:
            Evaluation result; ``degraded`` is set when the fallback was used
        """
        tracer = get_tracer()

        with tracer.start_as_current_span("answer_evaluator.evaluate") as span:
            span.set_attribute("evaluation.model", self.client.model)
            started = time.monotonic()
            try:
                response = await asyncio.wait_for(
                    self.client.generate_json(
                        prompt=self.PROMPT_TEMPLATE,
                        system_prompt=self.SYSTEM_PROMPT,
                        context={
                            "question": question_text,
                            "reference_answer": reference_answer,
                            "student_answer": student_answer,
                        },
                    ),
                    timeout=self.timeout,
                )
                result = self._to_result(response)
            except Exception as e:
                logger.warning("AI grading failed, using fallback: %r", e)
                span.record_exception(e)
                result = fallback_evaluation(student_answer)

            elapsed_ms = int((time.monotonic() - started) * 1000)
            span.set_attribute("evaluation.processing_time_ms", elapsed_ms)
            span.set_attribute("evaluation.similarity", result.similarity)
            span.set_attribute("evaluation.degraded", result.degraded)
            return result

    def _to_result(self, response: Dict[str, Any]) -> EvaluationResult:
        """
        Map the rubric JSON onto an EvaluationResult.

        Raises:
            ValueError: If ``marks`` is missing or not a number
        """
        marks = response.get("marks")
        if isinstance(marks, bool) or not isinstance(marks, (int, float, str)):
            raise ValueError(f"Unusable marks in evaluator response: {marks!r}")
        points = float(marks)
        if math.isnan(points):
            raise ValueError("Evaluator returned NaN marks")
        similarity = _clamp(points / RUBRIC_MAX_POINTS)

        concepts = response.get("key_concepts_matched") or []
        if not isinstance(concepts, list):
            concepts = [str(concepts)]

        breakdown = response.get("grading_breakdown") or {}
        if not isinstance(breakdown, dict):
            breakdown = {}

        confidence = response.get("confidence", LLM_CONFIDENCE)
        try:
            confidence = _clamp(float(confidence))
        except (TypeError, ValueError):
            confidence = LLM_CONFIDENCE

        return EvaluationResult(
            similarity=similarity,
            feedback=str(response.get("feedback") or ""),
            matched_concepts=[str(c) for c in concepts],
            suggestions=str(response.get("improvement_suggestions") or ""),
            confidence=confidence,
            model_used=self.client.model,
            degraded=False,
            grading_breakdown={
                str(k): float(v) for k, v in breakdown.items()
                if isinstance(v, (int, float)) and not isinstance(v, bool)
            },
        )


# Singleton instance
answer_evaluator = LLMAnswerEvaluator()
