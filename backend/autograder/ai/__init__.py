"""Exam Autograder - AI grading capability."""
from autograder.ai.answer_evaluator import (
    AnswerEvaluator,
    EvaluationResult,
    LLMAnswerEvaluator,
    answer_evaluator,
)

__all__ = [
    "AnswerEvaluator",
    "EvaluationResult",
    "LLMAnswerEvaluator",
    "answer_evaluator",
]
