"""
Exam Autograder - Grading Domain Types
Question variants, parsed drafts and graded answer records
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from autograder.core.exceptions import ValidationError

MIN_MCQ_OPTIONS = 4


class QuestionKind(str, Enum):
    """Question kind as stored and shown to clients."""
    MULTIPLE_CHOICE = "MCQ"
    SHORT_ANSWER = "Short"


def _check_common(text: str, max_marks: int) -> None:
    if not text or not text.strip():
        raise ValidationError("Question text must not be empty")
    if isinstance(max_marks, bool) or not isinstance(max_marks, int) or max_marks <= 0:
        raise ValidationError("Question marks must be a positive integer")


@dataclass(frozen=True)
class MultipleChoiceQuestion:
    """Graded by exact (trimmed, case-sensitive) match on ``reference_answer``."""
    id: str
    text: str
    options: tuple[str, ...]
    reference_answer: str
    max_marks: int

    kind: ClassVar[QuestionKind] = QuestionKind.MULTIPLE_CHOICE

    def __post_init__(self):
        _check_common(self.text, self.max_marks)
        if len(self.options) < MIN_MCQ_OPTIONS:
            raise ValidationError(
                f"Multiple-choice question needs at least {MIN_MCQ_OPTIONS} options"
            )
        if self.reference_answer not in self.options:
            raise ValidationError("Correct answer must be one of the options")


@dataclass(frozen=True)
class ShortAnswerQuestion:
    """Graded by the answer evaluator; ``reference_answer`` is grading context only."""
    id: str
    text: str
    reference_answer: str
    max_marks: int

    kind: ClassVar[QuestionKind] = QuestionKind.SHORT_ANSWER

    def __post_init__(self):
        _check_common(self.text, self.max_marks)

    @property
    def options(self) -> tuple[str, ...]:
        return ()


Question = Union[MultipleChoiceQuestion, ShortAnswerQuestion]


def make_question(
    kind: str,
    id: str,
    text: str,
    options: list[str] | tuple[str, ...] | None,
    reference_answer: str,
    max_marks: int,
) -> Question:
    """Build the question variant for a stored ``kind`` tag."""
    if kind == QuestionKind.MULTIPLE_CHOICE.value:
        return MultipleChoiceQuestion(
            id=id,
            text=text,
            options=tuple(options or ()),
            reference_answer=reference_answer,
            max_marks=max_marks,
        )
    if kind == QuestionKind.SHORT_ANSWER.value:
        if options:
            raise ValidationError("Short-answer questions take no options")
        return ShortAnswerQuestion(
            id=id,
            text=text,
            reference_answer=reference_answer,
            max_marks=max_marks,
        )
    raise ValidationError(f"Unknown question type: {kind}")


@dataclass(frozen=True)
class QuestionDraft:
    """A parsed question before the catalog assigns it an id."""
    kind: QuestionKind
    text: str
    reference_answer: str
    max_marks: int
    question_number: int
    options: tuple[str, ...] = ()

    def validate(self) -> Question:
        """Run the variant invariants without an id."""
        return make_question(
            self.kind.value, "", self.text, self.options, self.reference_answer, self.max_marks
        )


@dataclass(frozen=True)
class GradingDetail:
    similarity_score: float
    key_concepts_matched: list[str] = field(default_factory=list)
    improvement_suggestions: str = ""
    grading_breakdown: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class AnswerRecord:
    """One graded question. Created once per question per session."""
    question_id: str
    question_text: str
    question_type: str
    student_answer: str
    correct_answer: str
    is_correct: bool
    marks_obtained: int
    max_marks: int
    feedback: str
    grading_details: GradingDetail
    degraded: bool = False
    model_used: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnswerRecord":
        details = data.get("grading_details") or {}
        return cls(
            question_id=data["question_id"],
            question_text=data["question_text"],
            question_type=data["question_type"],
            student_answer=data.get("student_answer", ""),
            correct_answer=data.get("correct_answer", ""),
            is_correct=bool(data["is_correct"]),
            marks_obtained=int(data["marks_obtained"]),
            max_marks=int(data["max_marks"]),
            feedback=data.get("feedback", ""),
            grading_details=GradingDetail(
                similarity_score=float(details.get("similarity_score", 0.0)),
                key_concepts_matched=list(details.get("key_concepts_matched") or []),
                improvement_suggestions=details.get("improvement_suggestions") or "",
                grading_breakdown=dict(details.get("grading_breakdown") or {}),
            ),
            degraded=bool(data.get("degraded", False)),
            model_used=data.get("model_used"),
        )


@dataclass(frozen=True)
class ExamScore:
    marks_obtained: int
    total_marks: int
    percentage: float


def compute_score(answers: list[AnswerRecord], total_marks: int) -> ExamScore:
    """Aggregate a session's marks; percentage is 0 when the exam carries no marks."""
    obtained = sum(a.marks_obtained for a in answers)
    percentage = (obtained / total_marks) * 100 if total_marks > 0 else 0.0
    return ExamScore(marks_obtained=obtained, total_marks=total_marks, percentage=percentage)
