"""
Exam Autograder - Content Parser
Turns teacher-authored text blocks into question drafts
"""
import logging
import re
from dataclasses import dataclass, field

from autograder.core.exceptions import ValidationError
from autograder.services.types import MIN_MCQ_OPTIONS, QuestionDraft, QuestionKind

logger = logging.getLogger(__name__)

QUESTION_RE = re.compile(r"^\d+\.\s*(.+)")
OPTION_RE = re.compile(r"^[A-D][\.\)]\s*(.+)")
CORRECT_RE = re.compile(r"\(?Correct:\s*([A-D])\)?", re.IGNORECASE)

SHORT_ANSWER_PLACEHOLDER = "Expected answer based on course material"


def _check_marks(default_marks: int) -> int:
    if isinstance(default_marks, bool) or not isinstance(default_marks, int) or default_marks <= 0:
        raise ValidationError("Marks per question must be a positive number")
    return default_marks


@dataclass
class _PendingQuestion:
    text: str
    options: list[str] = field(default_factory=list)
    correct_letter: str | None = None

    def finalize(self, marks: int, number: int) -> QuestionDraft | None:
        if len(self.options) < MIN_MCQ_OPTIONS:
            return None
        options = tuple(self.options[:MIN_MCQ_OPTIONS])
        answer = options[0]
        if self.correct_letter is not None:
            index = ord(self.correct_letter.upper()) - ord("A")
            if 0 <= index < len(options):
                answer = options[index]
        return QuestionDraft(
            kind=QuestionKind.MULTIPLE_CHOICE,
            text=self.text,
            options=options,
            reference_answer=answer,
            max_marks=marks,
            question_number=number,
        )


def parse_mcq_content(content: str, default_marks: int) -> list[QuestionDraft]:
    """
    Parse a multiple-choice block.

    Format::

        1. What is 2+2?
        A. 3
        B. 4
        C. 5
        D. 6
        (Correct: B)

    Questions with fewer than four options are dropped. Only the first
    four options are kept. Without a ``Correct:`` marker, option A is the
    answer.

    Raises:
        ValidationError: If no valid question was found or marks are invalid
    """
    marks = _check_marks(default_marks)
    questions: list[QuestionDraft] = []
    pending: _PendingQuestion | None = None

    def flush() -> None:
        if pending is None:
            return
        draft = pending.finalize(marks, len(questions) + 1)
        if draft is None:
            logger.info(
                "Dropping multiple-choice question with %d options: %r",
                len(pending.options), pending.text,
            )
            return
        questions.append(draft)

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        question_match = QUESTION_RE.match(line)
        if question_match:
            flush()
            pending = _PendingQuestion(text=question_match.group(1).strip())
            continue

        option_match = OPTION_RE.match(line)
        if option_match:
            if pending is not None:
                pending.options.append(option_match.group(1).strip())
            continue

        correct_match = CORRECT_RE.search(line)
        if correct_match and pending is not None:
            pending.correct_letter = correct_match.group(1)

    flush()

    if not questions:
        raise ValidationError("No valid multiple-choice questions found")
    return questions


def parse_short_content(content: str, default_marks: int) -> list[QuestionDraft]:
    """
    Parse a short-answer block: one numbered line per question.

    Raises:
        ValidationError: If no numbered question was found or marks are invalid
    """
    marks = _check_marks(default_marks)
    questions: list[QuestionDraft] = []

    for raw_line in content.splitlines():
        match = QUESTION_RE.match(raw_line.strip())
        if not match:
            continue
        questions.append(QuestionDraft(
            kind=QuestionKind.SHORT_ANSWER,
            text=match.group(1).strip(),
            reference_answer=SHORT_ANSWER_PLACEHOLDER,
            max_marks=marks,
            question_number=len(questions) + 1,
        ))

    if not questions:
        raise ValidationError("No valid short-answer questions found")
    return questions
