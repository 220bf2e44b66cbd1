"""Grading of quiz and homework submissions.

Each stored question is turned into an answer key whose variant depends on the
question type. Keys decide correctness on their own; :func:`grade` only sums
points. There is no partial credit: a question earns its full points or zero.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence, Union

from lms.models import MULTIPLE_CHOICE, SHORT_ANSWER, TRUE_FALSE, parse_options


@dataclass(frozen=True)
class MultipleChoiceKey:
    options: tuple[str, ...]
    correct_index: int | None

    @property
    def correct_text(self) -> str:
        if self.correct_index is None or not 0 <= self.correct_index < len(self.options):
            return ""
        return self.options[self.correct_index].strip()

    def matches(self, answer: str) -> bool:
        # compared against the option text, never the index
        if self.correct_index is None:
            return False
        return answer.strip() == self.correct_text


@dataclass(frozen=True)
class TrueFalseKey:
    value: bool

    @property
    def correct_text(self) -> str:
        return "true" if self.value else "false"

    def matches(self, answer: str) -> bool:
        return answer == self.correct_text


@dataclass(frozen=True)
class ShortAnswerKey:
    text: str

    @property
    def correct_text(self) -> str:
        return self.text

    def matches(self, answer: str) -> bool:
        return answer.strip() == self.text


AnswerKey = Union[MultipleChoiceKey, TrueFalseKey, ShortAnswerKey]


@dataclass(frozen=True)
class GradableQuestion:
    id: int
    points: int
    key: AnswerKey


@dataclass(frozen=True)
class QuestionEvaluation:
    question_id: int
    student_answer: str
    correct_answer: str
    is_correct: bool
    points_earned: int


@dataclass
class GradeReport:
    evaluations: list[QuestionEvaluation] = field(default_factory=list)
    score: int = 0
    total_points: int = 0

    @property
    def percentage(self) -> float:
        if self.total_points <= 0:
            return 0.0
        return self.score / self.total_points * 100


def valid_options(options: Sequence[str] | None) -> list[str]:
    """Options that survive authoring: non-empty once whitespace is stripped."""
    return [option for option in (options or []) if option and option.strip()]


def key_for_question(question) -> AnswerKey:
    """Build the answer key for a stored QuizQuestion/HomeworkQuestion row."""
    if question.type == MULTIPLE_CHOICE:
        options = tuple(valid_options(parse_options(question.options)))
        stored = (question.correct_answer or "").strip()
        correct_index = next(
            (index for index, option in enumerate(options) if option.strip() == stored),
            None,
        )
        return MultipleChoiceKey(options=options, correct_index=correct_index)
    if question.type == TRUE_FALSE:
        return TrueFalseKey(value=question.correct_answer == "true")
    if question.type == SHORT_ANSWER:
        return ShortAnswerKey(text=(question.correct_answer or "").strip())
    raise ValueError(f"Unknown question type: {question.type!r}")


def gradable(question) -> GradableQuestion:
    return GradableQuestion(id=question.id, points=question.points, key=key_for_question(question))


def grade(questions: Sequence[GradableQuestion], answers: Mapping[int, str]) -> GradeReport:
    """Grade submitted answers (keyed by question id); unanswered questions grade as ""."""
    report = GradeReport()
    for question in questions:
        submitted = answers.get(question.id)
        submitted = "" if submitted is None else str(submitted)
        is_correct = question.key.matches(submitted)
        earned = question.points if is_correct else 0
        report.total_points += question.points
        report.score += earned
        report.evaluations.append(
            QuestionEvaluation(
                question_id=question.id,
                student_answer=submitted,
                correct_answer=question.key.correct_text,
                is_correct=is_correct,
                points_earned=earned,
            )
        )
    return report
