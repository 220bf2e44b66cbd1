from types import SimpleNamespace

import pytest

from lms.models import MULTIPLE_CHOICE, SHORT_ANSWER, TRUE_FALSE, dump_options
from lms.services.grading import (
    GradableQuestion,
    MultipleChoiceKey,
    ShortAnswerKey,
    TrueFalseKey,
    gradable,
    grade,
    key_for_question,
)


def _question(id, type, correct_answer, points=1, options=None):
    return SimpleNamespace(
        id=id, type=type, correct_answer=correct_answer, points=points, options=dump_options(options)
    )


def test_multiple_choice_compares_trimmed_option_text():
    key = MultipleChoiceKey(options=("a", "b", "c"), correct_index=1)
    assert key.matches("b")
    assert key.matches(" b ")
    assert not key.matches("B")
    assert not key.matches("1")


def test_true_false_is_exact():
    key = TrueFalseKey(value=True)
    assert key.matches("true")
    assert not key.matches("True")
    assert not key.matches(" true")


def test_short_answer_trims_student_answer():
    key = ShortAnswerKey(text="H2O")
    assert key.matches("  H2O ")
    assert not key.matches("h2o")


def test_key_for_stored_multiple_choice_resolves_literal():
    key = key_for_question(_question(1, MULTIPLE_CHOICE, "b", options=["a", " ", "b"]))
    assert key.options == ("a", "b")
    assert key.correct_index == 1
    assert key.correct_text == "b"


def test_key_for_multiple_choice_with_unknown_literal_never_matches():
    key = key_for_question(_question(1, MULTIPLE_CHOICE, "z", options=["a", "b"]))
    assert key.correct_index is None
    assert not key.matches("z")


def test_key_for_unknown_type_raises():
    with pytest.raises(ValueError):
        key_for_question(_question(1, "ESSAY", "x"))


def test_grade_sums_points_without_partial_credit():
    questions = [
        GradableQuestion(1, 2, MultipleChoiceKey(("a", "b", "c"), 1)),
        GradableQuestion(2, 3, TrueFalseKey(False)),
        GradableQuestion(3, 5, ShortAnswerKey("Newton")),
    ]
    report = grade(questions, {1: " b ", 2: "true", 3: "Newton"})

    assert report.total_points == 10
    assert report.score == 7
    assert report.percentage == pytest.approx(70.0)
    assert [e.is_correct for e in report.evaluations] == [True, False, True]
    assert [e.points_earned for e in report.evaluations] == [2, 0, 5]
    assert report.evaluations[1].correct_answer == "false"


def test_missing_answers_grade_as_empty():
    report = grade([GradableQuestion(1, 4, ShortAnswerKey("x"))], {})
    assert report.evaluations[0].student_answer == ""
    assert report.score == 0


def test_percentage_is_zero_without_points():
    report = grade([], {})
    assert report.total_points == 0
    assert report.percentage == 0.0


def test_percentage_is_not_rounded():
    questions = [GradableQuestion(i, 1, TrueFalseKey(True)) for i in range(1, 4)]
    report = grade(questions, {1: "true"})
    assert report.percentage == pytest.approx(100 / 3)


def test_stored_questions_grade_end_to_end():
    stored = [
        _question(10, TRUE_FALSE, "true", points=1),
        _question(11, SHORT_ANSWER, " Fe ", points=2),
    ]
    report = grade([gradable(q) for q in stored], {10: "true", 11: "Fe"})
    assert report.score == 3
    assert report.percentage == 100.0
