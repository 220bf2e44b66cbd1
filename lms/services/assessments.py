"""Quizzes and homeworks: authoring, student view, submission and results.

Both families have the same shape (assessment -> questions, result -> answers),
so every function here takes an :class:`AssessmentKind` naming the tables.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from lms.errors import Forbidden, NotFound, ServiceError
from lms.models import (
    MULTIPLE_CHOICE,
    QUESTION_TYPES,
    ROLE_ADMIN,
    SHORT_ANSWER,
    TRUE_FALSE,
    Course,
    Homework,
    HomeworkAnswer,
    HomeworkQuestion,
    HomeworkResult,
    Quiz,
    QuizAnswer,
    QuizQuestion,
    QuizResult,
    User,
    dump_options,
    parse_options,
)
from lms.schemas.assessment import AssessmentIn, QuestionIn
from lms.services.access import has_course_access
from lms.services.content import get_course_or_404, next_position, position_taken
from lms.services.grading import GradeReport, grade, gradable, valid_options

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssessmentKind:
    name: str
    label: str
    model: type
    question_model: type
    result_model: type
    answer_model: type
    parent_fk: str

    def parent_column(self, model):
        return getattr(model, self.parent_fk)


QUIZ = AssessmentKind("quiz", "Quiz", Quiz, QuizQuestion, QuizResult, QuizAnswer, "quiz_id")
HOMEWORK = AssessmentKind(
    "homework", "Homework", Homework, HomeworkQuestion, HomeworkResult, HomeworkAnswer, "homework_id"
)


class AssessmentError(ServiceError):
    pass


# --- serialization ---

def question_dict(question, include_answer: bool = True) -> dict:
    data = {
        "id": question.id,
        "text": question.text,
        "type": question.type,
        "options": parse_options(question.options),
        "points": question.points,
        "imageUrl": question.image_url,
        "position": question.position,
    }
    if include_answer:
        data["correctAnswer"] = question.correct_answer
    return data


def assessment_dict(kind: AssessmentKind, assessment, include_answers: bool = True) -> dict:
    return {
        "id": assessment.id,
        "courseId": assessment.course_id,
        "course": {"id": assessment.course.id, "title": assessment.course.title} if assessment.course else None,
        "title": assessment.title,
        "description": assessment.description,
        "position": assessment.position,
        "isPublished": assessment.is_published,
        "timer": assessment.timer,
        "maxAttempts": assessment.max_attempts,
        "questions": [question_dict(q, include_answers) for q in assessment.questions],
    }


def result_dict(kind: AssessmentKind, result) -> dict:
    answers = sorted(result.answers, key=lambda a: a.question.position if a.question else 0)
    return {
        "id": result.id,
        "studentId": result.student_id,
        f"{kind.name}Id": getattr(result, kind.parent_fk),
        "score": result.score,
        "totalPoints": result.total_points,
        "percentage": result.percentage,
        "attemptNumber": result.attempt_number,
        "submittedAt": result.submitted_at,
        "answers": [
            {
                "questionId": answer.question_id,
                "studentAnswer": answer.student_answer,
                "correctAnswer": answer.correct_answer,
                "isCorrect": answer.is_correct,
                "pointsEarned": answer.points_earned,
                "question": question_dict(answer.question, include_answer=False) if answer.question else None,
            }
            for answer in answers
        ],
    }


# --- authoring ---

def validate_questions(questions: list[QuestionIn], require_text: bool = True) -> None:
    if not questions:
        raise AssessmentError("At least one question is required")
    for number, question in enumerate(questions, start=1):
        has_text = bool(question.text and question.text.strip())
        if require_text and not has_text:
            raise AssessmentError(f"Question {number}: Text is required")
        if not has_text and not question.image_url:
            raise AssessmentError(f"Question {number}: Text or image is required")
        if question.type not in QUESTION_TYPES:
            raise AssessmentError(f"Question {number}: Unknown question type")

        if question.type == MULTIPLE_CHOICE:
            if not question.options or len(question.options) < 2:
                raise AssessmentError(f"Question {number}: At least 2 options are required")
            options = valid_options(question.options)
            if len(options) < 2:
                raise AssessmentError(f"Question {number}: At least 2 valid options are required")
            index = question.correct_answer
            if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(options):
                raise AssessmentError(f"Question {number}: Valid correct answer index is required")
        elif question.type == TRUE_FALSE:
            if question.correct_answer not in ("true", "false"):
                raise AssessmentError(f'Question {number}: Correct answer must be "true" or "false"')
        elif question.type == SHORT_ANSWER:
            if question.correct_answer is None or not str(question.correct_answer).strip():
                raise AssessmentError(f"Question {number}: Correct answer is required")

        if not question.points or question.points <= 0 or not float(question.points).is_integer():
            raise AssessmentError(f"Question {number}: Points must be greater than 0")


def _stored_correct_answer(question: QuestionIn) -> str:
    if question.type == MULTIPLE_CHOICE:
        # authoring works with an index; rows keep the option text
        return valid_options(question.options)[question.correct_answer].strip()
    return str(question.correct_answer).strip()


def _build_questions(kind: AssessmentKind, questions: list[QuestionIn]) -> list:
    rows = []
    for position, question in enumerate(questions, start=1):
        rows.append(
            kind.question_model(
                text=question.text,
                type=question.type,
                options=dump_options(question.options) if question.type == MULTIPLE_CHOICE else None,
                correct_answer=_stored_correct_answer(question),
                points=int(question.points),
                image_url=question.image_url or None,
                position=position,
            )
        )
    return rows


def _ensure_can_author(course: Course, user: User) -> None:
    if user.role != ROLE_ADMIN and course.user_id != user.id:
        raise Forbidden("Forbidden")


def _resolve_position(
    session: Session, course_id: int, requested: int | None, exclude: tuple[str, int] | None = None
) -> int:
    if not requested or requested <= 0:
        return next_position(session, course_id)
    if position_taken(session, course_id, requested, exclude):
        raise AssessmentError("Position is already taken")
    return requested


def create(session: Session, kind: AssessmentKind, payload: AssessmentIn, user: User):
    if not payload.title or not payload.title.strip():
        raise AssessmentError("Title is required")
    if not payload.course_id:
        raise AssessmentError("Course ID is required")
    course = get_course_or_404(session, payload.course_id)
    _ensure_can_author(course, user)
    validate_questions(payload.questions)

    position = _resolve_position(session, course.id, payload.position)

    assessment = kind.model(
        title=payload.title.strip(),
        description=payload.description,
        course_id=course.id,
        position=position,
        timer=payload.timer or None,
        max_attempts=payload.max_attempts or 1,
    )
    assessment.questions = _build_questions(kind, payload.questions)
    session.add(assessment)
    session.commit()
    log.info("%s %s created in course %s by user %s", kind.label, assessment.id, course.id, user.id)
    return assessment


def get_for_staff(session: Session, kind: AssessmentKind, assessment_id: int):
    assessment = session.get(kind.model, assessment_id)
    if not assessment:
        raise NotFound(f"{kind.label} not found")
    return assessment


def list_for_staff(session: Session, kind: AssessmentKind, course_id: int | None = None) -> list:
    query = select(kind.model)
    if course_id is not None:
        query = query.where(kind.model.course_id == course_id)
    return session.execute(query.order_by(kind.model.course_id, kind.model.position)).scalars().all()


def update(session: Session, kind: AssessmentKind, assessment_id: int, payload: AssessmentIn, user: User):
    assessment = get_for_staff(session, kind, assessment_id)
    if not payload.title or not payload.title.strip():
        raise AssessmentError("Title is required")
    validate_questions(payload.questions, require_text=False)

    this = (kind.name, assessment.id)
    if payload.course_id and payload.course_id != assessment.course_id:
        target = get_course_or_404(session, payload.course_id)
        _ensure_can_author(target, user)
        # the old slot means nothing in the new course
        assessment.position = _resolve_position(session, target.id, payload.position, this)
        assessment.course_id = target.id
    elif payload.position and payload.position > 0 and payload.position != assessment.position:
        assessment.position = _resolve_position(session, assessment.course_id, payload.position, this)
    assessment.title = payload.title.strip()
    assessment.description = payload.description
    assessment.timer = payload.timer or None
    assessment.max_attempts = payload.max_attempts or 1

    # questions are replaced wholesale; stored answers keep their snapshot values
    for result in assessment.results:
        for answer in list(result.answers):
            session.delete(answer)
    assessment.questions.clear()
    session.flush()
    assessment.questions = _build_questions(kind, payload.questions)
    session.commit()
    return assessment


def delete(session: Session, kind: AssessmentKind, assessment_id: int) -> None:
    assessment = get_for_staff(session, kind, assessment_id)
    session.delete(assessment)
    session.commit()


def set_published(session: Session, kind: AssessmentKind, assessment_id: int, is_published: bool):
    assessment = get_for_staff(session, kind, assessment_id)
    assessment.is_published = is_published
    session.commit()
    return assessment


# --- students ---

def _ensure_purchased(session: Session, user_id: int, course_id: int) -> None:
    if not has_course_access(session, user_id, course_id):
        raise Forbidden("Course access required")


def get_published(session: Session, kind: AssessmentKind, course_id: int, assessment_id: int):
    assessment = session.get(kind.model, assessment_id)
    if not assessment or assessment.course_id != course_id or not assessment.is_published:
        raise NotFound(f"{kind.label} not found")
    return assessment


def attempts_taken(session: Session, kind: AssessmentKind, user_id: int, assessment_id: int) -> int:
    return len(
        session.execute(
            select(kind.result_model.id).where(
                kind.result_model.student_id == user_id,
                kind.parent_column(kind.result_model) == assessment_id,
            )
        ).all()
    )


def student_view(session: Session, kind: AssessmentKind, course_id: int, assessment_id: int, user_id: int) -> dict:
    _ensure_purchased(session, user_id, course_id)
    assessment = get_published(session, kind, course_id, assessment_id)
    previous = attempts_taken(session, kind, user_id, assessment.id)
    data = assessment_dict(kind, assessment, include_answers=False)
    data.update(
        {
            "currentAttempt": previous + 1,
            "previousAttempts": previous,
            "canAttempt": previous < assessment.max_attempts,
        }
    )
    return data


def submit(
    session: Session, kind: AssessmentKind, course_id: int, assessment_id: int, user_id: int, answers: dict[int, str]
):
    """Grade a submission and store it as a new, immutable result row."""
    _ensure_purchased(session, user_id, course_id)
    assessment = get_published(session, kind, course_id, assessment_id)
    previous = attempts_taken(session, kind, user_id, assessment.id)
    if previous >= assessment.max_attempts:
        raise AssessmentError("Maximum attempts reached")

    report: GradeReport = grade([gradable(q) for q in assessment.questions], answers)
    result = kind.result_model(
        student_id=user_id,
        score=report.score,
        total_points=report.total_points,
        percentage=report.percentage,
        attempt_number=previous + 1,
    )
    setattr(result, kind.parent_fk, assessment.id)
    result.answers = [
        kind.answer_model(
            question_id=evaluation.question_id,
            student_answer=evaluation.student_answer,
            correct_answer=evaluation.correct_answer,
            is_correct=evaluation.is_correct,
            points_earned=evaluation.points_earned,
        )
        for evaluation in report.evaluations
    ]
    session.add(result)
    session.commit()
    session.refresh(result)
    log.info(
        "%s %s submitted by user %s: %s/%s (attempt %s)",
        kind.label, assessment.id, user_id, report.score, report.total_points, result.attempt_number,
    )
    return result


def latest_result(session: Session, kind: AssessmentKind, course_id: int, assessment_id: int, user_id: int):
    _ensure_purchased(session, user_id, course_id)
    result = session.execute(
        select(kind.result_model)
        .where(
            kind.result_model.student_id == user_id,
            kind.parent_column(kind.result_model) == assessment_id,
        )
        .order_by(kind.result_model.submitted_at.desc(), kind.result_model.id.desc())
        .limit(1)
    ).scalar_one_or_none()
    if result is None:
        raise NotFound("No result found")
    return result


def student_summaries(session: Session, kind: AssessmentKind, user_id: int) -> list[dict]:
    """Best attempt per assessment plus the number of attempts, newest submissions first."""
    results = session.execute(
        select(kind.result_model)
        .where(kind.result_model.student_id == user_id)
        .order_by(kind.result_model.submitted_at.desc(), kind.result_model.id.desc())
    ).scalars().all()

    grouped: dict[int, dict] = {}
    for result in results:
        parent_id = getattr(result, kind.parent_fk)
        entry = grouped.get(parent_id)
        if entry is None:
            parent = getattr(result, kind.name)
            grouped[parent_id] = {
                kind.name: {
                    "id": parent.id,
                    "title": parent.title,
                    "course": {"id": parent.course.id, "title": parent.course.title, "imageUrl": parent.course.image_url},
                },
                "bestResult": result,
                "totalAttempts": 1,
            }
        else:
            entry["totalAttempts"] += 1
            if result.percentage > entry["bestResult"].percentage:
                entry["bestResult"] = result

    summaries = []
    for entry in grouped.values():
        best = entry["bestResult"]
        entry["bestResult"] = {
            "id": best.id,
            "score": best.score,
            "totalPoints": best.total_points,
            "percentage": best.percentage,
            "submittedAt": best.submitted_at,
            "attemptNumber": best.attempt_number,
        }
        summaries.append(entry)
    return summaries


def student_attempts(session: Session, kind: AssessmentKind, user_id: int, assessment_id: int) -> list:
    results = session.execute(
        select(kind.result_model)
        .where(
            kind.result_model.student_id == user_id,
            kind.parent_column(kind.result_model) == assessment_id,
        )
        .order_by(kind.result_model.attempt_number.desc())
    ).scalars().all()
    if not results:
        raise NotFound(f"No {kind.name} results found")
    return results


def results_for_staff(
    session: Session, kind: AssessmentKind, user: User, assessment_id: int | None = None
) -> list[dict]:
    """Results of every assessment the caller may see; teachers only see their own courses."""
    query = select(kind.result_model)
    if assessment_id is not None:
        query = query.where(kind.parent_column(kind.result_model) == assessment_id)
    if user.role != ROLE_ADMIN:
        query = (
            query.join(kind.model, kind.parent_column(kind.result_model) == kind.model.id)
            .join(Course, kind.model.course_id == Course.id)
            .where(Course.user_id == user.id)
        )
    results = session.execute(query.order_by(kind.result_model.submitted_at.desc())).scalars().all()
    payload = []
    for result in results:
        data = result_dict(kind, result)
        parent = getattr(result, kind.name)
        data["user"] = {
            "fullName": result.student.full_name,
            "phoneNumber": result.student.phone_number,
            "grade": result.student.grade,
        }
        data[kind.name] = {"title": parent.title, "course": {"id": parent.course.id, "title": parent.course.title}}
        payload.append(data)
    return payload


def cache_key(kind: AssessmentKind, assessment_id: int) -> str:
    return f"{kind.name}-result-{assessment_id}"


def cached_result(kind: AssessmentKind, result) -> dict:
    """JSON-safe copy of a result small enough for the signed session cookie."""
    data = result_dict(kind, result)
    data["title"] = getattr(result, kind.name).title
    data["submittedAt"] = result.submitted_at.isoformat() if result.submitted_at else None
    for answer in data["answers"]:
        question = answer.pop("question")
        answer["questionText"] = question["text"] if question else None
    return data
