from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from lms.dependencies import get_db, require_user
from lms.models import User
from lms.schemas.assessment import SubmissionIn
from lms.services import assessments
from lms.services.assessments import QUIZ

router = APIRouter(prefix="/api/courses/{course_id}/quizzes", tags=["quizzes"])


@router.get("/{quiz_id}", name="quizzes.detail")
def get_quiz(
    course_id: int,
    quiz_id: int,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    return assessments.student_view(session, QUIZ, course_id, quiz_id, current_user.id)


@router.post("/{quiz_id}/submit", name="quizzes.submit")
def submit_quiz(
    request: Request,
    course_id: int,
    quiz_id: int,
    payload: SubmissionIn,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    answers = {answer.question_id: answer.answer or "" for answer in payload.answers}
    result = assessments.submit(session, QUIZ, course_id, quiz_id, current_user.id, answers)
    request.session[assessments.cache_key(QUIZ, quiz_id)] = assessments.cached_result(QUIZ, result)
    return assessments.result_dict(QUIZ, result)


@router.get("/{quiz_id}/result", name="quizzes.result")
def get_quiz_result(
    course_id: int,
    quiz_id: int,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    result = assessments.latest_result(session, QUIZ, course_id, quiz_id, current_user.id)
    return assessments.result_dict(QUIZ, result)
