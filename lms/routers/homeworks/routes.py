from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from lms.dependencies import get_db, require_user
from lms.models import User
from lms.schemas.assessment import SubmissionIn
from lms.services import assessments
from lms.services.assessments import HOMEWORK

router = APIRouter(prefix="/api/courses/{course_id}/homeworks", tags=["homeworks"])


@router.get("/{homework_id}", name="homeworks.detail")
def get_homework(
    course_id: int,
    homework_id: int,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    return assessments.student_view(session, HOMEWORK, course_id, homework_id, current_user.id)


@router.post("/{homework_id}/submit", name="homeworks.submit")
def submit_homework(
    request: Request,
    course_id: int,
    homework_id: int,
    payload: SubmissionIn,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    answers = {answer.question_id: answer.answer or "" for answer in payload.answers}
    result = assessments.submit(session, HOMEWORK, course_id, homework_id, current_user.id, answers)
    request.session[assessments.cache_key(HOMEWORK, homework_id)] = assessments.cached_result(HOMEWORK, result)
    return assessments.result_dict(HOMEWORK, result)


@router.get("/{homework_id}/result", name="homeworks.result")
def get_homework_result(
    course_id: int,
    homework_id: int,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    result = assessments.latest_result(session, HOMEWORK, course_id, homework_id, current_user.id)
    return assessments.result_dict(HOMEWORK, result)
