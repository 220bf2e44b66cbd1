from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lms.dependencies import get_db, require_user
from lms.models import User
from lms.services import assessments
from lms.services.assessments import HOMEWORK, QUIZ
from lms.services.billing import purchased_courses
from lms.services.progress import course_progress

router = APIRouter(prefix="/api/student", tags=["student"])


@router.get("/courses", name="student.courses")
def my_courses(current_user: User = Depends(require_user), session: Session = Depends(get_db)):
    payload = []
    for course in purchased_courses(session, current_user.id):
        data = course.to_dict()
        data["progress"] = course_progress(session, current_user.id, course.id)
        data["chapterCount"] = sum(1 for chapter in course.chapters if chapter.is_published)
        payload.append(data)
    return payload


@router.get("/quizzes", name="student.quizzes")
def my_quizzes(current_user: User = Depends(require_user), session: Session = Depends(get_db)):
    return assessments.student_summaries(session, QUIZ, current_user.id)


@router.get("/quizzes/{quiz_id}", name="student.quiz_attempts")
def my_quiz_attempts(quiz_id: int, current_user: User = Depends(require_user), session: Session = Depends(get_db)):
    results = assessments.student_attempts(session, QUIZ, current_user.id, quiz_id)
    return [assessments.result_dict(QUIZ, result) for result in results]


@router.get("/homeworks", name="student.homeworks")
def my_homeworks(current_user: User = Depends(require_user), session: Session = Depends(get_db)):
    return assessments.student_summaries(session, HOMEWORK, current_user.id)


@router.get("/homeworks/{homework_id}", name="student.homework_attempts")
def my_homework_attempts(
    homework_id: int, current_user: User = Depends(require_user), session: Session = Depends(get_db)
):
    results = assessments.student_attempts(session, HOMEWORK, current_user.id, homework_id)
    return [assessments.result_dict(HOMEWORK, result) for result in results]
