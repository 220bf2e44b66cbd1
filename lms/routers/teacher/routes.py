import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from lms.dependencies import get_db, require_role
from lms.models import ROLE_ADMIN, ROLE_STUDENT, STAFF_ROLES, User
from lms.routers.courses.routes import get_owned_course
from lms.schemas.account import CodesIn, GrantCourseIn, PasswordReset
from lms.schemas.assessment import AssessmentIn, PublishIn
from lms.services import assessments, billing
from lms.services.assessments import HOMEWORK, QUIZ, AssessmentKind
from lms.services.registration import reset_password

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/teacher", tags=["teacher"])

staff_required = require_role(*STAFF_ROLES)


def _owned_assessment(session: Session, kind: AssessmentKind, assessment_id: int, user: User):
    assessment = assessments.get_for_staff(session, kind, assessment_id)
    get_owned_course(session, assessment.course_id, user)
    return assessment


def _list(session: Session, kind: AssessmentKind, course_id: int | None, user: User) -> list[dict]:
    if course_id is not None:
        get_owned_course(session, course_id, user)
    items = assessments.list_for_staff(session, kind, course_id)
    if user.role != ROLE_ADMIN:
        items = [item for item in items if item.course.user_id == user.id]
    return [assessments.assessment_dict(kind, item) for item in items]


# --- quizzes ---

@router.get("/quizzes", name="teacher.quizzes")
def list_quizzes(
    course_id: int | None = None,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    return _list(session, QUIZ, course_id, current_user)


@router.post("/quizzes", name="teacher.create_quiz")
def create_quiz(payload: AssessmentIn, current_user: User = Depends(staff_required), session: Session = Depends(get_db)):
    return assessments.assessment_dict(QUIZ, assessments.create(session, QUIZ, payload, current_user))


@router.get("/quizzes/{quiz_id}", name="teacher.quiz")
def get_quiz(quiz_id: int, current_user: User = Depends(staff_required), session: Session = Depends(get_db)):
    return assessments.assessment_dict(QUIZ, _owned_assessment(session, QUIZ, quiz_id, current_user))


@router.patch("/quizzes/{quiz_id}", name="teacher.update_quiz")
def update_quiz(
    quiz_id: int,
    payload: AssessmentIn,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    _owned_assessment(session, QUIZ, quiz_id, current_user)
    return assessments.assessment_dict(QUIZ, assessments.update(session, QUIZ, quiz_id, payload, current_user))


@router.delete("/quizzes/{quiz_id}", name="teacher.delete_quiz")
def delete_quiz(quiz_id: int, current_user: User = Depends(staff_required), session: Session = Depends(get_db)):
    _owned_assessment(session, QUIZ, quiz_id, current_user)
    assessments.delete(session, QUIZ, quiz_id)
    return Response(status_code=204)


@router.patch("/quizzes/{quiz_id}/publish", name="teacher.publish_quiz")
def publish_quiz(
    quiz_id: int,
    payload: PublishIn,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    _owned_assessment(session, QUIZ, quiz_id, current_user)
    quiz = assessments.set_published(session, QUIZ, quiz_id, payload.is_published)
    return assessments.assessment_dict(QUIZ, quiz)


@router.get("/quiz-results", name="teacher.quiz_results")
def quiz_results(
    quiz_id: int | None = None,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    if quiz_id is not None:
        _owned_assessment(session, QUIZ, quiz_id, current_user)
    return assessments.results_for_staff(session, QUIZ, current_user, quiz_id)


# --- homeworks ---

@router.get("/homeworks", name="teacher.homeworks")
def list_homeworks(
    course_id: int | None = None,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    return _list(session, HOMEWORK, course_id, current_user)


@router.post("/homeworks", name="teacher.create_homework")
def create_homework(
    payload: AssessmentIn, current_user: User = Depends(staff_required), session: Session = Depends(get_db)
):
    return assessments.assessment_dict(HOMEWORK, assessments.create(session, HOMEWORK, payload, current_user))


@router.get("/homeworks/{homework_id}", name="teacher.homework")
def get_homework(homework_id: int, current_user: User = Depends(staff_required), session: Session = Depends(get_db)):
    return assessments.assessment_dict(HOMEWORK, _owned_assessment(session, HOMEWORK, homework_id, current_user))


@router.patch("/homeworks/{homework_id}", name="teacher.update_homework")
def update_homework(
    homework_id: int,
    payload: AssessmentIn,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    _owned_assessment(session, HOMEWORK, homework_id, current_user)
    homework = assessments.update(session, HOMEWORK, homework_id, payload, current_user)
    return assessments.assessment_dict(HOMEWORK, homework)


@router.delete("/homeworks/{homework_id}", name="teacher.delete_homework")
def delete_homework(
    homework_id: int, current_user: User = Depends(staff_required), session: Session = Depends(get_db)
):
    _owned_assessment(session, HOMEWORK, homework_id, current_user)
    assessments.delete(session, HOMEWORK, homework_id)
    return Response(status_code=204)


@router.patch("/homeworks/{homework_id}/publish", name="teacher.publish_homework")
def publish_homework(
    homework_id: int,
    payload: PublishIn,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    _owned_assessment(session, HOMEWORK, homework_id, current_user)
    homework = assessments.set_published(session, HOMEWORK, homework_id, payload.is_published)
    return assessments.assessment_dict(HOMEWORK, homework)


@router.get("/homework-results", name="teacher.homework_results")
def homework_results(
    homework_id: int | None = None,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    if homework_id is not None:
        _owned_assessment(session, HOMEWORK, homework_id, current_user)
    return assessments.results_for_staff(session, HOMEWORK, current_user, homework_id)


# --- students ---

def _get_student(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.role != ROLE_STUDENT:
        raise HTTPException(status_code=403, detail="Only student accounts can be managed")
    return user


@router.get("/users", name="teacher.users")
def list_students(
    search: str | None = None,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    query = select(User).where(User.role == ROLE_STUDENT)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(User.full_name.ilike(pattern), User.phone_number.ilike(pattern)))
    students = session.execute(query.order_by(User.created_at.desc())).scalars().all()
    payload = []
    for student in students:
        data = student.to_dict()
        data["purchasedCourses"] = [
            {"id": purchase.course.id, "title": purchase.course.title} for purchase in student.purchases
        ]
        payload.append(data)
    return payload


@router.post("/users/{user_id}/courses", name="teacher.grant_course")
def grant_course(
    user_id: int,
    payload: GrantCourseIn,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    student = _get_student(session, user_id)
    get_owned_course(session, payload.course_id, current_user)
    billing.grant_course(session, student, payload.course_id)
    log.info("User %s granted course %s to student %s", current_user.id, payload.course_id, student.id)
    return {"success": True}


@router.delete("/users/{user_id}/courses/{course_id}", name="teacher.revoke_course")
def revoke_course(
    user_id: int,
    course_id: int,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    student = _get_student(session, user_id)
    get_owned_course(session, course_id, current_user)
    billing.revoke_course(session, student, course_id)
    return Response(status_code=204)


@router.patch("/users/{user_id}/password", name="teacher.reset_password")
def reset_student_password(
    user_id: int,
    payload: PasswordReset,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    reset_password(session, _get_student(session, user_id), payload.new_password)
    return {"success": True}


# --- purchase codes ---

@router.get("/codes", name="teacher.codes")
def list_codes(current_user: User = Depends(staff_required), session: Session = Depends(get_db)):
    return [code.to_dict() for code in billing.list_codes(session, current_user)]


@router.post("/codes", name="teacher.generate_codes")
def generate_codes(payload: CodesIn, current_user: User = Depends(staff_required), session: Session = Depends(get_db)):
    codes = billing.generate_codes(session, payload.course_id, payload.count, current_user)
    return [code.to_dict() for code in codes]


@router.delete("/codes/{code_id}", name="teacher.delete_code")
def delete_code(code_id: int, current_user: User = Depends(staff_required), session: Session = Depends(get_db)):
    billing.delete_code(session, code_id, current_user)
    return Response(status_code=204)
