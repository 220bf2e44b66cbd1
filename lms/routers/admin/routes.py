import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from lms.dependencies import get_db, require_role
from lms.models import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER, STAFF_ROLES, User, UserProgress
from lms.schemas.account import AdminUserUpdate, BalanceIn, PasswordReset
from lms.services import billing
from lms.services.progress import course_progress
from lms.services.registration import reset_password, update_profile

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

admin_required = require_role(ROLE_ADMIN)


def _get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/users", name="admin.users")
def list_users(
    role: str | None = None,
    current_user: User = Depends(admin_required),
    session: Session = Depends(get_db),
):
    query = select(User)
    if role:
        query = query.where(User.role == role)
    users = session.execute(query.order_by(User.created_at.desc())).scalars().all()
    return [user.to_dict() for user in users]


@router.patch("/users/{user_id}", name="admin.update_user")
def update_user(
    user_id: int,
    payload: AdminUserUpdate,
    current_user: User = Depends(admin_required),
    session: Session = Depends(get_db),
):
    user = _get_user(session, user_id)
    if user.role in STAFF_ROLES:
        raise HTTPException(status_code=403, detail="Cannot edit staff accounts. Only student accounts can be edited.")
    if payload.role == ROLE_TEACHER:
        raise HTTPException(
            status_code=403,
            detail="Cannot change student role to teacher. Only student and admin roles are allowed.",
        )
    if payload.role is not None and payload.role not in (ROLE_STUDENT, ROLE_ADMIN):
        raise HTTPException(status_code=400, detail="Invalid role")
    update_profile(session, user, payload, role=payload.role)
    log.info("Admin %s updated user %s", current_user.id, user.id)
    return user.to_dict()


@router.delete("/users/{user_id}", name="admin.delete_user")
def delete_user(
    user_id: int,
    current_user: User = Depends(admin_required),
    session: Session = Depends(get_db),
):
    user = _get_user(session, user_id)
    if user.id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")
    if user.role in STAFF_ROLES:
        raise HTTPException(status_code=403, detail="Cannot delete staff accounts. Only student accounts can be deleted.")
    session.delete(user)
    session.commit()
    log.info("Admin %s deleted user %s", current_user.id, user_id)
    return {"message": "User deleted successfully"}


@router.patch("/users/{user_id}/password", name="admin.reset_password")
def reset_user_password(
    user_id: int,
    payload: PasswordReset,
    current_user: User = Depends(admin_required),
    session: Session = Depends(get_db),
):
    reset_password(session, _get_user(session, user_id), payload.new_password)
    return {"success": True}


@router.post("/users/{user_id}/balance", name="admin.add_balance")
def add_balance(
    user_id: int,
    payload: BalanceIn,
    current_user: User = Depends(admin_required),
    session: Session = Depends(get_db),
):
    user = billing.add_balance(session, _get_user(session, user_id), payload.amount, current_user, payload.reason)
    return {"success": True, "balance": user.balance}


@router.get("/users/{user_id}/progress", name="admin.user_progress")
def user_progress(
    user_id: int,
    current_user: User = Depends(admin_required),
    session: Session = Depends(get_db),
):
    user = _get_user(session, user_id)
    completed = set(
        session.execute(
            select(UserProgress.chapter_id).where(UserProgress.user_id == user.id, UserProgress.is_completed.is_(True))
        ).scalars()
    )
    courses = []
    for course in billing.purchased_courses(session, user.id):
        chapters = [chapter for chapter in course.chapters if chapter.is_published]
        courses.append(
            {
                "id": course.id,
                "title": course.title,
                "progress": course_progress(session, user.id, course.id),
                "chapters": [
                    {"id": chapter.id, "title": chapter.title, "isCompleted": chapter.id in completed}
                    for chapter in chapters
                ],
            }
        )
    return {"user": user.to_dict(), "courses": courses}


@router.delete("/codes/{code_id}", name="admin.delete_code")
def delete_code(code_id: int, current_user: User = Depends(admin_required), session: Session = Depends(get_db)):
    billing.delete_code(session, code_id, current_user)
    return Response(status_code=204)
