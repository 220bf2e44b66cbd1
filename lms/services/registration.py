from __future__ import annotations

import logging

import httpx
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from lms.config import settings
from lms.errors import ServiceError
from lms.models import ROLE_STUDENT, User
from lms.schemas.account import ProfileUpdate, RegisterIn
from lms.utils import normalize_grade

log = logging.getLogger(__name__)

FIRST_SECONDARY = "الصف الاول الثانوي"
SECOND_SECONDARY = "الصف الثاني الثانوي"
THIRD_SECONDARY = "الصف الثالث الثانوي"
GRADES = (FIRST_SECONDARY, SECOND_SECONDARY, THIRD_SECONDARY)

INTEGRATED_SCIENCE = "علوم متكاملة"
ELECTIVE_SUBJECTS = {"كيمياء", "فيزياء"}


class RegistrationError(ServiceError):
    pass


def validate_grade_rules(grade: str, subject: str | None, semester: str | None) -> str:
    """Check the subject and semester for a grade; returns the canonical grade label."""
    normalized = normalize_grade(grade)
    if normalized != THIRD_SECONDARY and not semester:
        raise RegistrationError("Semester is required for this grade")

    if normalized == FIRST_SECONDARY:
        if not subject or subject.strip() != INTEGRATED_SCIENCE:
            raise RegistrationError("Invalid subject for grade")
    elif normalized in (SECOND_SECONDARY, THIRD_SECONDARY):
        if not subject or not subject.strip():
            raise RegistrationError("Please select at least one subject")
        chosen = [part.strip() for part in subject.split(",")]
        if any(part not in ELECTIVE_SUBJECTS for part in chosen):
            raise RegistrationError("Invalid subject selected")
    else:
        raise RegistrationError("Invalid grade")
    return normalized


def verify_recaptcha(token: str) -> bool:
    try:
        response = httpx.post(
            settings.RECAPTCHA_VERIFY_URL,
            data={"secret": settings.RECAPTCHA_SECRET_KEY, "response": token},
            timeout=settings.RECAPTCHA_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        return response.json().get("success") is True
    except (httpx.HTTPError, ValueError):
        log.exception("reCAPTCHA verification error")
        return False


def _ensure_phones_available(
    session: Session, phone_number: str | None, parent_phone_number: str | None, exclude_id: int | None = None
) -> None:
    conditions = []
    if phone_number:
        conditions.append(User.phone_number == phone_number)
    if parent_phone_number:
        conditions.append(User.parent_phone_number == parent_phone_number)
    if not conditions:
        return
    query = select(User).where(or_(*conditions))
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    for existing in session.execute(query).scalars():
        if phone_number and existing.phone_number == phone_number:
            raise RegistrationError("Phone number already exists")
        if parent_phone_number and existing.parent_phone_number == parent_phone_number:
            raise RegistrationError("Parent phone number already exists")


def register_student(session: Session, payload: RegisterIn) -> User:
    required = (
        payload.full_name,
        payload.phone_number,
        payload.parent_phone_number,
        payload.password,
        payload.confirm_password,
        payload.grade,
    )
    if not all(required):
        raise RegistrationError("Missing required fields")

    grade = validate_grade_rules(payload.grade, payload.subject, payload.semester)

    if settings.RECAPTCHA_SECRET_KEY:
        if not payload.recaptcha_token:
            raise RegistrationError("reCAPTCHA verification is required")
        if not verify_recaptcha(payload.recaptcha_token):
            raise RegistrationError("reCAPTCHA verification failed")

    if payload.password != payload.confirm_password:
        raise RegistrationError("Passwords do not match")
    if payload.phone_number == payload.parent_phone_number:
        raise RegistrationError("Phone number cannot be the same as parent phone number")
    _ensure_phones_available(session, payload.phone_number, payload.parent_phone_number)

    user = User(
        full_name=payload.full_name.strip(),
        phone_number=payload.phone_number,
        parent_phone_number=payload.parent_phone_number,
        role=ROLE_STUDENT,
        subject=payload.subject,
        grade=grade,
        semester=None if grade == THIRD_SECONDARY else payload.semester,
    )
    user.set_password(payload.password)
    session.add(user)
    session.commit()
    log.info("Registered student %s", user.id)
    return user


def update_profile(session: Session, user: User, payload: ProfileUpdate, role: str | None = None) -> User:
    phone = payload.phone_number if payload.phone_number and payload.phone_number != user.phone_number else None
    parent = (
        payload.parent_phone_number
        if payload.parent_phone_number and payload.parent_phone_number != user.parent_phone_number
        else None
    )
    if (payload.phone_number or user.phone_number) == (payload.parent_phone_number or user.parent_phone_number):
        raise RegistrationError("Phone number cannot be the same as parent phone number")
    _ensure_phones_available(session, phone, parent, exclude_id=user.id)

    if payload.full_name is not None:
        if not payload.full_name.strip():
            raise RegistrationError("Full name is required")
        user.full_name = payload.full_name.strip()
    if phone:
        user.phone_number = phone
    if parent:
        user.parent_phone_number = parent
    if payload.grade is not None:
        user.grade = normalize_grade(payload.grade)
        if user.grade == THIRD_SECONDARY:
            user.semester = None
    if payload.subject is not None:
        user.subject = payload.subject
    if payload.semester is not None and user.grade != THIRD_SECONDARY:
        user.semester = payload.semester
    if role is not None:
        user.role = role
    session.commit()
    return user


def change_password(session: Session, user: User, current_password: str | None, new_password: str | None) -> None:
    if not current_password or not new_password:
        raise RegistrationError("Current and new password are required")
    if not user.check_password(current_password):
        raise RegistrationError("Current password is incorrect")
    user.set_password(new_password)
    session.commit()


def reset_password(session: Session, user: User, new_password: str) -> None:
    if not new_password:
        raise RegistrationError("New password is required")
    user.set_password(new_password)
    session.commit()
