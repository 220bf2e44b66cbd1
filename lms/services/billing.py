from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from lms.config import settings
from lms.errors import Forbidden, NotFound, ServiceError
from lms.models import ROLE_ADMIN, BalanceTransaction, Course, Purchase, PurchaseCode, User
from lms.services.access import has_course_access
from lms.services.content import get_course_or_404

log = logging.getLogger(__name__)


class BillingError(ServiceError):
    pass


def _enroll(session: Session, user_id: int, course_id: int) -> Purchase:
    purchase = Purchase(user_id=user_id, course_id=course_id, status="ACTIVE")
    session.add(purchase)
    return purchase


def purchase_with_balance(session: Session, user: User, course_id: int) -> Purchase:
    course = get_course_or_404(session, course_id)
    if not course.is_published:
        raise NotFound("Course not found")
    if has_course_access(session, user.id, course.id):
        raise BillingError("Course already purchased")
    price = course.price or 0.0
    if user.balance < price:
        raise BillingError("Insufficient balance")

    if price > 0:
        user.balance = user.balance - price
        session.add(
            BalanceTransaction(
                user_id=user.id, delta=-price, reason=f"Purchase: {course.title}", source="purchase", course_id=course.id
            )
        )
    purchase = _enroll(session, user.id, course.id)
    session.commit()
    log.info("User %s purchased course %s for %.2f", user.id, course.id, price)
    return purchase


def add_balance(session: Session, user: User, amount: float, issued_by: User, reason: str | None = None) -> User:
    if amount is None or amount <= 0:
        raise BillingError("Amount must be greater than 0")
    user.balance = (user.balance or 0.0) + amount
    session.add(
        BalanceTransaction(
            user_id=user.id, delta=amount, reason=reason or "Balance top-up", source="admin", issued_by_id=issued_by.id
        )
    )
    session.commit()
    log.info("Admin %s added %.2f to user %s", issued_by.id, amount, user.id)
    return user


def _new_code(session: Session) -> str:
    while True:
        code = secrets.token_hex(6).upper()
        exists = session.execute(select(PurchaseCode.id).where(PurchaseCode.code == code)).scalar_one_or_none()
        if exists is None:
            return code


def generate_codes(session: Session, course_id: int, count: int, creator: User) -> list[PurchaseCode]:
    if count < 1 or count > settings.MAX_CODES_PER_REQUEST:
        raise BillingError(f"Count must be between 1 and {settings.MAX_CODES_PER_REQUEST}")
    course = get_course_or_404(session, course_id)
    if creator.role != ROLE_ADMIN and course.user_id != creator.id:
        raise Forbidden("Forbidden")

    codes = []
    for _ in range(count):
        code = PurchaseCode(code=_new_code(session), course_id=course.id, created_by_id=creator.id)
        session.add(code)
        session.flush()
        codes.append(code)
    session.commit()
    log.info("User %s generated %s codes for course %s", creator.id, count, course.id)
    return codes


def list_codes(session: Session, creator: User) -> list[PurchaseCode]:
    query = select(PurchaseCode).order_by(PurchaseCode.created_at.desc(), PurchaseCode.id.desc())
    if creator.role != ROLE_ADMIN:
        query = query.where(PurchaseCode.created_by_id == creator.id)
    return session.execute(query).scalars().all()


def get_code_or_404(session: Session, code_id: int) -> PurchaseCode:
    code = session.get(PurchaseCode, code_id)
    if not code:
        raise NotFound("Code not found")
    return code


def delete_code(session: Session, code_id: int, user: User) -> None:
    """Teachers delete their own codes; admins delete any."""
    code = get_code_or_404(session, code_id)
    if user.role != ROLE_ADMIN and code.created_by_id != user.id:
        raise Forbidden("Forbidden")
    session.delete(code)
    session.commit()


def redeem_code(session: Session, raw_code: str, user: User) -> Purchase:
    code = session.execute(
        select(PurchaseCode).where(PurchaseCode.code == (raw_code or "").strip().upper())
    ).scalar_one_or_none()
    if code is None:
        raise NotFound("Invalid code")
    if code.is_used:
        raise BillingError("Code has already been used")
    if has_course_access(session, user.id, code.course_id):
        raise BillingError("Course already purchased")

    code.is_used = True
    code.used_by_id = user.id
    code.used_at = datetime.now(timezone.utc)
    purchase = _enroll(session, user.id, code.course_id)
    session.commit()
    log.info("User %s redeemed code %s for course %s", user.id, code.id, code.course_id)
    return purchase


def grant_course(session: Session, user: User, course_id: int) -> Purchase:
    course = get_course_or_404(session, course_id)
    if has_course_access(session, user.id, course.id):
        raise BillingError("User already has access to this course")
    purchase = _enroll(session, user.id, course.id)
    session.commit()
    return purchase


def revoke_course(session: Session, user: User, course_id: int) -> None:
    purchase = session.execute(
        select(Purchase).where(Purchase.user_id == user.id, Purchase.course_id == course_id)
    ).scalar_one_or_none()
    if purchase is None:
        raise NotFound("Purchase not found")
    session.delete(purchase)
    session.commit()


def purchased_courses(session: Session, user_id: int) -> list[Course]:
    return session.execute(
        select(Course).join(Purchase, Purchase.course_id == Course.id).where(Purchase.user_id == user_id)
        .order_by(Purchase.created_at.desc())
    ).scalars().all()
