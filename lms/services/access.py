from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from lms.models import Chapter, Purchase


def has_course_access(session: Session, user_id: int | None, course_id: int) -> bool:
    """A user may see paid content once a Purchase row exists for the course."""
    if user_id is None:
        return False
    purchase_id = session.execute(
        select(Purchase.id).where(Purchase.user_id == user_id, Purchase.course_id == course_id)
    ).scalar_one_or_none()
    return purchase_id is not None


def can_view_chapter(session: Session, user_id: int | None, chapter: Chapter) -> bool:
    if chapter.is_free:
        return True
    return has_course_access(session, user_id, chapter.course_id)
