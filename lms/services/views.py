"""Per-chapter view limits.

Views are counted from the ChapterView log. The count and the insert are two
separate statements, so concurrent completions for the same student and
chapter can overshoot ``max_views`` by at most the number of racing requests
minus one.
"""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lms.errors import Forbidden
from lms.models import Chapter, ChapterView

log = logging.getLogger(__name__)


class ViewLimitReached(Forbidden):
    def __init__(self, detail: str = "Maximum views reached for this chapter"):
        super().__init__(detail)


def has_view_limit(max_views: int | None) -> bool:
    return max_views is not None and max_views > 0


def count_views(session: Session, student_id: int, chapter_id: int) -> int:
    return session.execute(
        select(func.count(ChapterView.id)).where(
            ChapterView.student_id == student_id,
            ChapterView.chapter_id == chapter_id,
        )
    ).scalar_one()


def has_exceeded_views(session: Session, student_id: int, chapter: Chapter) -> bool:
    if not has_view_limit(chapter.max_views):
        return False
    return count_views(session, student_id, chapter.id) >= chapter.max_views


def _ensure_below_limit(session: Session, student_id: int, chapter: Chapter) -> int:
    count = count_views(session, student_id, chapter.id)
    if has_view_limit(chapter.max_views) and count >= chapter.max_views:
        log.info("View limit reached: student=%s chapter=%s (%s/%s)", student_id, chapter.id, count, chapter.max_views)
        raise ViewLimitReached()
    return count


def check_and_record_view(session: Session, student_id: int, chapter: Chapter) -> int:
    """
    Guard run on the transition into "completed". Raises ViewLimitReached when
    the limit is used up; otherwise logs one view (only for limited chapters)
    and returns the resulting count. Does not commit.
    """
    if not has_view_limit(chapter.max_views):
        return count_views(session, student_id, chapter.id)
    count = _ensure_below_limit(session, student_id, chapter)
    session.add(ChapterView(student_id=student_id, chapter_id=chapter.id))
    return count + 1


def record_view(session: Session, student_id: int, chapter: Chapter) -> int:
    """Explicit view logging; always appends a row once the limit check passes. Does not commit."""
    if not chapter.is_published:
        raise Forbidden("Chapter is not published")
    count = _ensure_below_limit(session, student_id, chapter)
    session.add(ChapterView(student_id=student_id, chapter_id=chapter.id))
    return count + 1
