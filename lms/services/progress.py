from __future__ import annotations

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session

from lms.errors import Forbidden, NotFound
from lms.models import (
    Chapter,
    Homework,
    HomeworkResult,
    Quiz,
    QuizResult,
    UserProgress,
)
from lms.services.access import can_view_chapter
from lms.services.views import check_and_record_view
from lms.utils import round_half_up


class ProgressNotFound(NotFound):
    def __init__(self, detail: str = "Not Found"):
        super().__init__(detail)


def get_progress(session: Session, user_id: int, chapter_id: int) -> UserProgress | None:
    return session.execute(
        select(UserProgress).where(UserProgress.user_id == user_id, UserProgress.chapter_id == chapter_id)
    ).scalar_one_or_none()


def mark_complete(session: Session, user_id: int, chapter_id: int) -> UserProgress:
    """Upsert the (user, chapter) row with is_completed=True. Does not commit."""
    progress = get_progress(session, user_id, chapter_id)
    if progress is None:
        progress = UserProgress(user_id=user_id, chapter_id=chapter_id, is_completed=True)
        session.add(progress)
    else:
        progress.is_completed = True
    session.flush()
    return progress


def record_completion(session: Session, user_id: int, chapter: Chapter) -> UserProgress:
    """Access check, view-limit guard and upsert for one completion; commits on success."""
    if not can_view_chapter(session, user_id, chapter):
        raise Forbidden("Course access required")
    check_and_record_view(session, user_id, chapter)
    progress = mark_complete(session, user_id, chapter.id)
    session.commit()
    return progress


def reset_progress(session: Session, user_id: int, chapter_id: int) -> None:
    """Delete the completion row; ProgressNotFound when there is nothing to reset."""
    progress = get_progress(session, user_id, chapter_id)
    if progress is None:
        raise ProgressNotFound()
    session.delete(progress)
    session.commit()


def discard_progress(session: Session, user_id: int, chapter_id: int) -> bool:
    """Delete-if-exists used when a chapter page is opened."""
    try:
        reset_progress(session, user_id, chapter_id)
    except ProgressNotFound:
        return False
    return True


def is_completed(session: Session, user_id: int, chapter_id: int) -> bool:
    progress = get_progress(session, user_id, chapter_id)
    return bool(progress and progress.is_completed)


def course_progress(session: Session, user_id: int, course_id: int) -> int:
    """Completed share of the published content of a course, as a rounded percentage."""
    total_chapters = session.execute(
        select(func.count(Chapter.id)).where(Chapter.course_id == course_id, Chapter.is_published.is_(True))
    ).scalar_one()
    total_quizzes = session.execute(
        select(func.count(Quiz.id)).where(Quiz.course_id == course_id, Quiz.is_published.is_(True))
    ).scalar_one()
    total_homeworks = session.execute(
        select(func.count(Homework.id)).where(Homework.course_id == course_id, Homework.is_published.is_(True))
    ).scalar_one()
    total = total_chapters + total_quizzes + total_homeworks
    if total == 0:
        return 0

    completed_chapters = session.execute(
        select(func.count(UserProgress.id))
        .join(Chapter, UserProgress.chapter_id == Chapter.id)
        .where(
            UserProgress.user_id == user_id,
            UserProgress.is_completed.is_(True),
            Chapter.course_id == course_id,
            Chapter.is_published.is_(True),
        )
    ).scalar_one()
    # a quiz or homework counts once no matter how many attempts
    completed_quizzes = session.execute(
        select(func.count(distinct(QuizResult.quiz_id)))
        .join(Quiz, QuizResult.quiz_id == Quiz.id)
        .where(QuizResult.student_id == user_id, Quiz.course_id == course_id, Quiz.is_published.is_(True))
    ).scalar_one()
    completed_homeworks = session.execute(
        select(func.count(distinct(HomeworkResult.homework_id)))
        .join(Homework, HomeworkResult.homework_id == Homework.id)
        .where(
            HomeworkResult.student_id == user_id,
            Homework.course_id == course_id,
            Homework.is_published.is_(True),
        )
    ).scalar_one()

    completed = completed_chapters + completed_quizzes + completed_homeworks
    return round_half_up(completed / total * 100)
