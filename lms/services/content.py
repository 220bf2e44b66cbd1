from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lms.errors import NotFound, ServiceError
from lms.models import Chapter, Course, Homework, HomeworkResult, Quiz, QuizResult, UserProgress
from lms.services.access import can_view_chapter
from lms.services.sequencer import CHAPTER, HOMEWORK, QUIZ, ContentItem, build_sequence, find_neighbours
from lms.services.views import count_views, has_view_limit

CONTENT_MODELS = {CHAPTER: Chapter, QUIZ: Quiz, HOMEWORK: Homework}


def get_course_or_404(session: Session, course_id: int) -> Course:
    course = session.get(Course, course_id)
    if not course:
        raise NotFound("Course not found")
    return course


def get_chapter_or_404(session: Session, course_id: int, chapter_id: int) -> Chapter:
    chapter = session.get(Chapter, chapter_id)
    if not chapter or chapter.course_id != course_id:
        raise NotFound("Chapter not found")
    return chapter


def next_position(session: Session, course_id: int) -> int:
    """Positions are shared by chapters, quizzes and homeworks of a course."""
    highest = 0
    for model in CONTENT_MODELS.values():
        value = session.execute(
            select(func.max(model.position)).where(model.course_id == course_id)
        ).scalar_one_or_none()
        highest = max(highest, value or 0)
    return highest + 1


def position_taken(
    session: Session, course_id: int, position: int, exclude: tuple[str, int] | None = None
) -> bool:
    """True when another chapter, quiz or homework of the course holds ``position``."""
    return any(
        item.position == position and (item.type, item.id) != exclude
        for item in course_sequence(session, course_id, published_only=False)
    )


def course_sequence(session: Session, course_id: int, published_only: bool = True) -> list[ContentItem]:
    families = []
    for model in (Chapter, Quiz, Homework):
        query = select(model).where(model.course_id == course_id)
        if published_only:
            query = query.where(model.is_published.is_(True))
        families.append(session.execute(query.order_by(model.position)).scalars().all())
    return build_sequence(*families)


def course_content(session: Session, course_id: int, user_id: int | None) -> list[dict]:
    """Published items of a course in position order, with the caller's progress when known."""
    get_course_or_404(session, course_id)
    completed: set[int] = set()
    quiz_results: dict[int, list[dict]] = {}
    homework_results: dict[int, list[dict]] = {}
    if user_id is not None:
        completed = set(
            session.execute(
                select(UserProgress.chapter_id)
                .join(Chapter, UserProgress.chapter_id == Chapter.id)
                .where(
                    UserProgress.user_id == user_id,
                    UserProgress.is_completed.is_(True),
                    Chapter.course_id == course_id,
                )
            ).scalars()
        )
        for result in session.execute(
            select(QuizResult).join(Quiz).where(QuizResult.student_id == user_id, Quiz.course_id == course_id)
        ).scalars():
            quiz_results.setdefault(result.quiz_id, []).append(_result_summary(result))
        for result in session.execute(
            select(HomeworkResult)
            .join(Homework)
            .where(HomeworkResult.student_id == user_id, Homework.course_id == course_id)
        ).scalars():
            homework_results.setdefault(result.homework_id, []).append(_result_summary(result))

    content = []
    for item in course_sequence(session, course_id):
        entry = {"id": item.id, "type": item.type, "position": item.position, "title": item.title}
        if item.type == CHAPTER:
            chapter = session.get(Chapter, item.id)
            entry["isFree"] = chapter.is_free
            entry["maxViews"] = chapter.max_views
            entry["isCompleted"] = item.id in completed
        elif item.type == QUIZ:
            entry["results"] = quiz_results.get(item.id, [])
        else:
            entry["results"] = homework_results.get(item.id, [])
        content.append(entry)
    return content


def _result_summary(result) -> dict:
    return {
        "id": result.id,
        "score": result.score,
        "totalPoints": result.total_points,
        "percentage": result.percentage,
    }


def chapter_detail(session: Session, chapter: Chapter, user_id: int) -> dict:
    """Chapter payload enriched with navigation, view counters and lock state."""
    sequence = course_sequence(session, chapter.course_id)
    previous, following = find_neighbours(sequence, CHAPTER, chapter.id)
    locked = not can_view_chapter(session, user_id, chapter)
    view_count = count_views(session, user_id, chapter.id)
    progress = session.execute(
        select(UserProgress).where(UserProgress.user_id == user_id, UserProgress.chapter_id == chapter.id)
    ).scalar_one_or_none()

    detail = chapter.to_dict()
    if locked:
        detail["videoUrl"] = None
    detail.update(
        {
            "isLocked": locked,
            "isCompleted": bool(progress and progress.is_completed),
            "viewCount": view_count,
            "hasExceededViews": has_view_limit(chapter.max_views) and view_count >= chapter.max_views,
            "nextChapterId": following.id if following else None,
            "nextContentType": following.type if following else None,
            "previousChapterId": previous.id if previous else None,
            "previousContentType": previous.type if previous else None,
        }
    )
    return detail


def reorder(session: Session, course_id: int, items: list[dict]) -> None:
    """Apply new positions to a mixed list of {id, type, position}. Commits."""
    positions = [item["position"] for item in items]
    if any(position <= 0 for position in positions):
        raise ServiceError("Positions must be positive")
    if len(set(positions)) != len(positions):
        raise ServiceError("Positions must be unique")
    moved = {(item["type"], item["id"]) for item in items}
    untouched = {
        existing.position
        for existing in course_sequence(session, course_id, published_only=False)
        if (existing.type, existing.id) not in moved
    }
    if untouched & set(positions):
        raise ServiceError("Positions must be unique")

    for item in items:
        model = CONTENT_MODELS.get(item["type"])
        if model is None:
            raise ServiceError(f"Unknown content type: {item['type']}")
        row = session.get(model, item["id"])
        if not row or row.course_id != course_id:
            raise NotFound(f"{item['type'].capitalize()} {item['id']} not found")
        row.position = item["position"]
    session.commit()
