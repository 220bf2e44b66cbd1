import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from lms.dependencies import get_db, require_role, require_user
from lms.errors import ServiceError
from lms.models import STAFF_ROLES, Chapter, User
from lms.schemas.assessment import PublishIn
from lms.schemas.course import ChapterCreate, ChapterUpdate
from lms.routers.courses.routes import get_owned_course
from lms.services.access import has_course_access
from lms.services.content import chapter_detail, get_chapter_or_404, next_position
from lms.services.progress import record_completion, reset_progress
from lms.services.views import record_view

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/courses/{course_id}/chapters", tags=["chapters"])

staff_required = require_role(*STAFF_ROLES)


@router.post("", name="chapters.create")
def create_chapter(
    course_id: int,
    payload: ChapterCreate,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    course = get_owned_course(session, course_id, current_user)
    if not payload.title or not payload.title.strip():
        raise HTTPException(status_code=400, detail="Title is required")
    chapter = Chapter(course_id=course.id, title=payload.title.strip(), position=next_position(session, course.id))
    session.add(chapter)
    session.commit()
    return chapter.to_dict()


@router.get("/{chapter_id}", name="chapters.detail")
def get_chapter(
    course_id: int,
    chapter_id: int,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    chapter = get_chapter_or_404(session, course_id, chapter_id)
    if not chapter.is_published and not current_user.is_staff:
        raise HTTPException(status_code=404, detail="Chapter not found")
    return chapter_detail(session, chapter, current_user.id)


@router.patch("/{chapter_id}", name="chapters.update")
def update_chapter(
    course_id: int,
    chapter_id: int,
    payload: ChapterUpdate,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    get_owned_course(session, course_id, current_user)
    chapter = get_chapter_or_404(session, course_id, chapter_id)
    changes = payload.model_dump(exclude_unset=True)
    if "title" in changes and not (changes["title"] or "").strip():
        raise HTTPException(status_code=400, detail="Title is required")
    for field, value in changes.items():
        setattr(chapter, field, value)
    session.commit()
    return chapter.to_dict()


@router.delete("/{chapter_id}", name="chapters.delete")
def delete_chapter(
    course_id: int,
    chapter_id: int,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    course = get_owned_course(session, course_id, current_user)
    chapter = get_chapter_or_404(session, course_id, chapter_id)
    session.delete(chapter)
    session.flush()
    # a course without published chapters cannot stay published
    if not any(other.is_published for other in course.chapters if other.id != chapter_id):
        course.is_published = False
    session.commit()
    return Response(status_code=204)


@router.patch("/{chapter_id}/publish", name="chapters.publish")
def publish_chapter(
    course_id: int,
    chapter_id: int,
    payload: PublishIn,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    course = get_owned_course(session, course_id, current_user)
    chapter = get_chapter_or_404(session, course_id, chapter_id)
    if payload.is_published and (not chapter.title or not chapter.video_url):
        raise HTTPException(status_code=400, detail="Missing required fields")
    chapter.is_published = payload.is_published
    session.flush()
    if not payload.is_published and not any(other.is_published for other in course.chapters):
        course.is_published = False
    session.commit()
    return chapter.to_dict()


@router.put("/{chapter_id}/progress", name="chapters.complete")
def complete_chapter(
    course_id: int,
    chapter_id: int,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    chapter = get_chapter_or_404(session, course_id, chapter_id)
    try:
        progress = record_completion(session, current_user.id, chapter)
    except ServiceError as exc:
        log.info("[CHAPTER_PROGRESS] user=%s chapter=%s: %s", current_user.id, chapter_id, exc.detail)
        raise
    return progress.to_dict()


@router.delete("/{chapter_id}/progress", name="chapters.reset")
def reset_chapter(
    course_id: int,
    chapter_id: int,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    get_chapter_or_404(session, course_id, chapter_id)
    reset_progress(session, current_user.id, chapter_id)
    return Response(status_code=204)


@router.post("/{chapter_id}/view", name="chapters.view")
def view_chapter(
    course_id: int,
    chapter_id: int,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    if not has_course_access(session, current_user.id, course_id):
        raise HTTPException(status_code=403, detail="Course access required")
    chapter = get_chapter_or_404(session, course_id, chapter_id)
    try:
        view_count = record_view(session, current_user.id, chapter)
    except ServiceError as exc:
        log.info("[CHAPTER_VIEW] user=%s chapter=%s: %s", current_user.id, chapter_id, exc.detail)
        raise
    session.commit()
    return {"success": True, "viewCount": view_count}
