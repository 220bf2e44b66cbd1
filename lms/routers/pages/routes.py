import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lms.dependencies import AnonymousUser, get_current_user, get_db, require_page_user
from lms.errors import Forbidden, NotFound, ServiceError
from lms.models import Course, User
from lms.services import assessments
from lms.services.access import has_course_access
from lms.services.assessments import HOMEWORK, QUIZ, AssessmentKind
from lms.services.content import chapter_detail, course_content, get_chapter_or_404, get_course_or_404
from lms.services.progress import discard_progress, record_completion
from lms.services.sequencer import ContentItem, content_path
from lms.templating import render_template
from lms.utils import flash

log = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])


def _neighbour_url(course_id: int, item_type: str | None, item_id: int | None) -> str | None:
    if item_type is None or item_id is None:
        return None
    return content_path(course_id, ContentItem(item_id, item_type, 0))


def _published_course_or_404(session: Session, course_id: int, user) -> Course:
    course = get_course_or_404(session, course_id)
    if not course.is_published and not user.is_staff:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


@router.get("/", response_class=HTMLResponse, name="pages.index")
def index(
    request: Request,
    current_user: User | AnonymousUser = Depends(get_current_user),
    session: Session = Depends(get_db),
):
    courses = session.execute(
        select(Course).where(Course.is_published.is_(True)).order_by(Course.created_at.desc())
    ).scalars().all()
    owned = {course.id for course in courses if has_course_access(session, current_user.id, course.id)}
    return render_template(
        "courses/index.html",
        {"request": request, "current_user": current_user, "courses": courses, "owned": owned},
    )


@router.get("/courses/{course_id}", response_class=HTMLResponse, name="pages.course")
def course_page(
    request: Request,
    course_id: int,
    current_user: User = Depends(require_page_user),
    session: Session = Depends(get_db),
):
    course = _published_course_or_404(session, course_id, current_user)
    content = course_content(session, course.id, current_user.id)
    for entry in content:
        entry["url"] = content_path(course.id, ContentItem(entry["id"], entry["type"], entry["position"]))
    return render_template(
        "courses/course.html",
        {
            "request": request,
            "current_user": current_user,
            "course": course,
            "content": content,
            "has_access": has_course_access(session, current_user.id, course.id),
        },
    )


@router.get("/courses/{course_id}/chapters/{chapter_id}", response_class=HTMLResponse, name="pages.chapter")
def chapter_page(
    request: Request,
    course_id: int,
    chapter_id: int,
    current_user: User = Depends(require_page_user),
    session: Session = Depends(get_db),
):
    course = _published_course_or_404(session, course_id, current_user)
    chapter = get_chapter_or_404(session, course_id, chapter_id)
    if not chapter.is_published and not current_user.is_staff:
        raise HTTPException(status_code=404, detail="Chapter not found")

    # opening a chapter starts it over; completion must be recorded again
    discard_progress(session, current_user.id, chapter.id)

    detail = chapter_detail(session, chapter, current_user.id)
    return render_template(
        "courses/chapter.html",
        {
            "request": request,
            "current_user": current_user,
            "course": course,
            "chapter": detail,
            "previous_url": _neighbour_url(course.id, detail["previousContentType"], detail["previousChapterId"]),
            "next_url": _neighbour_url(course.id, detail["nextContentType"], detail["nextChapterId"]),
        },
    )


@router.post("/courses/{course_id}/chapters/{chapter_id}/complete", name="pages.complete_chapter")
def complete_chapter(
    request: Request,
    course_id: int,
    chapter_id: int,
    current_user: User = Depends(require_page_user),
    session: Session = Depends(get_db),
):
    chapter = get_chapter_or_404(session, course_id, chapter_id)
    course_url = f"/courses/{course_id}"
    try:
        record_completion(session, current_user.id, chapter)
    except ServiceError as exc:
        log.info("[CHAPTER_PROGRESS] user=%s chapter=%s: %s", current_user.id, chapter_id, exc.detail)
        flash(request, exc.detail, "danger")
        return RedirectResponse(course_url, status_code=303)

    flash(request, "Chapter completed", "success")
    detail = chapter_detail(session, chapter, current_user.id)
    next_url = _neighbour_url(course_id, detail["nextContentType"], detail["nextChapterId"])
    return RedirectResponse(next_url or course_url, status_code=303)


def _assessment_page(request: Request, kind: AssessmentKind, course_id: int, assessment_id: int, user, session):
    _published_course_or_404(session, course_id, user)
    try:
        assessment = assessments.student_view(session, kind, course_id, assessment_id, user.id)
    except Forbidden as exc:
        flash(request, exc.detail, "warning")
        return RedirectResponse(f"/courses/{course_id}", status_code=303)
    segment = "quizzes" if kind is QUIZ else "homeworks"
    return render_template(
        "courses/assessment.html",
        {
            "request": request,
            "current_user": user,
            "kind": kind,
            "assessment": assessment,
            "course_id": course_id,
            "submit_url": f"/api/courses/{course_id}/{segment}/{assessment_id}/submit",
            "result_url": f"/courses/{course_id}/{segment}/{assessment_id}/result",
        },
    )


def _result_page(request: Request, kind: AssessmentKind, course_id: int, assessment_id: int, user, session):
    result = None
    try:
        stored = assessments.latest_result(session, kind, course_id, assessment_id, user.id)
        result = assessments.cached_result(kind, stored)
    except Forbidden as exc:
        flash(request, exc.detail, "warning")
        return RedirectResponse(f"/courses/{course_id}", status_code=303)
    except NotFound:
        pass
    except SQLAlchemyError:
        log.exception("[%s_RESULT] user=%s %s=%s", kind.name.upper(), user.id, kind.name, assessment_id)
        session.rollback()

    if result is None:
        result = request.session.get(assessments.cache_key(kind, assessment_id))
    return render_template(
        "courses/result.html",
        {"request": request, "current_user": user, "kind": kind, "course_id": course_id, "result": result},
    )


@router.get("/courses/{course_id}/quizzes/{quiz_id}", response_class=HTMLResponse, name="pages.quiz")
def quiz_page(
    request: Request,
    course_id: int,
    quiz_id: int,
    current_user: User = Depends(require_page_user),
    session: Session = Depends(get_db),
):
    return _assessment_page(request, QUIZ, course_id, quiz_id, current_user, session)


@router.get("/courses/{course_id}/quizzes/{quiz_id}/result", response_class=HTMLResponse, name="pages.quiz_result")
def quiz_result_page(
    request: Request,
    course_id: int,
    quiz_id: int,
    current_user: User = Depends(require_page_user),
    session: Session = Depends(get_db),
):
    return _result_page(request, QUIZ, course_id, quiz_id, current_user, session)


@router.get("/courses/{course_id}/homeworks/{homework_id}", response_class=HTMLResponse, name="pages.homework")
def homework_page(
    request: Request,
    course_id: int,
    homework_id: int,
    current_user: User = Depends(require_page_user),
    session: Session = Depends(get_db),
):
    return _assessment_page(request, HOMEWORK, course_id, homework_id, current_user, session)


@router.get(
    "/courses/{course_id}/homeworks/{homework_id}/result",
    response_class=HTMLResponse,
    name="pages.homework_result",
)
def homework_result_page(
    request: Request,
    course_id: int,
    homework_id: int,
    current_user: User = Depends(require_page_user),
    session: Session = Depends(get_db),
):
    return _result_page(request, HOMEWORK, course_id, homework_id, current_user, session)
