import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from lms.dependencies import AnonymousUser, get_current_user, get_db, require_role, require_user
from lms.models import ROLE_ADMIN, ROLE_STUDENT, STAFF_ROLES, Course, User
from lms.schemas.account import RedeemIn
from lms.schemas.course import CourseCreate, CourseUpdate, ReorderIn
from lms.services.access import has_course_access
from lms.services.billing import purchase_with_balance, redeem_code
from lms.services.content import course_content, get_course_or_404, reorder
from lms.services.progress import course_progress
from lms.utils import normalize_grade

log = logging.getLogger(__name__)

router = APIRouter(tags=["courses"])

staff_required = require_role(*STAFF_ROLES)


def get_owned_course(session: Session, course_id: int, user: User) -> Course:
    """Course lookup for mutations: admins reach every course, teachers only their own."""
    course = get_course_or_404(session, course_id)
    if user.role != ROLE_ADMIN and course.user_id != user.id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return course


@router.get("/api/courses", name="courses.index")
def list_courses(
    grade: str | None = None,
    current_user: User | AnonymousUser = Depends(get_current_user),
    session: Session = Depends(get_db),
):
    query = select(Course).order_by(Course.created_at.desc(), Course.id.desc())
    if current_user.role == ROLE_ADMIN:
        pass
    elif current_user.role in STAFF_ROLES:
        query = query.where(Course.user_id == current_user.id)
    else:
        query = query.where(Course.is_published.is_(True))
    courses = session.execute(query).scalars().all()

    if grade and current_user.role not in STAFF_ROLES:
        wanted = normalize_grade(grade)
        courses = [course for course in courses if normalize_grade(course.grade) == wanted]

    payload = []
    for course in courses:
        data = course.to_dict()
        if current_user.is_authenticated and current_user.role == ROLE_STUDENT:
            data["hasPurchased"] = has_course_access(session, current_user.id, course.id)
        payload.append(data)
    return payload


@router.post("/api/courses", name="courses.create")
def create_course(
    payload: CourseCreate,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    if not payload.title or not payload.title.strip():
        raise HTTPException(status_code=400, detail="Title is required")
    course = Course(title=payload.title.strip(), user_id=current_user.id)
    session.add(course)
    session.commit()
    log.info("Course %s created by user %s", course.id, current_user.id)
    return course.to_dict()


@router.get("/api/courses/{course_id}", name="courses.detail")
def get_course(
    course_id: int,
    current_user: User | AnonymousUser = Depends(get_current_user),
    session: Session = Depends(get_db),
):
    course = get_course_or_404(session, course_id)
    is_staff = current_user.is_staff
    if not course.is_published and not is_staff:
        raise HTTPException(status_code=404, detail="Course not found")

    data = course.to_dict()
    data["chapters"] = [
        {
            "id": chapter.id,
            "title": chapter.title,
            "position": chapter.position,
            "isFree": chapter.is_free,
            "isPublished": chapter.is_published,
        }
        for chapter in course.chapters
        if is_staff or chapter.is_published
    ]
    data["hasPurchased"] = has_course_access(session, current_user.id, course.id)
    return data


@router.patch("/api/courses/{course_id}", name="courses.update")
def update_course(
    course_id: int,
    payload: CourseUpdate,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    course = get_owned_course(session, course_id, current_user)
    changes = payload.model_dump(exclude_unset=True)
    if "title" in changes and not (changes["title"] or "").strip():
        raise HTTPException(status_code=400, detail="Title is required")
    if "grade" in changes and changes["grade"]:
        changes["grade"] = normalize_grade(changes["grade"])
    for field, value in changes.items():
        setattr(course, field, value)
    session.commit()
    return course.to_dict()


@router.delete("/api/courses/{course_id}", name="courses.delete")
def delete_course(
    course_id: int,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    course = get_owned_course(session, course_id, current_user)
    session.delete(course)
    session.commit()
    log.info("Course %s deleted by user %s", course_id, current_user.id)
    return Response(status_code=204)


@router.patch("/api/courses/{course_id}/publish", name="courses.publish")
def toggle_publish(
    course_id: int,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    course = get_owned_course(session, course_id, current_user)
    if not course.is_published:
        has_published_chapters = any(chapter.is_published for chapter in course.chapters)
        if not course.title or not course.description or not course.image_url or not has_published_chapters:
            raise HTTPException(status_code=400, detail="Missing required fields")
    course.is_published = not course.is_published
    session.commit()
    return course.to_dict()


@router.get("/api/courses/{course_id}/access", name="courses.access")
def course_access(
    course_id: int,
    current_user: User | AnonymousUser = Depends(get_current_user),
    session: Session = Depends(get_db),
):
    return {"hasAccess": has_course_access(session, current_user.id, course_id)}


@router.get("/api/courses/{course_id}/content", name="courses.content")
def get_content(
    course_id: int,
    response: Response,
    current_user: User | AnonymousUser = Depends(get_current_user),
    session: Session = Depends(get_db),
):
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    response.headers["Pragma"] = "no-cache"
    return course_content(session, course_id, current_user.id)


@router.get("/api/courses/{course_id}/progress", name="courses.progress")
def get_progress(
    course_id: int,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    get_course_or_404(session, course_id)
    return {"progress": course_progress(session, current_user.id, course_id)}


@router.put("/api/courses/{course_id}/reorder", name="courses.reorder")
def reorder_content(
    course_id: int,
    payload: ReorderIn,
    current_user: User = Depends(staff_required),
    session: Session = Depends(get_db),
):
    get_owned_course(session, course_id, current_user)
    reorder(session, course_id, [item.model_dump() for item in payload.items])
    return {"success": True}


@router.post("/api/courses/{course_id}/purchase", name="courses.purchase")
def purchase_course(
    course_id: int,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    purchase = purchase_with_balance(session, current_user, course_id)
    return {"success": True, "purchaseId": purchase.id, "balance": current_user.balance}


@router.post("/api/codes/redeem", name="codes.redeem")
def redeem(
    payload: RedeemIn,
    current_user: User = Depends(require_user),
    session: Session = Depends(get_db),
):
    purchase = redeem_code(session, payload.code, current_user)
    return {"success": True, "courseId": purchase.course_id}
