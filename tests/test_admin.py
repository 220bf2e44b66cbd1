import pytest
from httpx import ASGITransport, AsyncClient

from lms.config import settings
from lms.dependencies import get_db
from lms.main import app
from lms.models import ROLE_ADMIN, ROLE_TEACHER, User
from lms.routers.student import routes as student_routes
from lms.security import create_access_token


@pytest.mark.asyncio
async def test_admin_endpoints_require_admin(client, factory, login_as):
    login_as(factory.user(role=ROLE_TEACHER))
    assert (await client.get("/api/admin/users")).status_code == 403


@pytest.mark.asyncio
async def test_admin_edits_student(client, session, factory, login_as):
    admin = factory.user(role=ROLE_ADMIN)
    student = factory.user(full_name="Old Name")
    login_as(admin)

    response = await client.patch(
        f"/api/admin/users/{student.id}", json={"fullName": "New Name", "grade": "الصف الأول الثانوي"}
    )
    assert response.status_code == 200
    assert response.json()["fullName"] == "New Name"
    assert response.json()["grade"] == "الصف الاول الثانوي"


@pytest.mark.asyncio
async def test_admin_cannot_edit_staff_or_promote_to_teacher(client, factory, login_as):
    admin = factory.user(role=ROLE_ADMIN)
    teacher = factory.user(role=ROLE_TEACHER)
    student = factory.user()
    login_as(admin)

    response = await client.patch(f"/api/admin/users/{teacher.id}", json={"fullName": "x"})
    assert response.status_code == 403

    response = await client.patch(f"/api/admin/users/{student.id}", json={"role": "teacher"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_phone_must_be_unique(client, factory, login_as):
    admin = factory.user(role=ROLE_ADMIN)
    first = factory.user()
    second = factory.user()
    login_as(admin)

    response = await client.patch(f"/api/admin/users/{second.id}", json={"phoneNumber": first.phone_number})
    assert response.status_code == 400
    assert response.json()["detail"] == "Phone number already exists"


@pytest.mark.asyncio
async def test_admin_deletes_student_but_not_self(client, session, factory, login_as):
    admin = factory.user(role=ROLE_ADMIN)
    student = factory.user()
    course = factory.course()
    factory.purchase(student, course)
    login_as(admin)

    response = await client.delete(f"/api/admin/users/{admin.id}")
    assert response.status_code == 400

    response = await client.delete(f"/api/admin/users/{student.id}")
    assert response.status_code == 200
    assert session.get(User, student.id) is None


@pytest.mark.asyncio
async def test_admin_views_student_progress(client, factory, login_as):
    admin = factory.user(role=ROLE_ADMIN)
    student = factory.user()
    course = factory.course(title="Optics")
    factory.chapter(course, 1)
    factory.purchase(student, course)
    login_as(admin)

    response = await client.get(f"/api/admin/users/{student.id}/progress")
    body = response.json()
    assert body["courses"][0]["title"] == "Optics"
    assert body["courses"][0]["progress"] == 0
    assert body["courses"][0]["chapters"][0]["isCompleted"] is False


@pytest.mark.asyncio
async def test_admin_resets_password(client, factory, login_as):
    admin = factory.user(role=ROLE_ADMIN)
    student = factory.user(password="before")
    login_as(admin)

    response = await client.patch(f"/api/admin/users/{student.id}/password", json={"newPassword": "after"})
    assert response.status_code == 200
    assert student.check_password("after")


@pytest.mark.asyncio
async def test_course_publish_requires_content(client, session, factory, login_as):
    teacher = factory.user(role=ROLE_TEACHER)
    course = factory.course(owner=teacher, is_published=False)
    login_as(teacher)

    response = await client.patch(f"/api/courses/{course.id}/publish")
    assert response.status_code == 400

    factory.chapter(course, 1)
    response = await client.patch(f"/api/courses/{course.id}/publish")
    assert response.status_code == 200
    assert response.json()["isPublished"] is True


@pytest.mark.asyncio
async def test_reorder_rejects_duplicate_positions(client, session, factory, login_as):
    teacher = factory.user(role=ROLE_TEACHER)
    course = factory.course(owner=teacher)
    first = factory.chapter(course, 1)
    second = factory.chapter(course, 2)
    login_as(teacher)

    response = await client.put(
        f"/api/courses/{course.id}/reorder",
        json={"items": [{"id": first.id, "type": "chapter", "position": 2}]},
    )
    assert response.status_code == 400

    response = await client.put(
        f"/api/courses/{course.id}/reorder",
        json={"items": [
            {"id": first.id, "type": "chapter", "position": 2},
            {"id": second.id, "type": "chapter", "position": 1},
        ]},
    )
    assert response.status_code == 200
    session.refresh(first)
    assert first.position == 2


@pytest.mark.asyncio
async def test_students_see_published_courses_filtered_by_grade(client, factory, login_as):
    student = factory.user()
    factory.course(title="First year", grade="الصف الاول الثانوي")
    factory.course(title="Second year", grade="الصف الثاني الثانوي")
    factory.course(title="Draft", grade="الصف الاول الثانوي", is_published=False)
    login_as(student)

    response = await client.get("/api/courses", params={"grade": "الصف الأول الثانوي"})
    assert [course["title"] for course in response.json()] == ["First year"]


@pytest.mark.asyncio
async def test_unexpected_errors_become_500(session, factory, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(student_routes, "purchased_courses", explode)
    student = factory.user()
    app.dependency_overrides[get_db] = lambda: session
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            client.cookies.set(settings.AUTH_COOKIE_NAME, create_access_token(student.id))
            response = await client.get("/api/student/courses")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal Error"}
