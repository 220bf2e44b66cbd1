import pytest
from sqlalchemy import select

from lms.models import ROLE_ADMIN, ROLE_TEACHER, BalanceTransaction, Purchase, PurchaseCode
from lms.services.access import has_course_access


@pytest.mark.asyncio
async def test_purchase_with_balance_deducts_and_records(client, session, factory, login_as):
    student = factory.user(balance=200.0)
    course = factory.course(price=150.0)
    login_as(student)

    response = await client.post(f"/api/courses/{course.id}/purchase")
    assert response.status_code == 200
    assert response.json()["balance"] == 50.0
    assert has_course_access(session, student.id, course.id)

    ledger = session.execute(select(BalanceTransaction)).scalars().one()
    assert ledger.delta == -150.0
    assert ledger.source == "purchase"


@pytest.mark.asyncio
async def test_purchase_rejects_insufficient_balance(client, session, factory, login_as):
    student = factory.user(balance=10.0)
    course = factory.course(price=150.0)
    login_as(student)

    response = await client.post(f"/api/courses/{course.id}/purchase")
    assert response.status_code == 400
    assert response.json()["detail"] == "Insufficient balance"
    assert not has_course_access(session, student.id, course.id)


@pytest.mark.asyncio
async def test_purchase_twice_is_rejected(client, factory, login_as):
    student = factory.user(balance=500.0)
    course = factory.course(price=100.0)
    factory.purchase(student, course)
    login_as(student)

    response = await client.post(f"/api/courses/{course.id}/purchase")
    assert response.status_code == 400
    assert response.json()["detail"] == "Course already purchased"


@pytest.mark.asyncio
async def test_admin_adds_balance(client, session, factory, login_as):
    admin = factory.user(role=ROLE_ADMIN)
    student = factory.user()
    login_as(admin)

    response = await client.post(f"/api/admin/users/{student.id}/balance", json={"amount": 75, "reason": "cash"})
    assert response.status_code == 200
    assert response.json()["balance"] == 75.0

    response = await client.post(f"/api/admin/users/{student.id}/balance", json={"amount": -5})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_teacher_cannot_add_balance(client, factory, login_as):
    teacher = factory.user(role=ROLE_TEACHER)
    student = factory.user()
    login_as(teacher)

    response = await client.post(f"/api/admin/users/{student.id}/balance", json={"amount": 75})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_generate_and_redeem_code(client, session, factory, login_as):
    teacher = factory.user(role=ROLE_TEACHER)
    student = factory.user()
    course = factory.course(owner=teacher)
    login_as(teacher)

    response = await client.post("/api/teacher/codes", json={"courseId": course.id, "count": 3})
    assert response.status_code == 200
    codes = [row["code"] for row in response.json()]
    assert len(set(codes)) == 3

    login_as(student)
    response = await client.post("/api/codes/redeem", json={"code": codes[0].lower()})
    assert response.status_code == 200
    assert has_course_access(session, student.id, course.id)

    code = session.execute(select(PurchaseCode).where(PurchaseCode.code == codes[0])).scalar_one()
    assert code.is_used and code.used_by_id == student.id

    response = await client.post("/api/codes/redeem", json={"code": codes[0]})
    assert response.status_code == 400
    assert response.json()["detail"] == "Code has already been used"

    response = await client.post("/api/codes/redeem", json={"code": codes[1]})
    assert response.status_code == 400
    assert response.json()["detail"] == "Course already purchased"

    response = await client.post("/api/codes/redeem", json={"code": "NOPE"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_code_count_is_bounded(client, factory, login_as):
    teacher = factory.user(role=ROLE_TEACHER)
    course = factory.course(owner=teacher)
    login_as(teacher)

    response = await client.post("/api/teacher/codes", json={"courseId": course.id, "count": 101})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_teacher_deletes_only_own_codes(client, session, factory, login_as):
    owner = factory.user(role=ROLE_TEACHER)
    other = factory.user(role=ROLE_TEACHER)
    admin = factory.user(role=ROLE_ADMIN)
    course = factory.course(owner=owner)
    login_as(owner)
    created = await client.post("/api/teacher/codes", json={"courseId": course.id, "count": 3})
    first_id, second_id, third_id = [row["id"] for row in created.json()]

    login_as(other)
    assert (await client.delete(f"/api/teacher/codes/{first_id}")).status_code == 403

    login_as(owner)
    assert (await client.delete(f"/api/teacher/codes/{first_id}")).status_code == 204

    login_as(admin)
    assert (await client.delete(f"/api/admin/codes/{second_id}")).status_code == 204
    assert (await client.delete(f"/api/teacher/codes/{third_id}")).status_code == 204
    assert session.execute(select(PurchaseCode)).scalars().all() == []


@pytest.mark.asyncio
async def test_grant_and_revoke_course(client, session, factory, login_as):
    teacher = factory.user(role=ROLE_TEACHER)
    student = factory.user()
    course = factory.course(owner=teacher)
    login_as(teacher)

    response = await client.post(f"/api/teacher/users/{student.id}/courses", json={"courseId": course.id})
    assert response.status_code == 200
    assert session.execute(select(Purchase)).scalars().one().user_id == student.id

    response = await client.delete(f"/api/teacher/users/{student.id}/courses/{course.id}")
    assert response.status_code == 204
    assert not has_course_access(session, student.id, course.id)
