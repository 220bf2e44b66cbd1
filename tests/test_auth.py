import httpx
import pytest
from sqlalchemy import select

from lms.config import settings
from lms.models import User
from lms.services import registration

FIRST = "الصف الاول الثانوي"
SECOND = "الصف الثاني الثانوي"
THIRD = "الصف الثالث الثانوي"


def _register_payload(**overrides):
    payload = {
        "fullName": "Sara Ali",
        "phoneNumber": "01234567890",
        "parentPhoneNumber": "01098765432",
        "password": "pass1234",
        "confirmPassword": "pass1234",
        "grade": SECOND,
        "subject": "كيمياء,فيزياء",
        "semester": "الترم الاول",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_register_creates_student(client, session):
    response = await client.post("/api/auth/register", json=_register_payload())
    assert response.status_code == 200
    assert response.json() == {"success": True}

    user = session.execute(select(User)).scalar_one()
    assert user.role == "student"
    assert user.check_password("pass1234")


@pytest.mark.asyncio
async def test_third_grade_needs_no_semester_and_stores_none(client, session):
    response = await client.post(
        "/api/auth/register", json=_register_payload(grade=THIRD, semester=None, subject="فيزياء")
    )
    assert response.status_code == 200
    assert session.execute(select(User)).scalar_one().semester is None


@pytest.mark.asyncio
async def test_grade_with_hamza_is_normalized(client, session):
    response = await client.post(
        "/api/auth/register", json=_register_payload(grade="الصف الأول الثانوي", subject="علوم متكاملة")
    )
    assert response.status_code == 200
    assert session.execute(select(User)).scalar_one().grade == FIRST


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"fullName": ""}, "Missing required fields"),
        ({"semester": None}, "Semester is required for this grade"),
        ({"grade": FIRST, "subject": "كيمياء"}, "Invalid subject for grade"),
        ({"subject": "أحياء"}, "Invalid subject selected"),
        ({"subject": " "}, "Please select at least one subject"),
        ({"grade": "الصف الرابع"}, "Invalid grade"),
        ({"confirmPassword": "other"}, "Passwords do not match"),
        ({"parentPhoneNumber": "01234567890"}, "Phone number cannot be the same as parent phone number"),
    ],
)
async def test_register_validation(client, overrides, message):
    response = await client.post("/api/auth/register", json=_register_payload(**overrides))
    assert response.status_code == 400
    assert response.json()["detail"] == message


@pytest.mark.asyncio
async def test_register_rejects_duplicate_phones(client, factory):
    factory.user(phone_number="01234567890")
    response = await client.post("/api/auth/register", json=_register_payload())
    assert response.status_code == 400
    assert response.json()["detail"] == "Phone number already exists"


@pytest.mark.asyncio
async def test_recaptcha_is_enforced_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "RECAPTCHA_SECRET_KEY", "secret")

    response = await client.post("/api/auth/register", json=_register_payload())
    assert response.json()["detail"] == "reCAPTCHA verification is required"

    def fake_post(url, data, timeout):
        assert data == {"secret": "secret", "response": "token"}
        return httpx.Response(200, json={"success": False}, request=httpx.Request("POST", url))

    monkeypatch.setattr(registration.httpx, "post", fake_post)
    response = await client.post("/api/auth/register", json=_register_payload(recaptchaToken="token"))
    assert response.status_code == 400
    assert response.json()["detail"] == "reCAPTCHA verification failed"


@pytest.mark.asyncio
async def test_login_sets_cookie_and_profile_works(client, factory):
    factory.user(phone_number="01011112222", password="secret123", full_name="Omar Hany")

    response = await client.post(
        "/auth/login", data={"phone_number": "01011112222", "password": "secret123"}, follow_redirects=False
    )
    assert response.status_code == 303
    assert settings.AUTH_COOKIE_NAME in response.cookies

    profile = await client.get("/api/user/profile")
    assert profile.status_code == 200
    assert profile.json()["fullName"] == "Omar Hany"


@pytest.mark.asyncio
async def test_login_with_wrong_password_redirects_back(client, factory):
    factory.user(phone_number="01011112222", password="secret123")
    response = await client.post(
        "/auth/login", data={"phone_number": "01011112222", "password": "nope"}, follow_redirects=False
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/auth/login"


@pytest.mark.asyncio
async def test_login_page_renders(client):
    response = await client.get("/auth/login")
    assert response.status_code == 200
    assert 'name="phone_number"' in response.text


@pytest.mark.asyncio
async def test_profile_requires_login(client):
    response = await client.get("/api/user/profile")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_inactive_user_token_is_ignored(client, session, factory, login_as):
    user = factory.user()
    user.is_active = False
    session.commit()
    login_as(user)

    response = await client.get("/api/user/profile")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_change_password(client, factory, login_as):
    user = factory.user(password="old-pass")
    login_as(user)

    response = await client.patch(
        "/api/user/password", json={"currentPassword": "wrong", "newPassword": "new-pass"}
    )
    assert response.status_code == 400

    response = await client.patch(
        "/api/user/password", json={"currentPassword": "old-pass", "newPassword": "new-pass"}
    )
    assert response.status_code == 200
    assert user.check_password("new-pass")
