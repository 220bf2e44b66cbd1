import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from lms.config import settings
from lms.dependencies import get_db
from lms.extensions import Base
from lms.main import app
from lms.models import ROLE_STUDENT, Chapter, Course, Purchase, User
from lms.security import create_access_token

DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)


@pytest.fixture(name="session")
def session_fixture():
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    Base.metadata.drop_all(engine)


@pytest.fixture(name="client")
async def client_fixture(session: Session):
    def get_db_override():
        yield session

    app.dependency_overrides[get_db] = get_db_override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


class Factory:
    """Builds rows straight into the test session."""

    def __init__(self, session: Session):
        self.session = session
        self._phone = 1000

    def user(self, role: str = ROLE_STUDENT, password: str = "secret123", **fields) -> User:
        self._phone += 1
        fields.setdefault("full_name", f"{role.title()} {self._phone}")
        fields.setdefault("phone_number", f"0100000{self._phone}")
        user = User(role=role, **fields)
        user.set_password(password)
        self.session.add(user)
        self.session.commit()
        return user

    def course(self, owner: User | None = None, **fields) -> Course:
        fields.setdefault("title", "Physics")
        fields.setdefault("description", "Mechanics")
        fields.setdefault("image_url", "https://example.com/physics.png")
        fields.setdefault("is_published", True)
        course = Course(user_id=owner.id if owner else None, **fields)
        self.session.add(course)
        self.session.commit()
        return course

    def chapter(self, course: Course, position: int, **fields) -> Chapter:
        fields.setdefault("title", f"Chapter {position}")
        fields.setdefault("video_url", f"https://example.com/videos/{position}.mp4")
        fields.setdefault("is_published", True)
        chapter = Chapter(course_id=course.id, position=position, **fields)
        self.session.add(chapter)
        self.session.commit()
        return chapter

    def purchase(self, user: User, course: Course) -> Purchase:
        purchase = Purchase(user_id=user.id, course_id=course.id)
        self.session.add(purchase)
        self.session.commit()
        return purchase


@pytest.fixture
def factory(session: Session) -> Factory:
    return Factory(session)


def login(client: AsyncClient, user: User) -> None:
    client.cookies.set(settings.AUTH_COOKIE_NAME, create_access_token(user.id))


@pytest.fixture
def login_as(client: AsyncClient):
    def _login(user: User) -> None:
        login(client, user)
    return _login
