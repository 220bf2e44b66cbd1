from __future__ import annotations

from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    select,
)
from sqlalchemy.orm import (
    declarative_base,
    relationship,
    scoped_session,
    sessionmaker,
)

Base = declarative_base()


def sqlite_connect_args(database_url: str) -> dict[str, Any]:
    # one connection is shared across FastAPI's threadpool workers
    return {"check_same_thread": False} if database_url.startswith("sqlite") else {}


class Database:
    """Model base, column types and the scoped session used by the app and seeds."""

    Model = Base
    Column = Column
    Integer = Integer
    String = String
    Text = Text
    Float = Float
    Boolean = Boolean
    DateTime = DateTime
    ForeignKey = ForeignKey
    UniqueConstraint = UniqueConstraint
    CheckConstraint = CheckConstraint
    Index = Index
    # called as db.relationship(...) and db.select(...), never bound to db
    relationship = staticmethod(relationship)
    select = staticmethod(select)

    def __init__(self, database_url: str):
        self.engine = create_engine(database_url, connect_args=sqlite_connect_args(database_url))
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False)
        self.session = scoped_session(self.SessionLocal)

    def remove_session(self) -> None:
        self.session.remove()

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(self.engine)

    def __getattr__(self, item: str) -> Any:
        return getattr(Base, item)


from lms.config import settings

db = Database(settings.SQLALCHEMY_DATABASE_URI)
