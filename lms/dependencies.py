from typing import Any

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .config import settings
from .extensions import db
from .models import User
from .security import token_user_id


class AnonymousUser:
    """Represents a non-authenticated user."""
    id = None
    is_authenticated = False
    is_staff = False
    role = "anonymous"
    full_name = "Guest"


def get_db() -> Any:
    """Dependency to provide a database session."""
    try:
        yield db.session
    finally:
        db.remove_session()


def get_current_user(request: Request, session: Session = Depends(get_db)) -> User | AnonymousUser:
    """Retrieves the current user from the JWT token cookie."""
    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if not token:
        return AnonymousUser()

    user_id = token_user_id(token)
    if user_id is None:
        return AnonymousUser()

    user = session.get(User, user_id)
    if not user or not user.is_active:
        return AnonymousUser()

    return user


def require_user(current_user: User | AnonymousUser = Depends(get_current_user)) -> User:
    """Dependency for API routes: 401 when there is no valid session."""
    if not getattr(current_user, "is_authenticated", False):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return current_user


def require_page_user(current_user: User | AnonymousUser = Depends(get_current_user)) -> User:
    """Dependency for rendered pages, redirecting to login if not authenticated."""
    if not getattr(current_user, "is_authenticated", False):
        raise HTTPException(status_code=303, headers={"Location": "/auth/login"})
    return current_user


def require_role(*roles: str):
    """Dependency factory that ensures a user has one of the required roles."""
    def role_checker(user: User = Depends(require_user)):
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user
    return role_checker
