from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from lms.config import settings

# bcrypt hashes come from imported accounts and are upgraded on login
pwd_context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(password, hashed_password)


def verify_and_update_password(password: str, hashed_password: str | None) -> tuple[bool, str | None]:
    """Returns (verified, replacement hash or None)."""
    if not hashed_password:
        return False, None
    return pwd_context.verify_and_update(password, hashed_password)


def create_access_token(user_id: int, expires_minutes: int | None = None) -> str:
    """Signed session token for the auth cookie; the subject is the user id."""
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    claims = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def token_user_id(token: str) -> int | None:
    """User id carried by a valid, unexpired token."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    subject = claims.get("sub")
    if not subject or not str(subject).isdigit():
        return None
    return int(subject)
