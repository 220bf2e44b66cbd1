from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from lms.config import settings
from lms.dependencies import AnonymousUser, get_current_user, get_db
from lms.models import User
from lms.schemas.account import RegisterIn
from lms.security import create_access_token, verify_and_update_password
from lms.services.registration import register_student
from lms.templating import render_template
from lms.utils import flash

router = APIRouter(tags=["auth"])


@router.get("/auth/login", response_class=HTMLResponse, name="auth.login")
def login_form(request: Request, current_user: User | AnonymousUser = Depends(get_current_user)):
    """Renders the login form."""
    if current_user.is_authenticated:
        return RedirectResponse("/", status_code=303)
    return render_template("auth/login.html", {"request": request, "current_user": current_user})


@router.post("/auth/login", name="auth.login_post")
def login_action(
    request: Request,
    phone_number: str = Form(...),
    password: str = Form(...),
    session: Session = Depends(get_db),
):
    """Checks the credentials and issues the JWT cookie."""
    user = session.query(User).filter(User.phone_number == phone_number.strip()).first()
    if not user or not user.is_active or not user.password_hash:
        flash(request, "Invalid credentials", "danger")
        return RedirectResponse("/auth/login", status_code=303)

    verified, new_hash = verify_and_update_password(password, user.password_hash)
    if not verified:
        flash(request, "Invalid credentials", "danger")
        return RedirectResponse("/auth/login", status_code=303)
    if new_hash:
        user.password_hash = new_hash
        session.commit()

    token = create_access_token(user.id)
    response = RedirectResponse("/", status_code=303)
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite=settings.SESSION_COOKIE_SAMESITE.lower(),
        secure=settings.SESSION_COOKIE_SECURE,
    )
    return response


@router.get("/auth/logout", name="auth.logout")
def logout(request: Request):
    """Logs out the user by clearing the JWT cookie."""
    response = RedirectResponse("/auth/login", status_code=303)
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return response


@router.post("/api/auth/register", name="auth.register")
def register(payload: RegisterIn, session: Session = Depends(get_db)):
    register_student(session, payload)
    return {"success": True}
