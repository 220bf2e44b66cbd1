from __future__ import annotations

import logging

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from lms.config import settings
from lms.errors import register_error_handlers
from lms.routers.admin.routes import router as admin_router
from lms.routers.auth.routes import router as auth_router
from lms.routers.chapters.routes import router as chapters_router
from lms.routers.courses.routes import router as courses_router
from lms.routers.homeworks.routes import router as homeworks_router
from lms.routers.pages.routes import router as pages_router
from lms.routers.quizzes.routes import router as quizzes_router
from lms.routers.student.routes import router as student_router
from lms.routers.teacher.routes import router as teacher_router
from lms.routers.user.routes import router as user_router


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY,
        same_site=settings.SESSION_COOKIE_SAMESITE,
        https_only=settings.SESSION_COOKIE_SECURE,
    )
    register_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(courses_router)
    app.include_router(chapters_router)
    app.include_router(quizzes_router)
    app.include_router(homeworks_router)
    app.include_router(student_router)
    app.include_router(teacher_router)
    app.include_router(admin_router)
    app.include_router(pages_router)

    return app


app = create_app()
