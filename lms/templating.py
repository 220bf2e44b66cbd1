from pathlib import Path

from fastapi.templating import Jinja2Templates

from .config import settings
from .utils import get_flashed_messages, url_for

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


def render_template(template_name: str, context: dict, status_code: int = 200):
    request = context.get("request")

    # Standard context variables
    standard_context = {
        "config": settings,
        "url_for": lambda name, **params: url_for(request, name, **params),
        "get_flashed_messages": lambda with_categories=True: get_flashed_messages(
            request, with_categories=with_categories
        ),
    }

    # Provided context takes precedence
    full_context = {**standard_context, **context}

    return templates.TemplateResponse(request, template_name, full_context, status_code=status_code)
