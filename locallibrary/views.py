from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates
from markupsafe import Markup

from locallibrary.models import BOOK_INSTANCE_STATUSES


TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

# Text fields are escaped when their form is validated, before they are
# stored; mark them safe so autoescaping does not escape them a second time.
templates.env.filters["sanitized"] = lambda value: Markup(value if value is not None else "")
templates.env.globals["book_instance_statuses"] = BOOK_INSTANCE_STATUSES


def render(request: Request, name: str, title: str, status_code: int = 200, **context):
    """
    Render a view-model with the named template.

    Every page gets a title; errors defaults to an empty list so form
    templates can iterate it unconditionally.
    """
    context.setdefault("errors", [])
    return templates.TemplateResponse(
        request,
        name,
        {"title": title, **context},
        status_code=status_code,
    )
