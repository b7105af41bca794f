"""Jinja2 template rendering for HTML pages."""

from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from guestbook.config import get_settings


TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def photo_url(filename: str | None) -> str | None:
    """Public URL of a stored comment photo."""
    if not filename:
        return None
    return f"{get_settings().photo_url_prefix.rstrip('/')}/{filename}"


templates.env.globals["photo_url"] = photo_url


def render(
    request: Request,
    template_name: str,
    context: dict[str, Any] | None = None,
    status_code: int = 200,
) -> HTMLResponse:
    """Render ``template_name`` with ``context`` into an HTML response."""
    return templates.TemplateResponse(
        request,
        template_name,
        context or {},
        status_code=status_code,
    )
