"""Request context management using contextvars.

Each request gets a unique ID plus the client IP and, once resolved, the
conference being viewed. Values are read by the logging processors, so every
log line emitted while handling a request carries them without passing them
around explicitly.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
client_ip_var: ContextVar[str | None] = ContextVar("client_ip", default=None)
conference_slug_var: ContextVar[str | None] = ContextVar(
    "conference_slug", default=None
)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_client_ip() -> str | None:
    return client_ip_var.get()


def set_client_ip(client_ip: str | None) -> None:
    client_ip_var.set(client_ip)


def get_conference_slug() -> str | None:
    return conference_slug_var.get()


def set_conference_slug(slug: str | None) -> None:
    """Record the conference the current request is about."""
    conference_slug_var.set(slug)


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    client_ip = get_client_ip()
    if client_ip:
        context["client_ip"] = client_ip

    slug = get_conference_slug()
    if slug:
        context["conference"] = slug

    return context


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request to prevent context leakage between
    requests served by the same worker.
    """
    request_id_var.set("")
    client_ip_var.set(None)
    conference_slug_var.set(None)
