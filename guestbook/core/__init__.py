# Core infrastructure
from guestbook.core.context import (
    clear_context,
    get_context,
    get_request_id,
    set_conference_slug,
    set_request_id,
)
from guestbook.core.errors import GuestbookError
from guestbook.core.logging import configure_structlog, get_logger
from guestbook.core.middleware import RequestContextMiddleware, get_client_ip


__all__ = [
    "GuestbookError",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_client_ip",
    "get_context",
    "get_logger",
    "get_request_id",
    "set_conference_slug",
    "set_request_id",
]
