"""Conference guestbook - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.responses import HTMLResponse, ORJSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from guestbook.comments.service import CommentService
from guestbook.comments.submission import CommentSubmissionWorkflow
from guestbook.conferences.router import router as conferences_router
from guestbook.conferences.service import ConferenceService
from guestbook.config import get_settings
from guestbook.core.context import get_request_id
from guestbook.core.database import init_async_cassandra, shutdown_async_cassandra
from guestbook.core.errors import GuestbookError
from guestbook.core.logging import configure_structlog, get_logger
from guestbook.core.middleware import RequestContextMiddleware
from guestbook.core.redis import init_redis, shutdown_redis
from guestbook.core.templating import render
from guestbook.health import router as health_router
from guestbook.photos.service import PhotoStorage
from guestbook.spam.service import build_spam_checker


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings)

logger = get_logger(__name__)


ERROR_STATUS_MAP: dict[str, int] = {
    "conference_not_found": status.HTTP_404_NOT_FOUND,
    "duplicate_slug": status.HTTP_409_CONFLICT,
    "rate_limit_exceeded": status.HTTP_429_TOO_MANY_REQUESTS,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis is optional - without it submissions are not rate limited
    app.state.redis = None
    try:
        app.state.redis = await init_redis()
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - submission rate limiting disabled",
        )

    try:
        session = await init_async_cassandra()

        app.state.conference_service = ConferenceService(
            session=session,
            keyspace=settings.cassandra_keyspace,
        )
        app.state.comment_service = CommentService(
            session=session,
            keyspace=settings.cassandra_keyspace,
            redis=app.state.redis,
            page_size=settings.comments_per_page,
            submissions_per_minute=settings.submissions_per_minute,
        )
        app.state.submission_workflow = CommentSubmissionWorkflow(
            comment_service=app.state.comment_service,
            photo_storage=PhotoStorage(settings.photo_dir),
            spam_checker=build_spam_checker(settings),
        )
        logger.info("services_initialized")
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def _error_page(request: Request, status_code: int, message: str) -> HTMLResponse:
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    return render(
        request,
        "error.html",
        {
            "status_code": status_code,
            "message": message,
            "request_id": request_id,
        },
        status_code=status_code,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug=False so Starlette never renders stack traces; handlers below log
    # the details and answer with a safe page
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=False,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> HTMLResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        message = (
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error"
        )
        return _error_page(request, exc.status_code, message)

    @app.exception_handler(GuestbookError)
    async def guestbook_error_handler(
        request: Request, exc: GuestbookError
    ) -> HTMLResponse:
        """Map guestbook errors to status codes.

        Client errors show their message; everything else (spam rejection,
        photo storage, spam service, persistence) is a 500 with a generic
        message and the details in the log.
        """
        status_code = ERROR_STATUS_MAP.get(
            exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                "request_aborted",
                error_code=exc.code,
                error_message=exc.message,
                path=request.url.path,
                method=request.method,
            )
            return _error_page(
                request,
                status_code,
                "An unexpected error occurred. Please try again later.",
            )

        logger.warning("request_refused", error_code=exc.code, path=request.url.path)
        return _error_page(request, status_code, exc.message)

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> HTMLResponse:
        """Catch-all handler for unhandled exceptions.

        SECURITY: Never expose stack traces or internal error details to users.
        """
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return _error_page(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
        )

    app.include_router(health_router)
    app.include_router(conferences_router)

    photo_dir = Path(settings.photo_dir)
    photo_dir.mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.photo_url_prefix,
        StaticFiles(directory=str(photo_dir)),
        name="photos",
    )

    return app


app = create_app()
