"""Conference pages.

Provides routes for:
- Conference index
- Conference page with paginated comments and the comment form
- Comment submission (same URL, POST)
"""

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from guestbook.comments.dependencies import CommentServiceDep, SubmissionWorkflowDep
from guestbook.comments.forms import parse_comment_form
from guestbook.comments.schemas import CommentFormResult
from guestbook.comments.submission import (
    Accepted,
    Rejected,
    SpamRejected,
    build_submission_context,
)
from guestbook.core.context import set_conference_slug
from guestbook.core.middleware import get_client_ip
from guestbook.core.templating import render

from .dependencies import ConferenceServiceDep, SettingsDep


logger = structlog.get_logger(__name__)


router = APIRouter(tags=["conferences"])


def parse_offset(raw: str | None) -> int:
    """Convert the ``offset`` query parameter to a non-negative integer.

    Missing or non-numeric values count as 0.
    """
    try:
        offset = int(raw) if raw is not None else 0
    except ValueError:
        offset = 0
    return max(0, offset)


@router.get("/", response_class=HTMLResponse, name="homepage")
async def index(
    request: Request,
    conference_service: ConferenceServiceDep,
) -> HTMLResponse:
    """List all conferences."""
    conferences = await conference_service.find_all()
    return render(request, "conference/index.html", {"conferences": conferences})


@router.api_route(
    "/conference/{slug}",
    methods=["GET", "POST"],
    response_class=HTMLResponse,
    response_model=None,
    name="conference",
)
async def show(
    request: Request,
    slug: str,
    conference_service: ConferenceServiceDep,
    comment_service: CommentServiceDep,
    workflow: SubmissionWorkflowDep,
    settings: SettingsDep,
    offset: str | None = None,
) -> HTMLResponse | RedirectResponse:
    """Show a conference with its comments; accept new comments on POST.

    A valid submission redirects back to the conference page. An invalid one
    re-renders the page with the submitted values and field errors.
    """
    conference = await conference_service.get_by_slug(slug)
    set_conference_slug(conference.slug)

    form_result = CommentFormResult.empty()
    status_code = status.HTTP_200_OK

    if request.method == "POST":
        # Refuse before anything is written to the staging directory
        await comment_service.check_rate_limit(get_client_ip(request))

        form_result = await parse_comment_form(request, settings)
        if form_result.is_valid:
            context = build_submission_context(request)
            try:
                outcome = await workflow.submit(conference, form_result, context)
            finally:
                # A photo that was never moved into the photo directory
                if form_result.photo is not None:
                    form_result.photo.discard()
            await comment_service.increment_rate_limit(context.user_ip)

            if isinstance(outcome, Accepted):
                return RedirectResponse(
                    outcome.redirect_url, status_code=status.HTTP_303_SEE_OTHER
                )
            if isinstance(outcome, Rejected):
                raise SpamRejected(outcome.reason)
            raise outcome.error

        logger.info("comment_form_invalid", fields=sorted(form_result.errors))
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    page = await comment_service.paginate(conference, parse_offset(offset))

    return render(
        request,
        "conference/show.html",
        {
            "conference": conference,
            "comments": page,
            "previous": page.previous,
            "next": page.next,
            "comment_form": form_result,
        },
        status_code=status_code,
    )
