"""Comment submission workflow.

Turns a validated comment form into a stored comment:

    Building -> Photo -> Staging -> SpamChecking -> Persisting -> Redirecting

The outcome is returned as a tagged value (Accepted, Rejected or Failed) so
the HTTP layer decides how each one is answered. Nothing is committed unless
the spam check lets the comment through.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from guestbook.core.errors import GuestbookError
from guestbook.core.middleware import get_client_ip
from guestbook.photos.service import PhotoStorageError
from guestbook.spam.schemas import SpamScore, SubmissionContext
from guestbook.spam.service import SpamCheckError

from .service import CommentError


if TYPE_CHECKING:
    from fastapi import Request

    from guestbook.conferences.models import Conference
    from guestbook.photos.service import PhotoStorage
    from guestbook.spam.service import SpamChecker

    from .models import Comment
    from .schemas import CommentFormResult
    from .service import CommentService


logger = structlog.get_logger(__name__)


class SubmissionStage(str, Enum):
    """Steps of the submission workflow, in order."""

    BUILDING = "building"
    PHOTO = "photo"
    STAGING = "staging"
    SPAM_CHECKING = "spam_checking"
    PERSISTING = "persisting"
    REDIRECTING = "redirecting"


class SpamRejected(GuestbookError):
    """The spam evaluator flagged the comment as blatant spam."""

    def __init__(self, message: str = "Blatant spam, go away!"):
        super().__init__(message, "spam_rejected")


# ==============================================================================
# Outcomes
# ==============================================================================


@dataclass(frozen=True)
class Accepted:
    """The comment was committed; the visitor goes back to the conference."""

    comment: "Comment"
    redirect_url: str


@dataclass(frozen=True)
class Rejected:
    """The comment was refused and never committed."""

    comment: "Comment"
    reason: str


@dataclass(frozen=True)
class Failed:
    """A collaborator failed; nothing was committed."""

    stage: SubmissionStage
    error: GuestbookError

    @property
    def kind(self) -> str:
        return self.error.code


SubmissionOutcome = Accepted | Rejected | Failed


def build_submission_context(request: "Request") -> SubmissionContext:
    """Collect the request details the spam evaluator needs."""
    return SubmissionContext(
        user_ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referrer") or request.headers.get("referer"),
        permalink=str(request.url),
    )


def conference_url(conference: "Conference") -> str:
    return f"/conference/{conference.slug}"


class CommentSubmissionWorkflow:
    """Orchestrates photo storage, spam check and persistence of a comment."""

    def __init__(
        self,
        comment_service: "CommentService",
        photo_storage: "PhotoStorage",
        spam_checker: "SpamChecker",
    ):
        self.comment_service = comment_service
        self.photo_storage = photo_storage
        self.spam_checker = spam_checker

    async def submit(
        self,
        conference: "Conference",
        form_result: "CommentFormResult",
        context: SubmissionContext,
    ) -> SubmissionOutcome:
        """Run the workflow for one validated form.

        Args:
            conference: Conference the comment belongs to.
            form_result: A valid form result (``is_valid`` must be True).
            context: Request details forwarded to the spam evaluator.

        Returns:
            Accepted, Rejected or Failed.
        """
        if not form_result.is_valid or form_result.form is None:
            msg = "Only valid forms can be submitted"
            raise ValueError(msg)

        log = logger.bind(conference=conference.slug)

        comment = form_result.form.to_comment()
        comment.conference_id = conference.conference_id

        try:
            # File move and content sniffing are blocking I/O
            comment.photo_filename = await asyncio.to_thread(
                self.photo_storage.store, form_result.photo
            )
        except PhotoStorageError as e:
            if form_result.photo is not None:
                form_result.photo.discard()
            log.error("comment_photo_failed", error=e.message, kind=e.code)
            return Failed(stage=SubmissionStage.PHOTO, error=e)

        pending = self.comment_service.prepare(comment)

        try:
            score = await self.spam_checker.get_spam_score(comment, context)
        except SpamCheckError as e:
            log.error(
                "comment_spam_check_failed",
                comment_id=str(comment.comment_id),
                error=e.message,
            )
            return Failed(stage=SubmissionStage.SPAM_CHECKING, error=e)

        if score == SpamScore.BLATANT_SPAM:
            log.warning(
                "comment_rejected_as_spam",
                comment_id=str(comment.comment_id),
                photo_filename=comment.photo_filename,
                user_ip=context.user_ip,
            )
            return Rejected(comment=comment, reason="Blatant spam, go away!")

        try:
            await self.comment_service.commit(pending)
        except CommentError as e:
            return Failed(stage=SubmissionStage.PERSISTING, error=e)

        log.info(
            "comment_submitted",
            comment_id=str(comment.comment_id),
            spam_score=int(score),
            has_photo=comment.photo_filename is not None,
        )
        return Accepted(comment=comment, redirect_url=conference_url(conference))
