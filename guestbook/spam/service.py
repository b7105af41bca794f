"""Spam evaluation for submitted comments.

The scoring itself happens in an external service; this module holds the
evaluator protocol and an Akismet client implementing it.

SECURITY: the Akismet key is part of the endpoint host and is never logged.
"""

from typing import TYPE_CHECKING, Protocol

import httpx
import structlog

from guestbook.core.errors import GuestbookError

from .schemas import SpamScore, SubmissionContext


if TYPE_CHECKING:
    from guestbook.comments.models import Comment
    from guestbook.config.settings import Settings


logger = structlog.get_logger(__name__)


class SpamCheckError(GuestbookError):
    """The spam evaluator could not produce a score."""

    def __init__(self, message: str):
        super().__init__(f"Unable to check for spam: {message}", "spam_check_failed")


class SpamChecker(Protocol):
    """Anything that can score a comment for spam."""

    async def get_spam_score(
        self, comment: "Comment", context: SubmissionContext
    ) -> int: ...


class NullSpamChecker:
    """Evaluator used when no spam service is configured; accepts everything."""

    async def get_spam_score(
        self, comment: "Comment", context: SubmissionContext
    ) -> int:
        logger.debug("spam_check_skipped", comment_id=str(comment.comment_id))
        return SpamScore.HAM


class AkismetSpamChecker:
    """Spam evaluator backed by the Akismet comment-check API.

    Score mapping:
    - header ``X-akismet-pro-tip: discard`` -> 2 (blatant spam)
    - body ``true`` -> 1 (probably spam)
    - anything else -> 0
    - header ``X-akismet-debug-help`` -> SpamCheckError
    """

    PRO_TIP_HEADER = "x-akismet-pro-tip"
    DEBUG_HELP_HEADER = "x-akismet-debug-help"

    def __init__(
        self,
        settings: "Settings",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the checker.

        Args:
            settings: Application settings holding the Akismet configuration.
            client: Optional HTTP client, mainly for tests; one is created
                per call otherwise.
        """
        if not settings.akismet_key:
            raise ValueError("Akismet key is not configured")
        self.endpoint = settings.akismet_endpoint.format(key=settings.akismet_key)
        self.site_url = settings.akismet_site_url
        self.is_test = settings.akismet_is_test
        self.timeout = settings.akismet_timeout
        self._client = client

    def build_payload(
        self, comment: "Comment", context: SubmissionContext
    ) -> dict[str, str]:
        """Form fields sent to Akismet for one comment."""
        payload = context.to_dict()
        payload.update(
            {
                "blog": self.site_url,
                "comment_type": "comment",
                "comment_author": comment.author,
                "comment_author_email": comment.email,
                "comment_content": comment.text,
                "comment_date_gmt": comment.created_at.isoformat(),
                "blog_lang": "en",
                "blog_charset": "UTF-8",
            }
        )
        if self.is_test:
            payload["is_test"] = "1"
        return payload

    async def get_spam_score(
        self, comment: "Comment", context: SubmissionContext
    ) -> int:
        """Ask Akismet to score ``comment``.

        Raises:
            SpamCheckError: On transport failure or when Akismet reports a
                problem with the request.
        """
        payload = self.build_payload(comment, context)

        try:
            if self._client is not None:
                response = await self._client.post(
                    self.endpoint, data=payload, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.endpoint, data=payload)
        except httpx.TimeoutException as e:
            logger.error("akismet_timeout", error=str(e))
            raise SpamCheckError("timeout") from e
        except httpx.RequestError as e:
            logger.error("akismet_request_error", error=str(e))
            raise SpamCheckError(str(e)) from e

        if response.headers.get(self.PRO_TIP_HEADER, "") == "discard":
            return SpamScore.BLATANT_SPAM

        content = response.text.strip()
        debug_help = response.headers.get(self.DEBUG_HELP_HEADER)
        if debug_help:
            logger.error(
                "akismet_rejected_request",
                status_code=response.status_code,
                debug_help=debug_help,
            )
            raise SpamCheckError(f"{content} ({debug_help})")

        if response.status_code != httpx.codes.OK:
            logger.error("akismet_http_error", status_code=response.status_code)
            raise SpamCheckError(f"HTTP {response.status_code}")

        return SpamScore.MAYBE_SPAM if content == "true" else SpamScore.HAM


def build_spam_checker(settings: "Settings") -> SpamChecker:
    """Pick the evaluator matching the configuration."""
    if settings.akismet_configured:
        return AkismetSpamChecker(settings)
    logger.warning("akismet_not_configured", message="Spam checking disabled")
    return NullSpamChecker()
