"""Comment persistence service.

Business logic for:
- Two-phase persistence: prepare (stage) then commit (durable)
- Paginated listing per conference
- Per-IP submission rate limiting (Redis-based)
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from cassandra.query import BoundStatement

from guestbook.core.errors import GuestbookError
from guestbook.core.redis import submission_rate_key

from .models import Comment
from .schemas import CommentPage


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

    from guestbook.conferences.models import Conference


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommentError(GuestbookError):
    """Base comment error."""


class RateLimitExceededError(CommentError):
    """Rate limit exceeded."""

    def __init__(self, message: str = "Too many comments, please wait a minute."):
        super().__init__(message, "rate_limit_exceeded")


class CommitError(CommentError):
    """A pending comment could not be committed."""

    def __init__(self, message: str):
        super().__init__(message, "commit_failed")


# ==============================================================================
# Pending handle
# ==============================================================================


@dataclass
class PendingComment:
    """A comment staged for persistence but not yet durable.

    Holds the bound insert for the comment. Dropping the handle without
    committing leaves no trace in the database.
    """

    comment: Comment
    statement: BoundStatement
    committed: bool = False


# ==============================================================================
# Comment Service
# ==============================================================================


class CommentService:
    """Service for comment storage and listing."""

    PAGE_SIZE = 2
    RATE_LIMIT_WINDOW_SECONDS = 60

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis | None" = None,
        page_size: int = PAGE_SIZE,
        submissions_per_minute: int = 5,
    ):
        """Initialize with Cassandra session and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self.page_size = page_size
        self.submissions_per_minute = submissions_per_minute
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_comment_by_conference = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_conference
            (conference_id, created_at, comment_id, author, email, text, photo_filename)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        # Cassandra has no OFFSET; fetch offset + page and slice client side
        self._get_comments_by_conference = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments_by_conference
            WHERE conference_id = ?
            LIMIT ?
        """)

        self._count_comments_by_conference = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.comments_by_conference
            WHERE conference_id = ?
        """)

    # ==========================================================================
    # Two-phase persistence
    # ==========================================================================

    def prepare(self, comment: Comment) -> PendingComment:
        """Stage ``comment`` for persistence without touching the database.

        Raises:
            ValueError: If the comment is not attached to a conference.
        """
        if comment.conference_id is None:
            msg = "Comment must be attached to a conference before persistence"
            raise ValueError(msg)

        statement = self._insert_comment_by_conference.bind(
            [
                comment.conference_id,
                comment.created_at,
                comment.comment_id,
                comment.author,
                comment.email,
                comment.text,
                comment.photo_filename,
            ]
        )
        return PendingComment(comment=comment, statement=statement)

    async def commit(self, pending: PendingComment) -> Comment:
        """Make a staged comment durable.

        Raises:
            CommitError: If the handle was already committed or the write failed.
        """
        if pending.committed:
            raise CommitError("Comment already committed")

        try:
            await self.session.aexecute(pending.statement)
        except Exception as e:
            logger.exception(
                "comment_commit_failed",
                comment_id=str(pending.comment.comment_id),
                error=str(e),
            )
            raise CommitError(f"Failed to save comment: {e}") from e

        pending.committed = True
        logger.info(
            "comment_committed",
            comment_id=str(pending.comment.comment_id),
            conference_id=str(pending.comment.conference_id),
        )
        return pending.comment

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def count(self, conference: "Conference") -> int:
        result = await self.session.aexecute(
            self._count_comments_by_conference, [conference.conference_id]
        )
        row = result.one()
        return row.count if row else 0

    async def paginate(self, conference: "Conference", offset: int) -> CommentPage:
        """Return the page of comments starting at ``offset``, newest first.

        Negative offsets are treated as 0.
        """
        offset = max(0, offset)
        rows = await self.session.aexecute(
            self._get_comments_by_conference,
            [conference.conference_id, offset + self.page_size],
        )
        comments = [Comment.from_row(row) for row in rows][offset:]
        total = await self.count(conference)

        return CommentPage(
            comments=comments,
            offset=offset,
            page_size=self.page_size,
            total=total,
        )

    # ==========================================================================
    # Rate Limiting (Redis-based)
    # ==========================================================================

    async def check_rate_limit(self, client_ip: str | None) -> None:
        """Raise RateLimitExceededError when the client posted too often.

        Skipped when Redis is unavailable or the client IP is unknown.
        """
        if not self.redis or not client_ip:
            return

        count = await self.redis.get(submission_rate_key(client_ip))
        if count and int(count) >= self.submissions_per_minute:
            logger.warning("comment_rate_limited", client_ip=client_ip)
            raise RateLimitExceededError

    async def increment_rate_limit(self, client_ip: str | None) -> None:
        """Count one submission for ``client_ip`` in the current window."""
        if not self.redis or not client_ip:
            return

        key = submission_rate_key(client_ip)
        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.RATE_LIMIT_WINDOW_SECONDS)
        await pipe.execute()
