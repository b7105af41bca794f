"""Conference comments.

Provides:
- Comment entity and Cassandra tables
- Form validation
- Two-phase persistence and pagination
- The submission workflow (photo, spam check, commit)
"""

from .models import COMMENTS_TABLES_CQL, Comment
from .schemas import CommentForm, CommentFormResult, CommentPage
from .service import CommentError, CommentService, PendingComment
from .submission import (
    Accepted,
    CommentSubmissionWorkflow,
    Failed,
    Rejected,
    SpamRejected,
    SubmissionOutcome,
)


__all__ = [
    "COMMENTS_TABLES_CQL",
    "Accepted",
    "Comment",
    "CommentError",
    "CommentForm",
    "CommentFormResult",
    "CommentPage",
    "CommentService",
    "CommentSubmissionWorkflow",
    "Failed",
    "PendingComment",
    "Rejected",
    "SpamRejected",
    "SubmissionOutcome",
]
