"""Database models for conference comments.

Comments are only ever read per conference, newest first, so a single
table partitioned by conference serves both writes and the paginated listing.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition by conference for the listing query; clustering by created_at
# gives newest-first ordering
COMMENTS_BY_CONFERENCE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_conference (
    conference_id UUID,
    created_at TIMESTAMP,
    comment_id UUID,
    author TEXT,
    email TEXT,
    text TEXT,
    photo_filename TEXT,
    PRIMARY KEY ((conference_id), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at DESC, comment_id ASC)
"""

COMMENTS_TABLES_CQL = [
    COMMENTS_BY_CONFERENCE_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Comment:
    """Visitor comment on a conference."""

    author: str
    email: str
    text: str
    conference_id: UUID | None = None
    photo_filename: str | None = None
    comment_id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from Cassandra row."""
        created_at = row.created_at
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return cls(
            comment_id=row.comment_id,
            conference_id=row.conference_id,
            author=row.author,
            email=row.email,
            text=row.text,
            photo_filename=row.photo_filename,
            created_at=created_at,
        )
