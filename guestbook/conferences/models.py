"""Database models for conferences.

Conferences are looked up by id and by slug, so they are written to two
tables: the main table keyed by id and a slug lookup table.
"""

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CONFERENCE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.conferences (
    conference_id UUID PRIMARY KEY,
    city TEXT,
    year TEXT,
    is_international BOOLEAN,
    slug TEXT,
    created_at TIMESTAMP
)
"""

# Slug lookup - slugs are unique, so the slug is the whole primary key
CONFERENCES_BY_SLUG_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.conferences_by_slug (
    slug TEXT PRIMARY KEY,
    conference_id UUID,
    city TEXT,
    year TEXT,
    is_international BOOLEAN,
    created_at TIMESTAMP
)
"""

CONFERENCES_TABLES_CQL = [
    CONFERENCE_TABLE_CQL,
    CONFERENCES_BY_SLUG_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def generate_slug(text: str) -> str:
    """Generate URL-friendly slug from free text."""
    slug = unicodedata.normalize("NFKD", text)
    slug = slug.encode("ascii", "ignore").decode("ascii")
    slug = slug.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    return re.sub(r"[-\s_]+", "-", slug).strip("-")


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Conference:
    """Conference entity, identified publicly by its slug."""

    conference_id: UUID
    city: str
    year: str
    is_international: bool
    slug: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def name(self) -> str:
        return f"{self.city} {self.year}"

    def __str__(self) -> str:
        return self.name

    @classmethod
    def from_row(cls, row: Any) -> "Conference":
        """Create Conference from a row of either conference table."""
        return cls(
            conference_id=row.conference_id,
            city=row.city,
            year=row.year,
            is_international=row.is_international or False,
            slug=row.slug,
            created_at=ensure_utc_aware(row.created_at) or datetime.now(UTC),
        )


def create_conference(
    city: str,
    year: str,
    is_international: bool = False,
    slug: str | None = None,
) -> Conference:
    """Factory function to create a new conference.

    The slug defaults to ``<city>-<year>``.
    """
    return Conference(
        conference_id=uuid4(),
        city=city,
        year=year,
        is_international=is_international,
        slug=slug or generate_slug(f"{city}-{year}"),
    )
