"""Conference repository backed by Cassandra."""

from typing import TYPE_CHECKING

import structlog
from cassandra.query import BatchStatement, BatchType

from guestbook.core.errors import GuestbookError

from .models import Conference, create_conference


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


class ConferenceNotFoundError(GuestbookError):
    """No conference has the requested slug."""

    def __init__(self, slug: str):
        super().__init__(f"Conference '{slug}' not found", "conference_not_found")
        self.slug = slug


class DuplicateSlugError(GuestbookError):
    """Another conference already uses the slug."""

    def __init__(self, slug: str):
        super().__init__(f"Slug '{slug}' is already taken", "duplicate_slug")
        self.slug = slug


class ConferenceService:
    """Lookup and creation of conferences."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_conference = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.conferences
            (conference_id, city, year, is_international, slug, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        self._insert_conference_by_slug = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.conferences_by_slug
            (slug, conference_id, city, year, is_international, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        self._get_all_conferences = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.conferences
        """)

        self._get_conference_by_slug = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.conferences_by_slug
            WHERE slug = ?
        """)

    async def find_all(self) -> list[Conference]:
        """Return every conference, most recent year first."""
        rows = await self.session.aexecute(self._get_all_conferences)
        conferences = [Conference.from_row(row) for row in rows]
        conferences.sort(key=lambda c: (c.year, c.city), reverse=True)
        return conferences

    async def find_by_slug(self, slug: str) -> Conference | None:
        result = await self.session.aexecute(self._get_conference_by_slug, [slug])
        row = result.one()
        return Conference.from_row(row) if row else None

    async def get_by_slug(self, slug: str) -> Conference:
        """Like find_by_slug, but raise ConferenceNotFoundError when missing."""
        conference = await self.find_by_slug(slug)
        if conference is None:
            raise ConferenceNotFoundError(slug)
        return conference

    async def create(
        self,
        city: str,
        year: str,
        is_international: bool = False,
        slug: str | None = None,
    ) -> Conference:
        """Create a conference, writing both tables in one logged batch."""
        conference = create_conference(
            city=city, year=year, is_international=is_international, slug=slug
        )
        if await self.find_by_slug(conference.slug) is not None:
            raise DuplicateSlugError(conference.slug)

        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(
            self._insert_conference,
            [
                conference.conference_id,
                conference.city,
                conference.year,
                conference.is_international,
                conference.slug,
                conference.created_at,
            ],
        )
        batch.add(
            self._insert_conference_by_slug,
            [
                conference.slug,
                conference.conference_id,
                conference.city,
                conference.year,
                conference.is_international,
                conference.created_at,
            ],
        )
        await self.session.aexecute(batch)

        logger.info(
            "conference_created",
            conference_id=str(conference.conference_id),
            slug=conference.slug,
        )
        return conference
