"""Seed the conference tables.

Creates the keyspace and tables when missing, then adds the conferences
given on the command line as ``City:Year`` or ``City:Year:international``.
Without arguments a small default set is created. Conferences whose slug
already exists are skipped.

Usage:
    python -m scripts.seed_conferences
    python -m scripts.seed_conferences Amsterdam:2019:international Paris:2020
"""

import asyncio
import sys

import structlog

from guestbook.conferences.service import ConferenceService, DuplicateSlugError
from guestbook.config import get_settings
from guestbook.core.database import init_async_cassandra, shutdown_async_cassandra
from guestbook.core.logging import configure_structlog


logger = structlog.get_logger(__name__)


DEFAULT_CONFERENCES = [
    ("Amsterdam", "2019", True),
    ("Paris", "2020", False),
]


def parse_conference(arg: str) -> tuple[str, str, bool]:
    """Parse ``City:Year[:international]``."""
    parts = arg.split(":")
    if len(parts) not in (2, 3) or len(parts[1]) != 4:
        msg = f"Expected City:Year[:international], got {arg!r}"
        raise ValueError(msg)
    return parts[0], parts[1], len(parts) == 3 and parts[2] == "international"


async def seed(
    service: ConferenceService, conferences: list[tuple[str, str, bool]]
) -> tuple[int, int]:
    """Create ``conferences``.

    Returns:
        Tuple of (created_count, skipped_count)
    """
    created = 0
    skipped = 0

    for city, year, is_international in conferences:
        try:
            conference = await service.create(city, year, is_international)
        except DuplicateSlugError as e:
            logger.info("seed_skipped_exists", slug=e.slug)
            skipped += 1
            continue
        logger.info("seed_created", slug=conference.slug)
        created += 1

    return created, skipped


async def run_seed(args: list[str]) -> None:
    settings = get_settings()
    conferences = [parse_conference(a) for a in args] or DEFAULT_CONFERENCES

    logger.info(
        "seed_starting",
        keyspace=settings.cassandra_keyspace,
        hosts=settings.cassandra_hosts,
        count=len(conferences),
    )

    session = await init_async_cassandra()
    try:
        service = ConferenceService(session, settings.cassandra_keyspace)
        created, skipped = await seed(service, conferences)
        logger.info("seed_completed", created=created, skipped=skipped)
    finally:
        await shutdown_async_cassandra()


if __name__ == "__main__":
    configure_structlog(get_settings())
    asyncio.run(run_seed(sys.argv[1:]))
