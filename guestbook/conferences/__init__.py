"""Conferences and their public pages.

Note: Router is not exported here to avoid circular imports.
Import directly from guestbook.conferences.router when needed.
"""

from .models import CONFERENCES_TABLES_CQL, Conference, create_conference
from .service import ConferenceNotFoundError, ConferenceService


__all__ = [
    "CONFERENCES_TABLES_CQL",
    "Conference",
    "ConferenceNotFoundError",
    "ConferenceService",
    "create_conference",
]
