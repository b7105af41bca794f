"""Shared fixtures for the guestbook test suite."""

import os
import tempfile
from collections.abc import Iterator
from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock
from uuid import uuid4


# Settings are read at import time of guestbook.main
_TMP_ROOT = tempfile.mkdtemp(prefix="guestbook-tests-")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("PHOTO_DIR", os.path.join(_TMP_ROOT, "photos"))
os.environ.setdefault("UPLOAD_TMP_DIR", os.path.join(_TMP_ROOT, "uploads"))
os.environ.pop("AKISMET_KEY", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from guestbook.comments.models import Comment  # noqa: E402
from guestbook.comments.schemas import CommentPage  # noqa: E402
from guestbook.conferences.models import Conference  # noqa: E402


@pytest.fixture
def conference() -> Conference:
    """A conference to comment on."""
    return Conference(
        conference_id=uuid4(),
        city="Amsterdam",
        year="2019",
        is_international=True,
        slug="amsterdam-2019",
    )


@pytest.fixture
def make_comment():
    """Factory for stored comments."""

    def _make(conference: Conference, author: str = "Fabien", **kwargs) -> Comment:
        return Comment(
            author=author,
            email=kwargs.pop("email", "fabien@example.com"),
            text=kwargs.pop("text", "This was a great conference."),
            conference_id=conference.conference_id,
            created_at=kwargs.pop("created_at", datetime(2019, 5, 1, tzinfo=UTC)),
            **kwargs,
        )

    return _make


@pytest.fixture
def app_services(conference: Conference):
    """Mocked services wired onto app.state, as the lifespan would."""
    conference_service = Mock()
    conference_service.find_all = AsyncMock(return_value=[conference])
    conference_service.get_by_slug = AsyncMock(return_value=conference)

    comment_service = Mock()
    comment_service.paginate = AsyncMock(
        return_value=CommentPage(comments=[], offset=0, page_size=2, total=0)
    )
    comment_service.check_rate_limit = AsyncMock(return_value=None)
    comment_service.increment_rate_limit = AsyncMock(return_value=None)

    workflow = Mock()
    workflow.submit = AsyncMock()

    return {
        "conference_service": conference_service,
        "comment_service": comment_service,
        "submission_workflow": workflow,
    }


@pytest.fixture
def client(app_services) -> Iterator[TestClient]:
    """Test client without the lifespan (no Cassandra or Redis)."""
    from guestbook.main import app

    app.state.redis = None
    for name, service in app_services.items():
        setattr(app.state, name, service)

    yield TestClient(app, raise_server_exceptions=False)

    for name in app_services:
        delattr(app.state, name)
