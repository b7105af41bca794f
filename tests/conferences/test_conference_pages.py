"""Tests for the conference pages and comment submission over HTTP."""

import os
from pathlib import Path
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from guestbook.comments.schemas import CommentPage
from guestbook.comments.service import CommitError, RateLimitExceededError
from guestbook.comments.submission import Accepted, Failed, Rejected, SubmissionStage
from guestbook.conferences.router import parse_offset
from guestbook.conferences.service import ConferenceNotFoundError
from guestbook.spam.service import SpamCheckError


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 56

VALID_FORM = {
    "author": "Fabien",
    "text": "Some feedback from an automated functional test",
    "email": "me@automat.ed",
}


def _staged_files() -> set[str]:
    """Names currently in the upload staging directory."""
    staging = Path(os.environ["UPLOAD_TMP_DIR"])
    return {p.name for p in staging.iterdir()} if staging.exists() else set()


class TestIndex:
    """Tests for the conference listing."""

    def test_lists_conferences(self, client: TestClient, conference):
        response = client.get("/")

        assert response.status_code == 200
        assert "Give your feedback!" in response.text
        assert "Amsterdam 2019" in response.text
        assert "/conference/amsterdam-2019" in response.text


class TestShowConference:
    """Tests for GET /conference/{slug}."""

    def test_renders_page(self, client: TestClient, app_services, conference):
        response = client.get("/conference/amsterdam-2019")

        assert response.status_code == 200
        assert "Amsterdam 2019 Conference" in response.text
        assert "No comments have been posted yet" in response.text
        app_services["conference_service"].get_by_slug.assert_awaited_once_with(
            "amsterdam-2019"
        )

    def test_unknown_conference(self, client: TestClient, app_services):
        app_services["conference_service"].get_by_slug.side_effect = (
            ConferenceNotFoundError("nowhere-2000")
        )

        response = client.get("/conference/nowhere-2000")

        assert response.status_code == 404
        assert "nowhere-2000" in response.text

    def test_lists_comments_with_pagination(
        self, client: TestClient, app_services, conference, make_comment
    ):
        comments = [
            make_comment(conference, author="Alice", photo_filename="0123456789ab.png"),
            make_comment(conference, author="Bob"),
        ]
        app_services["comment_service"].paginate.return_value = CommentPage(
            comments=comments, offset=2, page_size=2, total=5
        )

        response = client.get("/conference/amsterdam-2019?offset=2")

        assert response.status_code == 200
        assert "There are 5 comments." in response.text
        assert "Alice" in response.text
        assert "Bob" in response.text
        assert "/uploads/photos/0123456789ab.png" in response.text
        assert "offset=0" in response.text
        assert "offset=4" in response.text
        app_services["comment_service"].paginate.assert_awaited_once_with(
            conference, 2
        )

    def test_first_page_hides_previous(
        self, client: TestClient, app_services, conference, make_comment
    ):
        app_services["comment_service"].paginate.return_value = CommentPage(
            comments=[make_comment(conference)], offset=0, page_size=2, total=1
        )

        response = client.get("/conference/amsterdam-2019")

        assert "Previous" not in response.text
        assert "Next" not in response.text

    def test_negative_offset_treated_as_zero(
        self, client: TestClient, app_services, conference
    ):
        client.get("/conference/amsterdam-2019?offset=-5")

        app_services["comment_service"].paginate.assert_awaited_once_with(
            conference, 0
        )

    def test_non_numeric_offset_treated_as_zero(
        self, client: TestClient, app_services, conference
    ):
        response = client.get("/conference/amsterdam-2019?offset=abc")

        assert response.status_code == 200
        app_services["comment_service"].paginate.assert_awaited_once_with(
            conference, 0
        )

    def test_services_unavailable(self, client: TestClient):
        client.app.state.conference_service = None

        response = client.get("/conference/amsterdam-2019")

        assert response.status_code == 503

    def test_offset_past_last_comment(
        self, client: TestClient, app_services, conference
    ):
        app_services["comment_service"].paginate.return_value = CommentPage(
            comments=[], offset=10, page_size=2, total=5
        )

        response = client.get("/conference/amsterdam-2019?offset=10")

        assert response.status_code == 200
        assert "There are 5 comments." in response.text
        assert "No comments have been posted yet" not in response.text
        assert "offset=8" in response.text
        assert "Next" not in response.text


class TestSubmitComment:
    """Tests for POST /conference/{slug}."""

    def test_accepted_redirects_to_conference(
        self, client: TestClient, app_services, conference, make_comment
    ):
        workflow = app_services["submission_workflow"]
        workflow.submit.return_value = Accepted(
            comment=make_comment(conference), redirect_url="/conference/amsterdam-2019"
        )

        response = client.post(
            "/conference/amsterdam-2019",
            data=VALID_FORM,
            headers={"User-Agent": "guestbook-tests", "Referer": "http://ref.test/"},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["location"] == "/conference/amsterdam-2019"

        submitted_conference, form_result, context = workflow.submit.await_args.args
        assert submitted_conference is conference
        assert form_result.is_valid
        assert form_result.photo is None
        assert context.user_agent == "guestbook-tests"
        assert context.referrer == "http://ref.test/"
        assert context.permalink.endswith("/conference/amsterdam-2019")

        comment_service = app_services["comment_service"]
        comment_service.check_rate_limit.assert_awaited_once()
        comment_service.increment_rate_limit.assert_awaited_once()

    def test_photo_is_staged_and_passed_on(
        self, client: TestClient, app_services, conference, make_comment
    ):
        seen = {}

        async def submit(conf, form_result, context):
            seen["size"] = form_result.photo.size
            seen["content"] = form_result.photo.path.read_bytes()
            return Accepted(
                comment=make_comment(conf), redirect_url="/conference/amsterdam-2019"
            )

        workflow = app_services["submission_workflow"]
        workflow.submit.side_effect = submit

        response = client.post(
            "/conference/amsterdam-2019",
            data=VALID_FORM,
            files={"photo": ("under-construction.png", PNG_BYTES, "image/png")},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert seen == {"size": len(PNG_BYTES), "content": PNG_BYTES}
        form_result = workflow.submit.await_args.args[1]
        assert not form_result.photo.path.exists()

    def test_staged_photo_removed_when_submission_raises(
        self, client: TestClient, app_services
    ):
        before = _staged_files()
        app_services["submission_workflow"].submit.side_effect = RuntimeError("boom")

        response = client.post(
            "/conference/amsterdam-2019",
            data=VALID_FORM,
            files={"photo": ("me.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 500
        assert _staged_files() == before
        app_services["comment_service"].increment_rate_limit.assert_not_awaited()

    def test_empty_photo_field_is_no_photo(
        self, client: TestClient, app_services, conference, make_comment
    ):
        workflow = app_services["submission_workflow"]
        workflow.submit.return_value = Accepted(
            comment=make_comment(conference), redirect_url="/conference/amsterdam-2019"
        )

        client.post(
            "/conference/amsterdam-2019",
            data=VALID_FORM,
            files={"photo": ("", b"", "application/octet-stream")},
            follow_redirects=False,
        )

        assert workflow.submit.await_args.args[1].photo is None

    def test_invalid_form_rerenders_with_errors(
        self, client: TestClient, app_services
    ):
        response = client.post(
            "/conference/amsterdam-2019",
            data={"author": "Fabien", "text": "", "email": "not-an-email"},
        )

        assert response.status_code == 422
        assert "Add your own feedback" in response.text
        assert 'value="Fabien"' in response.text
        assert 'value="not-an-email"' in response.text
        assert "form-error" in response.text
        app_services["submission_workflow"].submit.assert_not_awaited()
        app_services["comment_service"].increment_rate_limit.assert_not_awaited()

    def test_oversized_photo_rerenders(self, client: TestClient, app_services):
        before = _staged_files()
        huge = PNG_BYTES + b"\x00" * (6 * 1024 * 1024)

        response = client.post(
            "/conference/amsterdam-2019",
            data=VALID_FORM,
            files={"photo": ("huge.png", huge, "image/png")},
        )

        assert response.status_code == 422
        assert "The file is too large." in response.text
        assert _staged_files() == before
        app_services["submission_workflow"].submit.assert_not_awaited()

    def test_invalid_photo_rerenders(self, client: TestClient, app_services):
        response = client.post(
            "/conference/amsterdam-2019",
            data=VALID_FORM,
            files={"photo": ("evil.png", b"<?php system($_GET['c']);", "image/png")},
        )

        assert response.status_code == 422
        assert "This file is not a valid image." in response.text
        app_services["submission_workflow"].submit.assert_not_awaited()

    def test_blatant_spam_is_server_error(
        self, client: TestClient, app_services, conference, make_comment
    ):
        app_services["submission_workflow"].submit.return_value = Rejected(
            comment=make_comment(conference), reason="Blatant spam, go away!"
        )

        response = client.post(
            "/conference/amsterdam-2019", data=VALID_FORM, follow_redirects=False
        )

        assert response.status_code == 500
        assert "location" not in response.headers

    def test_spam_service_failure_is_server_error(
        self, client: TestClient, app_services
    ):
        app_services["submission_workflow"].submit.return_value = Failed(
            stage=SubmissionStage.SPAM_CHECKING, error=SpamCheckError("timeout")
        )

        response = client.post("/conference/amsterdam-2019", data=VALID_FORM)

        assert response.status_code == 500
        assert "timeout" not in response.text

    def test_commit_failure_is_server_error(self, client: TestClient, app_services):
        app_services["submission_workflow"].submit.return_value = Failed(
            stage=SubmissionStage.PERSISTING, error=CommitError("write timeout")
        )

        response = client.post("/conference/amsterdam-2019", data=VALID_FORM)

        assert response.status_code == 500

    def test_rate_limited(self, client: TestClient, app_services):
        before = _staged_files()
        app_services["comment_service"].check_rate_limit = AsyncMock(
            side_effect=RateLimitExceededError()
        )

        response = client.post(
            "/conference/amsterdam-2019",
            data=VALID_FORM,
            files={"photo": ("me.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 429
        assert _staged_files() == before
        app_services["submission_workflow"].submit.assert_not_awaited()


class TestParseOffset:
    """Tests for the offset query parameter."""

    def test_values(self):
        assert parse_offset(None) == 0
        assert parse_offset("4") == 4
        assert parse_offset("-3") == 0
        assert parse_offset("two") == 0
