"""Tests for the comment submission workflow.

Covers the ordering guarantees of a submission:
- nothing is committed when the spam check rejects the comment
- exactly one commit for an accepted comment
- collaborator failures are reported as Failed outcomes
"""

import asyncio
import threading
from pathlib import Path
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from guestbook.comments.forms import validate_comment_form
from guestbook.comments.schemas import CommentFormResult
from guestbook.comments.service import CommitError, PendingComment
from guestbook.comments.submission import (
    Accepted,
    CommentSubmissionWorkflow,
    Failed,
    Rejected,
    SubmissionStage,
    build_submission_context,
)
from guestbook.conferences.models import Conference
from guestbook.config.settings import Settings
from guestbook.photos.service import (
    PhotoStorage,
    RandomnessFailure,
    StorageFailure,
    UploadedPhoto,
)
from guestbook.spam.schemas import SpamScore, SubmissionContext
from guestbook.spam.service import SpamCheckError


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 56


class FixedRandomSource:
    def token_bytes(self, nbytes: int) -> bytes:
        return bytes(range(nbytes))


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="testing")


@pytest.fixture
def submission_context() -> SubmissionContext:
    return SubmissionContext(
        user_ip="203.0.113.7",
        user_agent="Mozilla/5.0",
        referrer="https://example.com/",
        permalink="http://testserver/conference/amsterdam-2019",
    )


@pytest.fixture
def comment_service():
    """Comment service whose prepare returns a real pending handle."""
    service = Mock()
    service.prepare = Mock(
        side_effect=lambda comment: PendingComment(
            comment=comment, statement=Mock()
        )
    )
    service.commit = AsyncMock(side_effect=lambda pending: pending.comment)
    return service


@pytest.fixture
def spam_checker():
    checker = Mock()
    checker.get_spam_score = AsyncMock(return_value=SpamScore.HAM)
    return checker


@pytest.fixture
def photo_dir(tmp_path: Path) -> Path:
    return tmp_path / "photos"


@pytest.fixture
def workflow(comment_service, spam_checker, photo_dir) -> CommentSubmissionWorkflow:
    return CommentSubmissionWorkflow(
        comment_service=comment_service,
        photo_storage=PhotoStorage(photo_dir, random_source=FixedRandomSource()),
        spam_checker=spam_checker,
    )


@pytest.fixture
def valid_form(settings) -> CommentFormResult:
    return validate_comment_form(
        {
            "author": "Fabien",
            "text": "Great conference!",
            "email": "fabien@example.com",
        },
        None,
        settings,
    )


@pytest.fixture
def form_with_photo(settings, tmp_path) -> CommentFormResult:
    path = tmp_path / "upload-1"
    path.write_bytes(PNG_BYTES)
    photo = UploadedPhoto(path=path, original_filename="me.png", size=len(PNG_BYTES))
    return validate_comment_form(
        {
            "author": "Fabien",
            "text": "Look at this!",
            "email": "fabien@example.com",
        },
        photo,
        settings,
    )


class TestAccepted:
    """Submissions that pass the spam check."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("score", [SpamScore.HAM, SpamScore.MAYBE_SPAM])
    async def test_commits_once_and_redirects(
        self,
        workflow,
        comment_service,
        spam_checker,
        conference,
        valid_form,
        submission_context,
        score,
    ):
        spam_checker.get_spam_score.return_value = score

        outcome = await workflow.submit(conference, valid_form, submission_context)

        assert isinstance(outcome, Accepted)
        assert outcome.redirect_url == "/conference/amsterdam-2019"
        assert outcome.comment.conference_id == conference.conference_id
        comment_service.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_spam_check_sees_comment_and_context(
        self, workflow, spam_checker, conference, valid_form, submission_context
    ):
        outcome = await workflow.submit(conference, valid_form, submission_context)

        spam_checker.get_spam_score.assert_awaited_once_with(
            outcome.comment, submission_context
        )

    @pytest.mark.asyncio
    async def test_without_photo(
        self, workflow, conference, valid_form, submission_context, photo_dir
    ):
        outcome = await workflow.submit(conference, valid_form, submission_context)

        assert outcome.comment.photo_filename is None
        assert not photo_dir.exists()

    @pytest.mark.asyncio
    async def test_with_photo(
        self, workflow, conference, form_with_photo, submission_context, photo_dir
    ):
        outcome = await workflow.submit(
            conference, form_with_photo, submission_context
        )

        assert isinstance(outcome, Accepted)
        assert outcome.comment.photo_filename == "000102030405.png"
        assert (photo_dir / "000102030405.png").exists()
        assert not form_with_photo.photo.path.exists()

    @pytest.mark.asyncio
    async def test_photo_stored_before_staging(
        self,
        workflow,
        comment_service,
        conference,
        form_with_photo,
        submission_context,
    ):
        await workflow.submit(conference, form_with_photo, submission_context)

        staged = comment_service.prepare.call_args.args[0]
        assert staged.photo_filename == "000102030405.png"

    @pytest.mark.asyncio
    async def test_photo_stored_off_event_loop(
        self,
        comment_service,
        spam_checker,
        conference,
        form_with_photo,
        submission_context,
    ):
        store_threads = []

        def store(photo):
            store_threads.append(threading.get_ident())
            return "000102030405.png"

        storage = Mock()
        storage.store = Mock(side_effect=store)
        workflow = CommentSubmissionWorkflow(comment_service, storage, spam_checker)

        outcome = await workflow.submit(
            conference, form_with_photo, submission_context
        )

        assert isinstance(outcome, Accepted)
        storage.store.assert_called_once_with(form_with_photo.photo)
        assert store_threads != [threading.get_ident()]


class TestRejected:
    """Blatant spam is never committed."""

    @pytest.mark.asyncio
    async def test_blatant_spam_not_committed(
        self,
        workflow,
        comment_service,
        spam_checker,
        conference,
        valid_form,
        submission_context,
    ):
        spam_checker.get_spam_score.return_value = SpamScore.BLATANT_SPAM

        outcome = await workflow.submit(conference, valid_form, submission_context)

        assert isinstance(outcome, Rejected)
        assert outcome.reason == "Blatant spam, go away!"
        comment_service.prepare.assert_called_once()
        comment_service.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_raw_integer_score_two_rejects(
        self,
        workflow,
        comment_service,
        spam_checker,
        conference,
        valid_form,
        submission_context,
    ):
        spam_checker.get_spam_score.return_value = 2

        outcome = await workflow.submit(conference, valid_form, submission_context)

        assert isinstance(outcome, Rejected)
        comment_service.commit.assert_not_awaited()


class TestFailed:
    """Collaborator failures."""

    @pytest.mark.asyncio
    async def test_spam_service_down(
        self,
        workflow,
        comment_service,
        spam_checker,
        conference,
        valid_form,
        submission_context,
    ):
        spam_checker.get_spam_score.side_effect = SpamCheckError("timeout")

        outcome = await workflow.submit(conference, valid_form, submission_context)

        assert isinstance(outcome, Failed)
        assert outcome.stage is SubmissionStage.SPAM_CHECKING
        assert outcome.kind == "spam_check_failed"
        comment_service.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit_failure(
        self,
        workflow,
        comment_service,
        conference,
        valid_form,
        submission_context,
    ):
        comment_service.commit.side_effect = CommitError("boom")

        outcome = await workflow.submit(conference, valid_form, submission_context)

        assert isinstance(outcome, Failed)
        assert outcome.stage is SubmissionStage.PERSISTING
        assert outcome.kind == "commit_failed"

    @pytest.mark.asyncio
    async def test_randomness_failure_stops_before_spam_check(
        self,
        comment_service,
        spam_checker,
        conference,
        form_with_photo,
        submission_context,
        photo_dir,
    ):
        storage = Mock()
        storage.store = Mock(side_effect=RandomnessFailure("no entropy"))
        workflow = CommentSubmissionWorkflow(comment_service, storage, spam_checker)

        outcome = await workflow.submit(
            conference, form_with_photo, submission_context
        )

        assert isinstance(outcome, Failed)
        assert outcome.stage is SubmissionStage.PHOTO
        assert outcome.kind == "randomness_failure"
        spam_checker.get_spam_score.assert_not_awaited()
        comment_service.prepare.assert_not_called()
        assert not form_with_photo.photo.path.exists()

    @pytest.mark.asyncio
    async def test_storage_failure(
        self,
        comment_service,
        spam_checker,
        conference,
        form_with_photo,
        submission_context,
    ):
        storage = Mock()
        storage.store = Mock(side_effect=StorageFailure("disk full"))
        workflow = CommentSubmissionWorkflow(comment_service, storage, spam_checker)

        outcome = await workflow.submit(
            conference, form_with_photo, submission_context
        )

        assert isinstance(outcome, Failed)
        assert outcome.kind == "storage_failure"
        comment_service.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_form_refused(
        self, workflow, conference, submission_context
    ):
        with pytest.raises(ValueError):
            await workflow.submit(
                conference, CommentFormResult.empty(), submission_context
            )


class TestConcurrency:
    """Concurrent submissions stay independent."""

    @pytest.mark.asyncio
    async def test_each_submission_keeps_its_conference(
        self, workflow, settings, submission_context
    ):
        conferences = [
            Conference(
                conference_id=uuid4(),
                city=f"City{i}",
                year="2020",
                is_international=False,
                slug=f"city{i}-2020",
            )
            for i in range(5)
        ]
        forms = [
            validate_comment_form(
                {"author": f"a{i}", "text": f"t{i}", "email": f"a{i}@example.com"},
                None,
                settings,
            )
            for i in range(5)
        ]

        outcomes = await asyncio.gather(
            *(
                workflow.submit(conf, form, submission_context)
                for conf, form in zip(conferences, forms, strict=True)
            )
        )

        for conf, form, outcome in zip(conferences, forms, outcomes, strict=True):
            assert isinstance(outcome, Accepted)
            assert outcome.comment.conference_id == conf.conference_id
            assert outcome.comment.author == form.form.author
            assert outcome.redirect_url == f"/conference/{conf.slug}"


class TestBuildSubmissionContext:
    """Request details forwarded to the spam evaluator."""

    def _request(self, headers: dict[str, str]):
        request = Mock()
        request.headers = headers
        request.client = Mock(host="198.51.100.1")
        request.url = "http://testserver/conference/amsterdam-2019"
        return request

    def test_reads_request_details(self):
        request = self._request(
            {"user-agent": "curl/8", "referrer": "https://ref.example/"}
        )

        context = build_submission_context(request)

        assert context.user_ip == "198.51.100.1"
        assert context.user_agent == "curl/8"
        assert context.referrer == "https://ref.example/"
        assert context.permalink == "http://testserver/conference/amsterdam-2019"

    def test_standard_referer_header(self):
        request = self._request({"referer": "https://ref.example/"})

        assert build_submission_context(request).referrer == "https://ref.example/"

    def test_forwarded_for_wins(self):
        request = self._request({"x-forwarded-for": "203.0.113.9, 10.0.0.1"})

        assert build_submission_context(request).user_ip == "203.0.113.9"

    def test_missing_headers(self):
        context = build_submission_context(self._request({}))

        assert context.user_agent is None
        assert context.referrer is None
        assert context.to_dict() == {
            "user_ip": "198.51.100.1",
            "permalink": "http://testserver/conference/amsterdam-2019",
        }
