"""Spam evaluation of submitted comments."""

from guestbook.spam.schemas import SpamScore, SubmissionContext
from guestbook.spam.service import (
    AkismetSpamChecker,
    NullSpamChecker,
    SpamChecker,
    SpamCheckError,
    build_spam_checker,
)


__all__ = [
    "AkismetSpamChecker",
    "NullSpamChecker",
    "SpamCheckError",
    "SpamChecker",
    "SpamScore",
    "SubmissionContext",
    "build_spam_checker",
]
