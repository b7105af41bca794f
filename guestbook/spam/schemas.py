"""Value objects exchanged with the spam evaluator."""

from dataclasses import asdict, dataclass
from enum import IntEnum


class SpamScore(IntEnum):
    """Scores returned by a spam evaluator."""

    HAM = 0
    MAYBE_SPAM = 1
    BLATANT_SPAM = 2


@dataclass(frozen=True)
class SubmissionContext:
    """Request details sent alongside a comment for spam evaluation.

    Built fresh for every submission and never persisted.
    """

    user_ip: str | None
    user_agent: str | None
    referrer: str | None
    permalink: str

    def to_dict(self) -> dict[str, str]:
        """Non-empty fields, keyed by their wire names."""
        return {k: v for k, v in asdict(self).items() if v}
