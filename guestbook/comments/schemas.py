"""Pydantic schemas and value objects for comments.

- CommentForm: validated comment form input
- CommentFormResult: typed outcome of form validation
- CommentPage: one page of a conference's comments with offset bookkeeping
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .models import Comment


if TYPE_CHECKING:
    from guestbook.photos.service import UploadedPhoto


# ==============================================================================
# Constants
# ==============================================================================
AUTHOR_MAX_LENGTH = 255
TEXT_MAX_LENGTH = 10000


# ==============================================================================
# Form Schemas
# ==============================================================================


class CommentForm(BaseModel):
    """Text fields of the comment form."""

    model_config = ConfigDict(str_strip_whitespace=True)

    author: str = Field(..., min_length=1, max_length=AUTHOR_MAX_LENGTH)
    text: str = Field(..., min_length=1, max_length=TEXT_MAX_LENGTH)
    email: EmailStr

    @field_validator("author", "text", mode="before")
    @classmethod
    def reject_blank(cls, v: object) -> object:
        """Treat whitespace-only input as missing."""
        if isinstance(v, str) and not v.strip():
            msg = "This value should not be blank."
            raise ValueError(msg)
        return v

    def to_comment(self) -> Comment:
        """Bind the form fields onto a new, unattached Comment."""
        return Comment(author=self.author, email=str(self.email), text=self.text)


@dataclass
class CommentFormResult:
    """Outcome of validating a submitted comment form.

    Either ``form`` is set (valid) or ``errors`` maps field names to
    messages (invalid). ``values`` always holds the raw submitted text so an
    invalid form can be re-rendered as the visitor typed it.
    """

    values: dict[str, str]
    form: CommentForm | None = None
    photo: "UploadedPhoto | None" = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.form is not None and not self.errors

    @classmethod
    def empty(cls) -> "CommentFormResult":
        """An unsubmitted form."""
        return cls(values={"author": "", "text": "", "email": ""})


# ==============================================================================
# Pagination
# ==============================================================================


@dataclass
class CommentPage:
    """A bounded slice of a conference's comments.

    ``previous`` may be negative when the page is the first one; templates
    hide the link in that case. ``next`` is capped at ``total``.
    """

    comments: list[Comment]
    offset: int
    page_size: int
    total: int

    @property
    def previous(self) -> int:
        return self.offset - self.page_size

    @property
    def next(self) -> int:
        return min(self.total, self.offset + self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.previous >= 0

    @property
    def has_next(self) -> bool:
        return self.next < self.total

    def __len__(self) -> int:
        return len(self.comments)
