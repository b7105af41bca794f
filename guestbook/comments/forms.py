"""Comment form parsing and validation.

Validation is explicit and independent of the web framework: the raw field
values and the optional staged photo go in, a CommentFormResult comes out.
"""

from typing import TYPE_CHECKING

from pydantic import ValidationError
from starlette.datastructures import UploadFile

from guestbook.photos.service import UploadedPhoto
from guestbook.utils.magic_bytes import is_allowed_image

from .schemas import CommentForm, CommentFormResult


if TYPE_CHECKING:
    from fastapi import Request

    from guestbook.config.settings import Settings


FORM_FIELDS = ("author", "text", "email")
PHOTO_FIELD = "photo"


def _photo_errors(photo: UploadedPhoto, settings: "Settings") -> list[str]:
    errors = []
    if photo.size > settings.photo_max_size_bytes:
        errors.append(
            f"The file is too large. Allowed maximum size is "
            f"{settings.photo_max_size_mb} MB."
        )
    elif not is_allowed_image(photo.head(), settings.photo_allowed_types):
        errors.append("This file is not a valid image.")
    return errors


def validate_comment_form(
    values: dict[str, str],
    photo: UploadedPhoto | None,
    settings: "Settings",
) -> CommentFormResult:
    """Validate submitted comment fields and photo.

    An invalid photo is removed from the staging directory.
    """
    errors: dict[str, list[str]] = {}
    form = None

    try:
        form = CommentForm.model_validate(values)
    except ValidationError as e:
        for err in e.errors():
            field = str(err["loc"][0]) if err.get("loc") else "__all__"
            errors.setdefault(field, []).append(err.get("msg", "Invalid value"))

    if photo is not None:
        photo_errors = _photo_errors(photo, settings)
        if photo_errors:
            errors[PHOTO_FIELD] = photo_errors

    if errors:
        if photo is not None:
            photo.discard()
        return CommentFormResult(values=values, errors=errors)

    return CommentFormResult(values=values, form=form, photo=photo)


async def parse_comment_form(
    request: "Request", settings: "Settings"
) -> CommentFormResult:
    """Read the submitted comment form from ``request`` and validate it."""
    data = await request.form()

    values = {}
    for name in FORM_FIELDS:
        raw = data.get(name)
        values[name] = raw if isinstance(raw, str) else ""

    photo = None
    upload = data.get(PHOTO_FIELD)
    if isinstance(upload, UploadFile):
        photo = await UploadedPhoto.from_upload(
            upload, settings.upload_tmp_dir, settings.photo_max_size_bytes
        )

    return validate_comment_form(values, photo, settings)
