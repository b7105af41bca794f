"""Utility modules for the guestbook."""

from guestbook.utils.magic_bytes import (
    detect_content_type,
    guess_extension,
    is_allowed_image,
)


__all__ = ["detect_content_type", "guess_extension", "is_allowed_image"]
