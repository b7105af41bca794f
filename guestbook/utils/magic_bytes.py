"""Magic bytes detection for uploaded images.

The declared Content-Type and filename of an upload are client supplied and
not trusted; file type and extension are derived from the content itself.
"""

from pathlib import Path
from typing import NamedTuple


# Minimum bytes needed for detection
MIN_BYTES_FOR_DETECTION = 4
WEBP_HEADER_LENGTH = 12
HEAD_SIZE = 64


class MagicSignature(NamedTuple):
    """Magic bytes signature for a file type."""

    bytes_pattern: bytes
    mime_type: str
    offset: int = 0


# Reference: https://en.wikipedia.org/wiki/List_of_file_signatures
MAGIC_SIGNATURES: list[MagicSignature] = [
    MagicSignature(b"\xff\xd8\xff", "image/jpeg"),
    MagicSignature(b"\x89PNG\r\n\x1a\n", "image/png"),
    MagicSignature(b"GIF87a", "image/gif"),
    MagicSignature(b"GIF89a", "image/gif"),
    MagicSignature(b"BM", "image/bmp"),
    MagicSignature(b"II*\x00", "image/tiff"),
    MagicSignature(b"MM\x00*", "image/tiff"),
    MagicSignature(b"ftypavif", "image/avif", offset=4),
    MagicSignature(b"ftypheic", "image/heic", offset=4),
    MagicSignature(b"ftypmif1", "image/heic", offset=4),
]

EXTENSION_BY_MIME_TYPE: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
    "image/avif": "avif",
    "image/heic": "heic",
}


def detect_content_type(data: bytes) -> str | None:
    """Detect content type from file magic bytes.

    Args:
        data: First 64+ bytes of file content.

    Returns:
        Detected MIME type or None if unknown.
    """
    if len(data) < MIN_BYTES_FOR_DETECTION:
        return None

    # WebP is RIFF + WEBP at offset 8; a bare RIFF header is not enough
    if (
        data[:4] == b"RIFF"
        and len(data) >= WEBP_HEADER_LENGTH
        and data[8:12] == b"WEBP"
    ):
        return "image/webp"

    for sig in MAGIC_SIGNATURES:
        if sig.offset > 0:
            end_offset = sig.offset + len(sig.bytes_pattern)
            if (
                len(data) >= end_offset
                and data[sig.offset : end_offset] == sig.bytes_pattern
            ):
                return sig.mime_type
        elif data.startswith(sig.bytes_pattern):
            return sig.mime_type

    return None


def read_head(path: str | Path, size: int = HEAD_SIZE) -> bytes:
    """Read the first ``size`` bytes of a file."""
    with open(path, "rb") as fh:
        return fh.read(size)


def guess_extension(data: bytes) -> str | None:
    """Guess a file extension (without dot) from content.

    Returns None when the content is not a recognised image.
    """
    detected = detect_content_type(data)
    if detected is None:
        return None
    return EXTENSION_BY_MIME_TYPE.get(detected)


def is_allowed_image(data: bytes, allowed_types: list[str] | frozenset[str]) -> bool:
    """Check whether content sniffs as one of the allowed image types."""
    detected = detect_content_type(data)
    return detected is not None and detected in allowed_types
