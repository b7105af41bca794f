"""Photo storage for comment uploads.

Uploaded photos are spooled to a staging directory first, then moved into
the public photo directory under a random name:

    <12 hex chars>.<extension inferred from content>

The random token comes from an injectable RandomSource so tests can pin it.
"""

import secrets
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import structlog

from guestbook.core.errors import GuestbookError
from guestbook.utils.magic_bytes import guess_extension, read_head


if TYPE_CHECKING:
    from fastapi import UploadFile


logger = structlog.get_logger(__name__)

TOKEN_BYTES = 6
UPLOAD_CHUNK_SIZE = 64 * 1024


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class PhotoStorageError(GuestbookError):
    """Base photo storage error."""


class RandomnessFailure(PhotoStorageError):
    """Secure random bytes could not be generated."""

    def __init__(self, message: str):
        super().__init__(
            f"Failed to generate random bytes. {message}", "randomness_failure"
        )


class StorageFailure(PhotoStorageError):
    """The photo could not be moved into the photo directory."""

    def __init__(self, message: str):
        super().__init__(f"Failed to upload photo. {message}", "storage_failure")


# ==============================================================================
# Randomness
# ==============================================================================


class RandomSource(Protocol):
    """Source of cryptographically secure random bytes."""

    def token_bytes(self, nbytes: int) -> bytes: ...


class SecretsRandomSource:
    """RandomSource backed by the OS CSPRNG via :mod:`secrets`."""

    def token_bytes(self, nbytes: int) -> bytes:
        return secrets.token_bytes(nbytes)


# ==============================================================================
# Uploaded files
# ==============================================================================


@dataclass
class UploadedPhoto:
    """An uploaded photo sitting in the staging directory."""

    path: Path
    original_filename: str | None
    size: int

    @classmethod
    async def from_upload(
        cls,
        upload: "UploadFile",
        staging_dir: str | Path,
        max_size: int | None = None,
    ) -> "UploadedPhoto | None":
        """Spool a multipart upload to a temporary file.

        Returns None when the field was sent empty (no file chosen). Spooling
        stops as soon as more than ``max_size`` bytes have been read; the
        partial file is removed and the returned photo only carries the size
        reached, so validation can refuse it.
        """
        if not upload.filename:
            return None

        staging = Path(staging_dir)
        staging.mkdir(parents=True, exist_ok=True)

        size = 0
        with tempfile.NamedTemporaryFile(
            dir=staging, prefix="upload-", delete=False
        ) as tmp:
            while chunk := await upload.read(UPLOAD_CHUNK_SIZE):
                size += len(chunk)
                if max_size is not None and size > max_size:
                    break
                tmp.write(chunk)

        if max_size is not None and size > max_size:
            Path(tmp.name).unlink(missing_ok=True)
            logger.info(
                "photo_upload_too_large",
                original_filename=upload.filename,
                max_size=max_size,
            )
        elif size == 0:
            Path(tmp.name).unlink(missing_ok=True)
            return None

        return cls(path=Path(tmp.name), original_filename=upload.filename, size=size)

    def head(self) -> bytes:
        """First bytes of the file, for content sniffing."""
        return read_head(self.path)

    def discard(self) -> None:
        """Remove the staged file if it is still there."""
        self.path.unlink(missing_ok=True)


# ==============================================================================
# Storage
# ==============================================================================


class PhotoStorage:
    """Moves uploaded photos into the photo directory under random names."""

    def __init__(
        self,
        photo_dir: str | Path,
        random_source: RandomSource | None = None,
    ):
        self.photo_dir = Path(photo_dir)
        self.random_source = random_source or SecretsRandomSource()

    def generate_token(self) -> str:
        """Return a 12 hex character token from 6 random bytes."""
        try:
            raw = self.random_source.token_bytes(TOKEN_BYTES)
        except Exception as e:
            raise RandomnessFailure(str(e)) from e
        if len(raw) != TOKEN_BYTES:
            raise RandomnessFailure(
                f"expected {TOKEN_BYTES} bytes, got {len(raw)}"
            )
        return raw.hex()

    def store(
        self,
        photo: UploadedPhoto | None,
        destination_dir: str | Path | None = None,
    ) -> str | None:
        """Relocate ``photo`` into the photo directory.

        Args:
            photo: The staged upload, or None when no photo was submitted.
            destination_dir: Overrides the configured photo directory.

        Returns:
            The new filename, or None when there was no photo.

        Raises:
            RandomnessFailure: If the random token could not be generated.
            StorageFailure: If the type is unknown or the move fails.
        """
        if photo is None:
            return None

        token = self.generate_token()

        try:
            extension = guess_extension(photo.head())
        except OSError as e:
            raise StorageFailure(str(e)) from e
        if extension is None:
            raise StorageFailure("Unable to detect file type from content")

        filename = f"{token}.{extension}"
        target_dir = Path(destination_dir) if destination_dir else self.photo_dir
        target = target_dir / filename

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            if target.exists():
                raise StorageFailure(f"'{filename}' already exists")
            shutil.move(str(photo.path), str(target))
        except OSError as e:
            raise StorageFailure(str(e)) from e

        logger.info(
            "photo_stored",
            filename=filename,
            size=photo.size,
            original_filename=photo.original_filename,
        )
        return filename


def store_photo(
    photo: UploadedPhoto | None,
    destination_dir: str | Path,
    random_source: RandomSource | None = None,
) -> str | None:
    """Functional form of :meth:`PhotoStorage.store`."""
    return PhotoStorage(destination_dir, random_source).store(photo)
