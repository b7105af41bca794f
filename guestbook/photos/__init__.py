"""Storage of photos attached to comments."""

from guestbook.photos.service import (
    PhotoStorage,
    PhotoStorageError,
    RandomnessFailure,
    RandomSource,
    SecretsRandomSource,
    StorageFailure,
    UploadedPhoto,
    store_photo,
)


__all__ = [
    "PhotoStorage",
    "PhotoStorageError",
    "RandomSource",
    "RandomnessFailure",
    "SecretsRandomSource",
    "StorageFailure",
    "UploadedPhoto",
    "store_photo",
]
