"""
Storage component for the Dynamic Renderer.

Backends for persisting captured documents and reading them back at serve time.
`create_storage()` picks the backend named by `storage.backend`.
"""
from typing import TYPE_CHECKING

from .base import StorageBackend
from .file_storage import (
    LocalFileStorage,
    FilePathError,
    FileExistsError,
)
from .object_storage import HttpObjectStorage

if TYPE_CHECKING:
    from dynamic_renderer.core.config import StorageSettings


def create_storage(settings: "StorageSettings") -> StorageBackend:
    """Builds the storage backend selected by `settings.backend` ('http' or 'file')."""
    if settings.backend == "file":
        return LocalFileStorage.from_settings(settings)
    return HttpObjectStorage.from_settings(settings)


__all__ = [
    "StorageBackend",
    "HttpObjectStorage",
    "LocalFileStorage",
    "FilePathError",
    "FileExistsError",
    "create_storage",
]
