"""
File system storage backend.

This module provides `LocalFileStorage`, which keeps rendered documents under a
base directory using the cache key as a relative path. It implements the same
contract as the HTTP object store, so it is used for local development and tests.
"""
import asyncio
import os
from typing import Optional, TYPE_CHECKING

from dynamic_renderer.components.storage.base import StorageBackend
from dynamic_renderer.core.exceptions import StorageError, StorageNotFoundError
from dynamic_renderer.core.logger import get_logger

if TYPE_CHECKING:
    from dynamic_renderer.core.config import StorageSettings

logger = get_logger(__name__)


class FilePathError(StorageError):
    """Raised for unusable keys, such as an empty key or one that escapes the base directory."""
    def __init__(self, message: str):
        super().__init__(message=message)


class FileExistsError(FilePathError):
    """
    Raised when writing a key that already exists with `upsert=False`.

    Attributes:
        path (str): The full path to the file that already exists.
    """
    def __init__(self, path: str):
        super().__init__(f"File already exists at path: {path}. Set upsert=True to replace it.")
        self.path = path


class LocalFileStorage(StorageBackend):
    """
    Stores objects as files below `base_path`.
    """
    DEFAULT_STORAGE_PATH = "rendered_pages"

    def __init__(self, base_path: Optional[str] = None):
        """
        Args:
            base_path (Optional[str]): Root directory. Relative paths are resolved against
                                       the project root; None uses DEFAULT_STORAGE_PATH.
        Raises:
            StorageError: If the base path cannot be created or accessed.
        """
        project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", ".."))
        configured = base_path or self.DEFAULT_STORAGE_PATH
        if os.path.isabs(configured):
            self.base_path = configured
        else:
            self.base_path = os.path.join(project_root, configured)

        try:
            os.makedirs(self.base_path, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create or access base directory '{self.base_path}': {e}", exc_info=True)
            raise StorageError(message=f"Failed to create or access base directory '{self.base_path}'", original_exception=e)
        logger.info(f"LocalFileStorage initialized with base_path: {self.base_path}")

    @classmethod
    def from_settings(cls, settings: "StorageSettings") -> "LocalFileStorage":
        return cls(base_path=settings.base_path)

    def _get_full_path(self, key: str) -> str:
        """Resolves `key` below base_path, refusing keys that would escape it."""
        if not key or not key.strip("/"):
            raise FilePathError("Storage key cannot be empty.")
        base = os.path.realpath(self.base_path)
        full_path = os.path.realpath(os.path.join(base, key.lstrip("/")))
        if os.path.commonpath([base, full_path]) != base:
            raise FilePathError(f"Storage key escapes the base directory: {key}")
        return full_path

    def _write(self, full_path: str, data: bytes, upsert: bool) -> None:
        if not upsert and os.path.exists(full_path):
            raise FileExistsError(path=full_path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, "wb") as f:
            f.write(data)

    def _read(self, full_path: str) -> bytes:
        with open(full_path, "rb") as f:
            return f.read()

    async def put(self, key: str, data: bytes, content_type: str, upsert: bool = True) -> None:
        full_path = self._get_full_path(key)
        try:
            await asyncio.to_thread(self._write, full_path, data, upsert)
        except FileExistsError:
            logger.warning(f"File already exists at {full_path} and upsert is False.")
            raise
        except OSError as e:
            logger.error(f"Failed to write '{full_path}': {e}", exc_info=True)
            raise StorageError(message=f"Failed to write '{full_path}'", original_exception=e)
        logger.debug(f"Stored {len(data)} bytes ({content_type}) at {full_path}")

    async def get(self, key: str) -> bytes:
        full_path = self._get_full_path(key)
        try:
            return await asyncio.to_thread(self._read, full_path)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise StorageNotFoundError(key)
        except OSError as e:
            raise StorageError(message=f"Failed to read '{full_path}'", original_exception=e)

