"""
Storage contract shared by the capture pipeline (writer) and the gateway (reader).
"""
from abc import ABC, abstractmethod


class StorageBackend(ABC):
    """
    An object store addressed by string keys.

    Implementations raise `StorageNotFoundError` for missing keys and
    `StorageError` for every other failure.
    """

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str, upsert: bool = True) -> None:
        """Stores `data` at `key`. With `upsert`, an existing object is overwritten."""

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Returns the object stored at `key`."""

    async def close(self) -> None:
        """Releases network clients or other resources. No-op by default."""
        return None

    async def __aenter__(self) -> "StorageBackend":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
