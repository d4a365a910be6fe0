"""
HTTP object storage backend.

Talks to a Supabase-compatible storage REST API:

    POST {endpoint}/storage/v1/object/{bucket}/{key}    upload (x-upsert: true|false)
    GET  {endpoint}/storage/v1/object/{bucket}/{key}    download

A single `httpx.AsyncClient` is reused for the lifetime of the backend and
closed by `close()`.
"""
from typing import Optional, TYPE_CHECKING
from urllib.parse import quote

import httpx

from dynamic_renderer.components.storage.base import StorageBackend
from dynamic_renderer.core.exceptions import StorageError, StorageNotFoundError
from dynamic_renderer.core.logger import get_logger

if TYPE_CHECKING:
    from dynamic_renderer.core.config import StorageSettings

logger = get_logger(__name__)


class HttpObjectStorage(StorageBackend):
    """
    Stores rendered documents in a bucket of an HTTP object store.

    Attributes:
        endpoint (str): Base URL of the storage service (no trailing slash).
        bucket (str): Bucket holding the cached documents.
    """
    OBJECT_PATH = "/storage/v1/object"

    def __init__(
        self,
        endpoint: str,
        bucket: str,
        api_key: str = "",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            endpoint (str): Storage service base URL.
            bucket (str): Bucket name.
            api_key (str): Service key sent as bearer token and `apikey` header.
            timeout (float): Per-request timeout in seconds for the owned client.
            client (Optional[httpx.AsyncClient]): Externally managed client; when given,
                `close()` leaves it open.

        Raises:
            StorageError: If endpoint or bucket is empty.
        """
        if not endpoint:
            raise StorageError("Storage endpoint is not configured (storage.endpoint).")
        if not bucket:
            raise StorageError("Storage bucket is not configured (storage.bucket).")
        self.endpoint = endpoint.rstrip("/")
        self.bucket = bucket
        headers = {}
        if api_key:
            headers = {"Authorization": f"Bearer {api_key}", "apikey": api_key}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout), headers=headers)
        if client is not None and headers:
            self._client.headers.update(headers)
        logger.info(f"HttpObjectStorage initialized for bucket '{self.bucket}' at {self.endpoint}")

    @classmethod
    def from_settings(cls, settings: "StorageSettings") -> "HttpObjectStorage":
        return cls(
            endpoint=settings.endpoint,
            bucket=settings.bucket,
            api_key=settings.api_key,
            timeout=settings.request_timeout,
        )

    def object_url(self, key: str) -> str:
        return f"{self.endpoint}{self.OBJECT_PATH}/{self.bucket}/{quote(key.lstrip('/'), safe='/')}"

    async def put(self, key: str, data: bytes, content_type: str, upsert: bool = True) -> None:
        url = self.object_url(key)
        headers = {
            "Content-Type": content_type,
            "x-upsert": "true" if upsert else "false",
        }
        try:
            response = await self._client.post(url, content=data, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Upload request failed for key '{key}': {e}")
            raise StorageError(f"Upload request failed for key '{key}'", original_exception=e)

        if response.is_error:
            logger.error(f"Upload rejected for key '{key}': HTTP {response.status_code} {response.text[:200]}")
            raise StorageError(f"Upload rejected for key '{key}': HTTP {response.status_code}")
        logger.debug(f"Uploaded {len(data)} bytes to '{key}'")

    async def get(self, key: str) -> bytes:
        url = self.object_url(key)
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise StorageError(f"Download request failed for key '{key}'", original_exception=e)

        if response.status_code == 404 or self._is_not_found_body(response):
            raise StorageNotFoundError(key)
        if response.is_error:
            raise StorageError(f"Download failed for key '{key}': HTTP {response.status_code}")
        return response.content

    @staticmethod
    def _is_not_found_body(response: httpx.Response) -> bool:
        # Supabase reports missing objects as HTTP 400 with a JSON error body.
        if response.status_code != 400:
            return False
        return "not found" in response.text.lower()

    async def close(self) -> None:
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("HttpObjectStorage client closed.")
