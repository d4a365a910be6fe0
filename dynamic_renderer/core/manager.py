import asyncio
from typing import Callable, List, Optional, Sequence, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from dynamic_renderer.components.renderer.playwright_manager import PlaywrightManager
from dynamic_renderer.components.sanitizer.document_sanitizer import DocumentSanitizer
from dynamic_renderer.components.storage import StorageBackend, create_storage
from dynamic_renderer.core.exceptions import CaptureError, RendererError, StorageError
from dynamic_renderer.core.keys import cache_key_for_url
from dynamic_renderer.core.logger import get_logger

if TYPE_CHECKING:
    from dynamic_renderer.core.config import RenderSettings

logger = get_logger(__name__)

HTML_CONTENT_TYPE = "text/html"


class CaptureResult(BaseModel):
    """
    Outcome of capturing one URL. Exactly one of `cache_key` (success) and
    `error` (failure) is set.
    """
    model_config = ConfigDict(frozen=True)

    url: str
    cache_key: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CaptureManager:
    """
    Orchestrates the render capture pipeline: render a URL in a headless
    browser, sanitize the DOM snapshot and upsert it into storage under the
    URL's cache key.

    Capture failures are contained: `capture()` and `batch_capture()` log
    and report them as failed results and never raise.
    """
    def __init__(
        self,
        settings: "RenderSettings",
        storage: Optional[StorageBackend] = None,
        sanitizer: Optional[DocumentSanitizer] = None,
        session_factory: Optional[Callable[[], PlaywrightManager]] = None,
    ):
        """
        Args:
            settings (RenderSettings): Application settings.
            storage (Optional[StorageBackend]): Target store; built from `settings.storage` if None.
            sanitizer (Optional[DocumentSanitizer]): Built from `settings.sanitizer` if None.
            session_factory (Optional[Callable]): Returns a fresh browser session context
                manager per capture. Defaults to `PlaywrightManager(settings.renderer)`.
        """
        self.settings = settings
        self.storage = storage or create_storage(settings.storage)
        self.sanitizer = sanitizer or DocumentSanitizer(settings.sanitizer)
        self._session_factory = session_factory or (lambda: PlaywrightManager(settings.renderer))
        self.max_concurrency = settings.capture.max_concurrency
        logger.info(f"CaptureManager initialized (max_concurrency={self.max_concurrency}).")

    async def capture(self, url: str) -> CaptureResult:
        """
        Renders, sanitizes and stores a single URL.

        Returns:
            CaptureResult: With `cache_key` on success, `error` on failure.
        """
        logger.info(f"Starting capture for URL: {url}")
        try:
            cache_key = cache_key_for_url(url)

            # The session is closed as soon as the DOM is extracted, before upload.
            async with self._session_factory() as session:
                html = await session.render(url)

            document = self.sanitizer.sanitize(html, url)

            logger.info(f"Uploading {url} to storage key: {cache_key}")
            await self.storage.put(cache_key, document.encode("utf-8"), HTML_CONTENT_TYPE, upsert=True)
        except ValueError as e:
            return self._failed(url, f"Invalid URL: {e}")
        except RendererError as e:
            return self._failed(url, e.message)
        except StorageError as e:
            return self._failed(url, e.message)
        except Exception as e:
            logger.error(f"Unexpected error capturing {url}: {e}", exc_info=True)
            return self._failed(url, f"Unexpected error: {e}")

        logger.info(f"Successfully captured and uploaded: {url} -> {cache_key}")
        return CaptureResult(url=url, cache_key=cache_key)

    def _failed(self, url: str, reason: str) -> CaptureResult:
        error = CaptureError(url, reason)
        logger.error(error.message)
        return CaptureResult(url=url, error=error.message)

    async def batch_capture(self, urls: Sequence[str]) -> List[CaptureResult]:
        """
        Captures every URL concurrently, at most `max_concurrency` browser
        sessions at a time.

        Returns:
            List[CaptureResult]: One result per input URL, in input order.
        """
        logger.info(f"Starting batch capture for {len(urls)} URLs")
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded_capture(url: str) -> CaptureResult:
            async with semaphore:
                return await self.capture(url)

        results = list(await asyncio.gather(*(bounded_capture(url) for url in urls)))

        successful = sum(1 for result in results if result.ok)
        logger.info(f"Batch capture completed. Successful: {successful}/{len(urls)}")
        return results

    async def close(self) -> None:
        await self.storage.close()
