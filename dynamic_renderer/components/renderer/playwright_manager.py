"""
Manages Playwright browser sessions for page capture.

This module provides the `PlaywrightManager` class, an asynchronous context manager
that launches a browser, renders a single URL to its final DOM and guarantees the
browser process is torn down on every exit path.
"""
from playwright.async_api import (
    async_playwright,
    Playwright,
    Browser,
    Page,
    Route,
    TimeoutError as PlaywrightTimeoutError,
)
from playwright_stealth import Stealth
from typing import Optional, Tuple, TYPE_CHECKING

from dynamic_renderer.core.exceptions import RendererError
from dynamic_renderer.core.logger import get_logger

if TYPE_CHECKING:
    from dynamic_renderer.core.config import RendererSettings

logger = get_logger(__name__)

SUPPORTED_BROWSER_TYPES = ("chromium", "firefox", "webkit")

OUTER_HTML_SCRIPT = "() => document.documentElement.outerHTML"


class PlaywrightManager:
    """
    Asynchronous context manager for one headless browser session.

    Entering the context starts Playwright and launches the configured browser;
    leaving it closes the browser and stops Playwright, whether or not the body
    raised. Use one instance per capture so a hung page only affects its own session.

    Attributes:
        browser_type (str): The type of browser to launch (e.g., 'chromium').
        navigation_timeout (int): Navigation bound in milliseconds.
        block_resources (bool): Whether heavy sub-requests are aborted.
        stealth (bool): Whether headless fingerprints are masked on each page.
        blocked_resource_types (Tuple[str, ...]): Playwright resource types to abort.
        playwright (Optional[Playwright]): The Playwright engine instance.
        browser (Optional[Browser]): The launched Playwright browser instance.
    """
    DEFAULT_BROWSER_TYPE = "chromium"
    DEFAULT_NAVIGATION_TIMEOUT = 45000  # Milliseconds
    DEFAULT_LAUNCH_TIMEOUT = 30000
    DEFAULT_BLOCKED_RESOURCE_TYPES: Tuple[str, ...] = ("image", "stylesheet", "font")

    def __init__(self, settings: Optional["RendererSettings"] = None):
        """
        Args:
            settings (Optional[RendererSettings]): Renderer section of the application
                settings. If None, defaults are used.

        Raises:
            RendererError: If an unsupported browser type is configured.
        """
        if settings:
            self.browser_type = settings.browser_type
            self.headless = settings.headless
            self.navigation_timeout = settings.navigation_timeout
            self.launch_timeout = settings.launch_timeout
            self.block_resources = settings.block_resources
            self.stealth = settings.stealth
            self.blocked_resource_types = tuple(settings.blocked_resource_types)
            self.launch_args = list(settings.launch_args)
        else:
            self.browser_type = self.DEFAULT_BROWSER_TYPE
            self.headless = True
            self.navigation_timeout = self.DEFAULT_NAVIGATION_TIMEOUT
            self.launch_timeout = self.DEFAULT_LAUNCH_TIMEOUT
            self.block_resources = True
            self.stealth = True
            self.blocked_resource_types = self.DEFAULT_BLOCKED_RESOURCE_TYPES
            self.launch_args = []

        if self.browser_type not in SUPPORTED_BROWSER_TYPES:
            logger.error(f"Unsupported browser type configured: {self.browser_type}")
            raise RendererError(f"Unsupported browser type: {self.browser_type}. Must be 'chromium', 'firefox', or 'webkit'.")

        self.playwright: Optional[Playwright] = None
        self._stealth: Optional[Stealth] = Stealth() if self.stealth else None
        self.browser: Optional[Browser] = None

    async def __aenter__(self) -> "PlaywrightManager":
        """
        Starts Playwright and launches the configured browser.

        Raises:
            RendererError: If Playwright fails to start or the browser fails to launch
                           (typically because browser binaries are not installed).
        """
        logger.debug(f"Starting Playwright and launching {self.browser_type} browser.")
        try:
            self.playwright = await async_playwright().start()
            browser_launcher = getattr(self.playwright, self.browser_type)
            launch_kwargs = {"headless": self.headless, "timeout": self.launch_timeout}
            # Chromium-only flags (sandbox, GPU, /dev/shm).
            if self.browser_type == "chromium" and self.launch_args:
                launch_kwargs["args"] = self.launch_args
            self.browser = await browser_launcher.launch(**launch_kwargs)
            logger.debug(f"{self.browser_type} browser launched.")
        except Exception as e:
            logger.error(f"Failed to initialize Playwright or launch browser {self.browser_type}: {e}", exc_info=True)
            await self._shutdown()
            raise RendererError(f"Failed to initialize Playwright or launch browser {self.browser_type}: {e}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Closes the browser and stops Playwright. Exceptions from the body propagate."""
        await self._shutdown()

    async def _shutdown(self) -> None:
        if self.browser:
            try:
                await self.browser.close()
                logger.debug("Browser closed.")
            except Exception as e:
                logger.error(f"Error closing browser: {e}", exc_info=True)
        if self.playwright:
            try:
                await self.playwright.stop()
                logger.debug("Playwright stopped.")
            except Exception as e:
                logger.error(f"Error stopping Playwright: {e}", exc_info=True)
        self.browser = None
        self.playwright = None

    async def _route_request(self, route: Route) -> None:
        """Aborts blocked resource types and lets everything else through."""
        if route.request.resource_type in self.blocked_resource_types:
            await route.abort()
        else:
            await route.continue_()

    async def render(self, url: str, timeout: Optional[int] = None) -> str:
        """
        Navigates to `url`, waits for the DOM and the network to settle, and
        returns `document.documentElement.outerHTML`.

        Args:
            url (str): The page to render.
            timeout (Optional[int]): Navigation bound in milliseconds; defaults to
                                     `self.navigation_timeout`.

        Raises:
            RendererError: If the session is not open, navigation times out,
                           or the page cannot be rendered.
        """
        if not self.browser:
            logger.error("render called but browser is not initialized.")
            raise RendererError("Browser is not initialized. Ensure PlaywrightManager is used within an 'async with' statement.")

        effective_timeout = timeout if timeout is not None else self.navigation_timeout
        page: Optional[Page] = None
        try:
            page = await self.browser.new_page()
            if self._stealth is not None:
                await self._stealth.apply_stealth_async(page)
            page.set_default_navigation_timeout(effective_timeout)
            page.set_default_timeout(effective_timeout)
            await page.set_extra_http_headers({"Accept-Charset": "utf-8"})

            if self.block_resources:
                await page.route("**/*", self._route_request)

            logger.info(f"Navigating to URL: {url}")
            await page.goto(url, wait_until="domcontentloaded", timeout=effective_timeout)
            await page.wait_for_load_state("networkidle", timeout=effective_timeout)

            html = await page.evaluate(OUTER_HTML_SCRIPT)
            logger.debug(f"Rendered {len(html)} characters from {url}.")
            return html
        except PlaywrightTimeoutError as e:
            logger.error(f"Navigation timed out after {effective_timeout}ms for '{url}': {e}")
            raise RendererError(f"Navigation timed out after {effective_timeout}ms for URL '{url}'")
        except Exception as e:
            logger.error(f"Failed to render URL '{url}': {e}", exc_info=True)
            raise RendererError(f"Failed to render URL '{url}': {e}")
        finally:
            if page:
                try:
                    await page.close()
                except Exception as e:
                    logger.error(f"Error closing page for URL '{url}': {e}", exc_info=True)
