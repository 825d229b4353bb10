"""
Browser Manager

Starts and stops the Playwright browser for a worker and centralises
browser-level operations page objects do not own: window sizing, tab
management and full state cleanup.

Usage:
    manager = BrowserManager(settings)
    page = await manager.setup()
    ...
    await manager.teardown()
"""

from typing import List, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from ..config import Settings
from ..errors import ConfigurationError, WindowSwitchError
from ..log import get_logging_manager

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")


class BrowserManager:
    """Owns one Playwright browser, context and main page"""

    def __init__(self, settings: Optional[Settings] = None, logger=None):
        """
        Initialize the manager. Nothing is launched until setup().

        Args:
            settings: Resolved settings (browser, headless, base_url, timeouts)
            logger: Logger handle (defaults to the process logging manager)
        """
        self.settings = settings or Settings()
        self.logger = logger or get_logging_manager().get_logger("BrowserManager")
        self._playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    # ==================== Lifecycle ====================

    async def setup(self) -> Page:
        """Launch the configured browser and open the main page."""
        browser_name = self.settings.browser.lower()
        if browser_name not in SUPPORTED_BROWSERS:
            raise ConfigurationError(
                "BROWSER",
                f"Unsupported browser \"{self.settings.browser}\" (expected one of {', '.join(SUPPORTED_BROWSERS)})"
            )

        self.logger.info(f"Launching {browser_name} (headless={self.settings.headless})")
        self._playwright = await async_playwright().start()
        try:
            browser_type = getattr(self._playwright, browser_name)
            self.browser = await browser_type.launch(headless=self.settings.headless)
            self.context = await self.browser.new_context(base_url=self.settings.base_url or None)
            self.page = await self.context.new_page()
        except Exception:
            await self.teardown()
            raise

        self._apply_timeouts(self.page)
        self.logger.info("Browser ready")
        return self.page

    async def teardown(self):
        """Close everything opened by setup(). Errors are logged, not raised."""
        for name, closer in (
            ("context", self.context and self.context.close),
            ("browser", self.browser and self.browser.close),
            ("playwright", self._playwright and self._playwright.stop),
        ):
            if not closer:
                continue
            try:
                await closer()
            except Exception as e:
                self.logger.warning(f"Error closing {name}: {e}")

        self.page = None
        self.context = None
        self.browser = None
        self._playwright = None
        self.logger.info("Browser closed")

    def _apply_timeouts(self, page: Page):
        page.set_default_timeout(self.settings.element_timeout_ms)
        page.set_default_navigation_timeout(self.settings.page_load_timeout_ms)

    # ==================== Windows ====================

    async def set_window_size(self, width: int, height: int):
        self.logger.info(f"Setting window size: {width}x{height}")
        await self._require_page().set_viewport_size({"width": width, "height": height})

    def get_window_size(self) -> Optional[dict]:
        return self._require_page().viewport_size

    async def open_new_tab(self, url: str = "") -> Page:
        """Open a tab in the same context and make it the current page."""
        page = await self._require_context().new_page()
        self._apply_timeouts(page)
        if url:
            await page.goto(url)
        self.page = page
        return page

    def get_all_pages(self) -> List[Page]:
        return list(self._require_context().pages)

    async def switch_to_window_by_title(self, title: str) -> Page:
        for page in self.get_all_pages():
            current_title = await page.title()
            if title in current_title:
                self.logger.info(f"Switched to window with title: {current_title}")
                return await self._activate(page)
        raise WindowSwitchError(f"No window found with title containing: \"{title}\"")

    async def switch_to_window_by_url(self, partial_url: str) -> Page:
        for page in self.get_all_pages():
            if partial_url in page.url:
                self.logger.info(f"Switched to window with URL: {page.url}")
                return await self._activate(page)
        raise WindowSwitchError(f"No window found with URL containing: \"{partial_url}\"")

    async def close_all_tabs_except_main(self) -> Page:
        """Close every page but the first and return to it."""
        pages = self.get_all_pages()
        if not pages:
            raise WindowSwitchError("No windows open")
        for page in reversed(pages[1:]):
            await page.close()
        return await self._activate(pages[0])

    async def _activate(self, page: Page) -> Page:
        await page.bring_to_front()
        self.page = page
        return page

    # ==================== Cleanup ====================

    async def clear_browser_data(self):
        """Clear local/session storage of the current page and all cookies."""
        self.logger.info("Clearing all browser data")
        await self._require_page().evaluate("() => { localStorage.clear(); sessionStorage.clear(); }")
        await self._require_context().clear_cookies()

    # ==================== Helpers ====================

    def _require_page(self) -> Page:
        if self.page is None:
            raise RuntimeError("Browser not started - call setup() first")
        return self.page

    def _require_context(self) -> BrowserContext:
        if self.context is None:
            raise RuntimeError("Browser not started - call setup() first")
        return self.context
