"""
Render Engine
=============

Playwright-based rendering surface for countdown frames.
Keeps one headless Chromium browser and one reusable page alive across renders
and rebuilds them only after a failure.
"""

from typing import Optional, Any, List

from playwright.async_api import async_playwright, Browser, Page, Playwright

from countdown_png.config.logging import get_logger
from countdown_png.config.settings import get_settings, Settings

logger = get_logger(__name__)

BROWSER_ARGS: List[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]


class CountdownRenderingError(Exception):
    """Base exception for rendering failures."""

    pass


class EngineLaunchError(CountdownRenderingError):
    """Exception raised when the browser cannot be started."""

    pass


class RenderError(CountdownRenderingError):
    """Exception raised when a frame fails to load or capture."""

    pass


class EngineHandle:
    """
    Owned handle to a headless browser and its page.

    The handle is either Ready (browser and page both exist) or Down (neither
    exists). All transitions go through ``ensure_ready`` and ``teardown``.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="engine")  # structlog.BoundLoggerBase
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._page: Optional[Page] = None
        self.launch_count = 0

    @property
    def is_ready(self) -> bool:
        return self._browser is not None and self._page is not None

    async def ensure_ready(self) -> None:
        """
        Launch the browser and page if the handle is Down.

        Raises:
            EngineLaunchError: If the browser or page cannot be created.
                The handle stays Down.
        """
        if self.is_ready:
            return

        playwright: Optional[Playwright] = None
        browser: Optional[Browser] = None
        try:
            playwright = await async_playwright().start()
            browser = await playwright.chromium.launch(
                headless=self.settings.playwright_headless,
                args=BROWSER_ARGS,
            )
            page = await browser.new_page(
                viewport={
                    "width": self.settings.viewport_width,
                    "height": self.settings.viewport_height,
                }
            )
            page.set_default_timeout(self.settings.render_timeout_ms)
        except Exception as e:
            self.logger.error("Browser launch failed", error=str(e))
            await self._close_quietly(browser, playwright)
            raise EngineLaunchError(f"Browser launch failed: {e}") from e

        self._playwright = playwright
        self._browser = browser
        self._page = page
        self.launch_count += 1
        self.logger.info(
            "Rendering engine ready",
            launch_count=self.launch_count,
            width=self.settings.viewport_width,
            height=self.settings.viewport_height,
        )

    async def render_to_image(self, markup: str) -> bytes:
        """
        Load markup into the page and capture the viewport.

        Args:
            markup: Complete HTML document

        Returns:
            PNG bytes with a transparent background

        Raises:
            RenderError: If the engine is Down or loading or capture fails
        """
        if self._page is None:
            raise RenderError("Rendering engine is not ready")

        try:
            await self._page.set_content(
                markup,
                wait_until=self.settings.render_wait_until,  # type: ignore[arg-type]
                timeout=self.settings.render_timeout_ms,
            )
            return await self._page.screenshot(type="png", omit_background=True)
        except Exception as e:
            self.logger.error("Frame render failed", error=str(e))
            raise RenderError(f"Render failed: {e}") from e

    async def teardown(self) -> None:
        """Close the browser and driver. Always leaves the handle Down."""
        browser, playwright = self._browser, self._playwright
        self._page = None
        self._browser = None
        self._playwright = None

        if browser is not None or playwright is not None:
            await self._close_quietly(browser, playwright)
            self.logger.info("Rendering engine torn down")

    async def _close_quietly(
        self, browser: Optional[Browser], playwright: Optional[Playwright]
    ) -> None:
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                self.logger.warning("Error closing browser", error=str(e))
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                self.logger.warning("Error stopping playwright", error=str(e))
