"""
Direct Playwright client.

Launches Playwright in-process and hands out one fresh ``BrowserContext``
per driver, so scenarios never share cookies, storage or pages.

Usage:
    from golobe_e2e.playwright_client import PlaywrightClient

    async with PlaywrightClient() as client:
        driver = await client.open_driver()
        await driver.navigate("http://127.0.0.1:3000/", timeout_ms=30000)
        await driver.close()
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from playwright.async_api import Browser as PlaywrightBrowser
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Playwright, async_playwright

from golobe_e2e.browser import Browser
from golobe_e2e.config import settings
from golobe_e2e.errors import InfrastructureError

logger = logging.getLogger(__name__)


class PlaywrightClient:
    """
    Direct Playwright client with full API access (no server required).

    Example:
        async with PlaywrightClient(headless=False) as client:
            driver = await client.open_driver()
    """

    def __init__(
        self,
        browser_type: Optional[str] = None,
        headless: Optional[bool] = None,
        timeout: Optional[int] = None,
        viewport: Optional[Dict[str, int]] = None,
        launch_args: Optional[list] = None,
    ):
        """
        Initialize Playwright client.

        Args:
            browser_type: Browser to use (chromium, firefox, webkit)
            headless: Run in headless mode (None = PLAYWRIGHT_HEADLESS)
            timeout: Default timeout in milliseconds for context operations
            viewport: Viewport for every context (None = UI_VIEWPORT_*)
            launch_args: Extra browser launch flags
        """
        self.browser_type = browser_type or settings.browser.browser_type
        self.headless = settings.browser.headless if headless is None else headless
        self.timeout = timeout or settings.timeouts.action_ms
        self.viewport = viewport or dict(settings.browser.viewport)
        self.launch_args = launch_args or ["--no-sandbox", "--disable-setuid-sandbox"]

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[PlaywrightBrowser] = None

    async def __aenter__(self) -> "PlaywrightClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Launch the browser."""
        self._playwright = await async_playwright().start()
        try:
            if self.browser_type == "firefox":
                self._browser = await self._playwright.firefox.launch(headless=self.headless)
            elif self.browser_type == "webkit":
                self._browser = await self._playwright.webkit.launch(headless=self.headless)
            else:
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless, args=self.launch_args
                )
        except PlaywrightError as exc:
            await self._playwright.stop()
            self._playwright = None
            raise InfrastructureError(f"Could not launch {self.browser_type}: {exc}")
        logger.debug("Launched %s (headless=%s)", self.browser_type, self.headless)

    async def open_driver(self) -> Browser:
        """Create an isolated context + page and wrap it as a driver."""
        if not self._browser:
            raise InfrastructureError("Client not connected. Use 'async with' or call connect()")
        try:
            context = await self._browser.new_context(viewport=self.viewport)
            context.set_default_timeout(self.timeout)
            page = await context.new_page()
        except PlaywrightError as exc:
            raise InfrastructureError(f"Could not open browser context: {exc}")
        return Browser(page, context)

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self._browser:
            try:
                await self._browser.close()
            except PlaywrightError as exc:
                logger.warning("Error closing browser: %s", exc)
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @property
    def browser(self) -> PlaywrightBrowser:
        if not self._browser:
            raise RuntimeError("Client not connected")
        return self._browser
