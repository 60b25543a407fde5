"""
Playwright browser session lifecycle
"""

import asyncio
import logging
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, ViewportSize, async_playwright

from ...config import AutomationConfig
from ...exceptions import BotNotStartedError, BrowserInitializationError


class BrowserSession:
    """Owns one Playwright browser, context and page; close() is idempotent"""

    def __init__(self, config: AutomationConfig):
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.browser_context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._close_task: Optional["asyncio.Future"] = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise BotNotStartedError("page access")
        return self._page

    async def start(self) -> Page:
        """Launch the browser and open a page"""
        if self._page is not None:
            return self._page
        self._close_task = None
        channel = self.config.resolved_browser_channel
        try:
            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.launch(
                headless=self.config.browser_headless,
                channel=channel,
                args=[
                    '--disable-blink-features=AutomationControlled',
                    '--no-first-run',
                    '--no-default-browser-check',
                    '--disable-dev-shm-usage',
                ],
                timeout=self.config.global_timeout * 6000
            )
            self.browser_context = await self.browser.new_context(
                viewport=ViewportSize(width=self.config.viewport_width, height=self.config.viewport_height)
            )
            self._page = await self.browser_context.new_page()
            self._page.set_default_timeout(self.config.global_timeout * 1000)
        except Exception as e:
            await self.close()
            error = BrowserInitializationError(f"Failed to initialize browser: {e}", channel or "chromium")
            self.logger.error(str(error))
            raise error

        self.logger.info(f"Browser started (channel={channel}, headless={self.config.browser_headless})")
        return self._page

    async def close(self):
        """
        Close page, context, browser and Playwright

        Repeated or concurrent calls all wait for the same teardown.
        """
        if self._close_task is None:
            self._close_task = asyncio.ensure_future(self._teardown())
        await asyncio.shield(self._close_task)

    async def _teardown(self):
        for name, resource in (("context", self.browser_context), ("browser", self.browser)):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as e:
                self.logger.warning(f"Error closing {name}: {e}")
        if self.playwright is not None:
            try:
                await self.playwright.stop()
            except Exception as e:
                self.logger.warning(f"Error stopping Playwright: {e}")
        self._page = None
        self.browser_context = None
        self.browser = None
        self.playwright = None
        self.logger.debug("Browser resources cleaned up")

    async def __aenter__(self) -> "BrowserSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
