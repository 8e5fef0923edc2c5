"""
Browser session lifecycle.

Every logical operation (a login, a directory fetch, a scrape job) gets its own
headless Chromium instance with one isolated context. Releasing a session
closes the whole browser and stops the Playwright driver, so nothing is shared
between operations and no browser processes outlive their caller.
"""
import contextlib
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright
from playwright_stealth import Stealth

from padsplit import config
from padsplit.exceptions import SessionError


async def stealth_async(page):
    """Apply stealth settings to a page."""
    await Stealth().apply_stealth_async(page)


async def _start_playwright():
    return await async_playwright().start()


@dataclass
class BrowserSession:
    """One browser instance plus its single isolated context."""

    playwright: Any
    browser: Any
    context: Any
    stealth: bool = False

    async def new_page(self):
        page = await self.context.new_page()
        page.set_default_navigation_timeout(config.NAVIGATION_TIMEOUT_MS)
        if self.stealth:
            await stealth_async(page)
        return page


class BrowserSessionManager:
    """Launches and tears down isolated headless browser sessions."""

    def __init__(
        self,
        headless: bool = config.HEADLESS,
        user_agent: str = config.USER_AGENT,
        stealth: bool = config.USE_STEALTH,
        starter: Optional[Callable[[], Awaitable[Any]]] = None,
    ):
        self.headless = headless
        self.user_agent = user_agent
        self.stealth = stealth
        self._starter = starter or _start_playwright

    async def acquire(self) -> BrowserSession:
        """Launch a browser and open one context. Launch failures raise SessionError."""
        playwright = None
        browser = None
        try:
            playwright = await self._starter()
            browser = await playwright.chromium.launch(headless=self.headless)
            context = await browser.new_context(user_agent=self.user_agent)
        except PlaywrightError as exc:
            await self._shutdown(playwright, browser)
            raise SessionError(f"Failed to launch browser: {exc}") from exc
        except Exception:
            await self._shutdown(playwright, browser)
            raise

        logger.debug("Browser session acquired (headless={})", self.headless)
        return BrowserSession(playwright=playwright, browser=browser, context=context, stealth=self.stealth)

    async def release(self, session: BrowserSession) -> None:
        """Close the entire browser instance, not just the context."""
        await self._shutdown(session.playwright, session.browser)
        logger.debug("Browser session released")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[BrowserSession]:
        session = await self.acquire()
        try:
            yield session
        finally:
            await self.release(session)

    @staticmethod
    async def _shutdown(playwright, browser) -> None:
        if browser is not None:
            try:
                await browser.close()
            except Exception as exc:
                logger.warning(f"Failed to close browser: {exc}")
        if playwright is not None:
            with contextlib.suppress(Exception):
                await playwright.stop()
