from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest
from playwright.async_api import Error as PlaywrightError

from padsplit import config
from padsplit.exceptions import SessionError
from padsplit.scrapers import browser as browser_mod
from padsplit.scrapers.browser import BrowserSessionManager


class FakePage:
    def __init__(self) -> None:
        self.navigation_timeout: int | None = None

    def set_default_navigation_timeout(self, ms: int) -> None:
        self.navigation_timeout = ms


class FakeContext:
    async def new_page(self) -> FakePage:
        return FakePage()


class FakeBrowser:
    def __init__(self, events: list[str]) -> None:
        self.events = events
        self.context_kwargs: dict[str, Any] = {}

    async def new_context(self, **kwargs: Any) -> FakeContext:
        self.context_kwargs = kwargs
        return FakeContext()

    async def close(self) -> None:
        self.events.append("browser.close")


def _fake_playwright(events: list[str], launch_error: Exception | None = None):
    browser = FakeBrowser(events)

    async def launch(headless: bool) -> FakeBrowser:
        events.append(f"launch headless={headless}")
        if launch_error:
            raise launch_error
        return browser

    async def stop() -> None:
        events.append("playwright.stop")

    playwright = SimpleNamespace(chromium=SimpleNamespace(launch=launch), stop=stop)

    async def starter():
        return playwright

    return starter, browser


def test_acquire_uses_fixed_user_agent_and_release_closes_browser() -> None:
    events: list[str] = []
    starter, browser = _fake_playwright(events)
    manager = BrowserSessionManager(headless=True, stealth=False, starter=starter)

    async def _run() -> FakePage:
        session = await manager.acquire()
        page = await session.new_page()
        await manager.release(session)
        return page

    page = asyncio.run(_run())

    assert browser.context_kwargs == {"user_agent": config.USER_AGENT}
    assert page.navigation_timeout == config.NAVIGATION_TIMEOUT_MS
    assert events == ["launch headless=True", "browser.close", "playwright.stop"]


def test_launch_failure_raises_session_error_and_stops_driver() -> None:
    events: list[str] = []
    starter, _ = _fake_playwright(events, launch_error=PlaywrightError("Executable doesn't exist"))
    manager = BrowserSessionManager(starter=starter)

    with pytest.raises(SessionError, match="Executable doesn't exist"):
        asyncio.run(manager.acquire())

    assert events[-1] == "playwright.stop"


def test_session_context_manager_releases_on_error() -> None:
    events: list[str] = []
    starter, _ = _fake_playwright(events)
    manager = BrowserSessionManager(starter=starter)

    async def _run() -> None:
        async with manager.session():
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(_run())

    assert "browser.close" in events
    assert events[-1] == "playwright.stop"


def test_stealth_is_applied_to_new_pages_when_enabled(monkeypatch: Any) -> None:
    events: list[str] = []
    starter, _ = _fake_playwright(events)
    stealthed: list[Any] = []

    async def _fake_stealth(page: Any) -> None:
        stealthed.append(page)

    monkeypatch.setattr(browser_mod, "stealth_async", _fake_stealth)
    manager = BrowserSessionManager(stealth=True, starter=starter)

    async def _run() -> FakePage:
        async with manager.session() as session:
            return await session.new_page()

    page = asyncio.run(_run())

    assert stealthed == [page]
