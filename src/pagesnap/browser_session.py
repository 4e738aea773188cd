# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Playwright Chromium session used by the command line.

Library callers bring their own ``Page``; this module only exists so the
CLI can launch a browser, load one URL and hand the page to the extractor.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import Literal

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from .errors import BrowserError

logger = logging.getLogger(__name__)

WaitUntil = Literal["commit", "domcontentloaded", "load", "networkidle"]


@dataclass(frozen=True)
class BrowserConfig:
    """Launch and navigation options for the CLI browser."""

    headless: bool = True
    locale: str = "en-US"
    viewport: tuple[int, int] = (1280, 800)
    timeout_ms: int = 30000
    wait_until: WaitUntil = "load"

    def launch_args(self) -> list[str]:
        return [
            f"--lang={self.locale}",
            "--no-first-run",
            "--disable-extensions",
            "--disable-dev-shm-usage",
            "--mute-audio",
        ]


def _launch_error(exc: Exception) -> BrowserError:
    if "executable doesn't exist" in str(exc).lower():
        return BrowserError("Chromium is not installed. Run: playwright install chromium")
    return BrowserError(f"Browser launch failed: {exc}")


class BrowserSession:
    """Chromium with a single page, opened for one CLI invocation.

    Use as ``async with BrowserSession(config) as session``.
    """

    def __init__(self, config: BrowserConfig | None = None) -> None:
        self.config = config or BrowserConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    async def __aenter__(self) -> BrowserSession:
        try:
            await self.start()
        except BaseException:
            await self.stop()
            raise
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser session not started. Use 'async with BrowserSession()' or call start().")
        return self._page

    async def start(self) -> Page:
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless, args=self.config.launch_args()
            )
        except Exception as exc:
            raise _launch_error(exc) from exc

        width, height = self.config.viewport
        self._context = await self._browser.new_context(
            viewport={"width": width, "height": height},
            locale=self.config.locale,
            accept_downloads=False,
        )
        self._page = await self._context.new_page()
        logger.info("Chromium started (headless=%s, viewport=%dx%d)", self.config.headless, width, height)
        return self._page

    async def navigate(self, url: str) -> int | None:
        """Load *url*; returns the main response status, if there was one."""
        try:
            response = await self.page.goto(url, wait_until=self.config.wait_until, timeout=self.config.timeout_ms)
        except Exception as exc:
            raise BrowserError(f"Navigation to {url} failed: {exc}") from exc
        status = response.status if response is not None else None
        logger.info("Loaded %s (status=%s)", url, status)
        return status

    async def stop(self) -> None:
        """Close context, browser and driver, newest first. Safe to call twice."""
        self._page = None
        context, browser, playwright = self._context, self._browser, self._playwright
        self._context = self._browser = self._playwright = None

        # any of them may already be gone with a crashed browser
        for closable in (context, browser):
            if closable is not None:
                with suppress(Exception):
                    await closable.close()
        if playwright is not None:
            with suppress(Exception):
                await playwright.stop()


def create_session(config: BrowserConfig | None = None) -> BrowserSession:
    return BrowserSession(config)
