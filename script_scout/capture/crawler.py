# script_scout/capture/crawler.py
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

from playwright.async_api import async_playwright

from script_scout.capture.interceptor import ResponseInterceptor
from script_scout.capture.models import CrawlSession, CrawlSummary
from script_scout.capture.navigator import WAIT_UNTIL, NavigationController
from script_scout.capture.router import ROUTE_PATTERN, RequestRouter
from script_scout.config import CrawlerConfig
from script_scout.logger import LOGGER_NAME
from script_scout.utils import ensure_dir

__all__ = ("CaptureCrawler", "probe_responses")


def _context_options(config: CrawlerConfig) -> dict[str, Any]:
    return {
        "java_script_enabled": True,
        "bypass_csp": config.bypass_csp,
        "service_workers": "allow",
        "user_agent": config.user_agent,
        "viewport": {"width": config.viewport.width, "height": config.viewport.height},
        "extra_http_headers": dict(config.extra_headers),
    }


class CaptureCrawler:
    """Playwright-backed crawler that persists the JavaScript and WASM a site loads.

    Use as an async context manager: entering launches Chromium and wires the
    response interceptor and the request router to one browser context;
    leaving closes context, browser and the Playwright driver.
    """

    def __init__(self, config: CrawlerConfig) -> None:
        self.config = config
        self.start_url = str(config.start_url)
        self.session = CrawlSession.start(self.start_url, config.output_dir)
        self.interceptor = ResponseInterceptor(self.session, config)
        self.router = RequestRouter(self.session, config.router_url_tokens)
        self.controller = NavigationController(self.session, config, self.interceptor)
        self.context: Optional[Any] = None
        self.logger = logging.getLogger(LOGGER_NAME)
        self._playwright: Optional[Any] = None
        self._browser: Optional[Any] = None

    async def __aenter__(self) -> CaptureCrawler:
        ensure_dir(self.config.output_dir)
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                args=list(self.config.launch_args),
            )
            context = await self._browser.new_context(**_context_options(self.config))
            await self.attach(context)
        except Exception:
            await self._shutdown()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self._shutdown()

    async def attach(self, context: Any) -> None:
        """Subscribe the interceptor (and, if enabled, the router) to *context*."""
        self.context = context
        self.interceptor.start()
        context.on("response", self.interceptor.on_response)
        if self.router.enabled:
            await context.route(ROUTE_PATTERN, self.router.handle)

    async def crawl(self) -> CrawlSummary:
        if self.context is None:
            raise RuntimeError("Browser context not initialized")
        self.logger.info("Starting capture: %s -> %s", self.start_url, self.config.output_dir)
        start = time.monotonic()
        await self.controller.run(self.context)
        await self.interceptor.settle()
        summary = CrawlSummary.from_session(self.start_url, self.session)
        counts = summary.counts()
        self.logger.info(
            "Finished: %d page(s), %d JS and %d WASM file(s) in %.2f s",
            len(summary.pages_visited), counts["javascript"], counts["wasm"], time.monotonic() - start,
        )
        if summary.failures:
            self.logger.info("Pages that failed to load: %d", len(summary.failures))
        return summary

    async def _shutdown(self) -> None:
        await self.interceptor.stop()
        for closer in (self.context, self._browser):
            if closer is None:
                continue
            try:
                await closer.close()
            except Exception as exc:
                self.logger.debug("Close failed: %s", exc)
        self.context = None
        self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None


async def probe_responses(config: CrawlerConfig, url: Optional[str] = None) -> int:
    """Open one page and count the responses it triggers; a quick sanity check
    that the browser reaches the target at all."""
    logger = logging.getLogger(LOGGER_NAME)
    target = url or str(config.start_url)
    count = 0

    def _on_response(response: Any) -> None:
        nonlocal count
        count += 1
        logger.info("Response %d: %s", count, response.url)

    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=config.headless, args=list(config.launch_args))
        try:
            context = await browser.new_context(**_context_options(config))
            context.on("response", _on_response)
            page = await context.new_page()
            response = await page.goto(target, wait_until=WAIT_UNTIL, timeout=config.navigation_timeout * 1000)
            logger.info("Page loaded: %s", response.status if response is not None else "unknown")
            await asyncio.sleep(config.settle_time)
        finally:
            await browser.close()
    logger.info("Total responses captured: %d", count)
    return count
