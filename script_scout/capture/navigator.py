# script_scout/capture/navigator.py
"""
Page-visit loop: navigate with retry, let background fetches settle, drain
the interceptor, harvest same-origin links, close the page.

A page goes ``Queued → Navigating → Loaded → LinksHarvested → Closed``, or
ends ``Errored`` when every navigation attempt failed. No page failure is
fatal to the crawl.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Sequence, Tuple

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from script_scout.capture.interceptor import ResponseInterceptor
from script_scout.capture.link_extractor import extract_links, filter_same_origin
from script_scout.capture.models import (
    CrawlSession,
    NavigationError,
    NavigationErrorKind,
    NavigationFailure,
)
from script_scout.config import CrawlerConfig
from script_scout.logger import LOGGER_NAME

__all__: Sequence[str] = ("NavigationController", "classify_navigation_error", "WAIT_UNTIL")

WAIT_UNTIL = "domcontentloaded"

# Fallback for errors that only describe themselves in their message.
_MESSAGE_KINDS: Tuple[Tuple[str, NavigationErrorKind], ...] = (
    ("ERR_CONNECTION_RESET", NavigationErrorKind.CONNECTION_RESET),
    ("ERR_TIMED_OUT", NavigationErrorKind.TIMEOUT),
    ("ERR_NAME_NOT_RESOLVED", NavigationErrorKind.DNS_FAILURE),
    ("ERR_SSL", NavigationErrorKind.TLS_FAILURE),
    ("ERR_CERT", NavigationErrorKind.TLS_FAILURE),
)

_FAILURE_HINTS = {
    NavigationErrorKind.CONNECTION_RESET: "connection reset (anti-bot protection, overload or rate limiting)",
    NavigationErrorKind.TIMEOUT: "server took too long to respond",
    NavigationErrorKind.DNS_FAILURE: "DNS resolution failed; check that the domain exists",
    NavigationErrorKind.TLS_FAILURE: "SSL/TLS error; certificate or protocol issue",
    NavigationErrorKind.OTHER: "navigation failed",
}


def classify_navigation_error(exc: BaseException) -> NavigationErrorKind:
    if isinstance(exc, NavigationError):
        return exc.kind
    if isinstance(exc, (PlaywrightTimeoutError, asyncio.TimeoutError)):
        return NavigationErrorKind.TIMEOUT
    message = str(exc)
    for needle, kind in _MESSAGE_KINDS:
        if needle in message:
            return kind
    return NavigationErrorKind.OTHER


class NavigationController:
    """Drives the page loop over a browser context shared by all pages."""

    def __init__(
        self,
        session: CrawlSession,
        config: CrawlerConfig,
        interceptor: ResponseInterceptor,
    ) -> None:
        self.session = session
        self.config = config
        self.interceptor = interceptor
        self.logger = logging.getLogger(LOGGER_NAME)

    def _budget_left(self) -> bool:
        return len(self.session.visited) < self.config.max_pages

    async def run(self, context: Any) -> None:
        while self.session.to_visit and self._budget_left():
            url = self.session.to_visit.popleft()
            if not url or url in self.session.visited:
                continue
            self.session.visited.add(url)
            await self.visit(context, url)

    async def visit(self, context: Any, url: str) -> None:
        page = await context.new_page()
        try:
            await self.navigate_with_retry(page, url)
            self.logger.debug("Waiting for resources to load...")
            await self._wait(self.config.settle_time)
            self.logger.debug("Waiting for late WASM requests...")
            await self._wait(self.config.wasm_settle_time)
            await self.interceptor.settle()
            if self._budget_left():
                await self.harvest_links(page, url)
        except NavigationError as exc:
            self.session.failures.append(
                NavigationFailure(url=url, kind=exc.kind, attempts=exc.attempts, message=exc.message)
            )
            self.logger.error("[ERR] %s: %s (%s)", url, _FAILURE_HINTS[exc.kind], exc.message)
        except Exception as exc:
            self.logger.error("[ERR] %s: %s (%s)", url, _FAILURE_HINTS[classify_navigation_error(exc)], exc)
        finally:
            try:
                await page.close()
            except Exception as exc:
                self.logger.debug("Closing page %s failed: %s", url, exc)

    async def navigate_with_retry(self, page: Any, url: str) -> Optional[Any]:
        """``page.goto`` with linear backoff (``attempt * retry_backoff``) between attempts."""
        attempts = self.config.navigation_retries
        for attempt in range(1, attempts + 1):
            try:
                self.logger.info("[NAV] %s (attempt %d/%d)", url, attempt, attempts)
                response = await page.goto(
                    url,
                    wait_until=WAIT_UNTIL,
                    timeout=self.config.navigation_timeout * 1000,
                )
                self.logger.debug(
                    "Page loaded: %s (status %s)", url, response.status if response is not None else "unknown"
                )
                return response
            except Exception as exc:
                self.logger.warning("[RETRY] attempt %d for %s failed: %s", attempt, url, exc)
                if attempt == attempts:
                    raise NavigationError(url, classify_navigation_error(exc), attempt, str(exc)) from exc
                delay = attempt * self.config.retry_backoff
                self.logger.debug("Waiting %.1f s before retry...", delay)
                await self._wait(delay)
        return None

    async def harvest_links(self, page: Any, url: str) -> List[str]:
        """Queue same-origin anchors of the rendered DOM; returns the new URLs."""
        html = await page.content()
        base = page.url or url
        candidates = filter_same_origin(extract_links(html, base), url)
        added = [link for link in candidates if self.session.enqueue(link)]
        self.logger.debug("[QUEUE] %d new link(s) from %s", len(added), url)
        return added

    async def _wait(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
