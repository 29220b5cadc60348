# script_scout/capture/router.py
"""
Request-level side channel for payloads the response event may miss.

Some compiler-as-a-service endpoints answer a POST with a freshly built WASM
module. Requests whose URL contains every configured token are fetched by the
router itself, the body is persisted, and the untouched response is handed
back to the page. Everything else passes through.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from script_scout.capture.models import CrawlSession, ResourceKind
from script_scout.capture.paths import resolve_path
from script_scout.logger import LOGGER_NAME
from script_scout.utils import write_bytes

__all__ = ("RequestRouter", "ROUTE_PATTERN")

ROUTE_PATTERN = "**/*"


class RequestRouter:
    def __init__(self, session: CrawlSession, url_tokens: Sequence[str]) -> None:
        self.session = session
        self.url_tokens = tuple(t for t in url_tokens if t)
        self.logger = logging.getLogger(LOGGER_NAME)

    @property
    def enabled(self) -> bool:
        return bool(self.url_tokens)

    def matches(self, url: str) -> bool:
        return self.enabled and all(token in url for token in self.url_tokens)

    async def handle(self, route: Any) -> None:
        """Playwright route handler."""
        url = route.request.url
        if not self.matches(url):
            await route.continue_()
            return

        self.logger.info("[ROUTE] intercepting %s", url)
        try:
            response = await route.fetch()
        except Exception as exc:
            self.logger.warning("[ROUTE] fetch failed for %s (%s); passing through", url, exc)
            await route.continue_()
            return

        if response.ok:
            try:
                await self._persist(url, await response.body(), response.headers.get("content-type"))
            except Exception as exc:
                self.logger.warning("[ROUTE] could not persist %s: %s", url, exc)
        await route.fulfill(response=response)

    async def _persist(self, url: str, body: bytes, content_type: Optional[str]) -> Optional[Path]:
        if not body:
            return None
        path = resolve_path(
            url, self.session.output_dir, ResourceKind.WASM, content_type, self.session.main_hostname
        )
        await write_bytes(path, body)
        self.session.mark_saved(url, path, ResourceKind.WASM, len(body))
        self.logger.info("[SAVE] routed wasm %s -> %s", url, path)
        return path
