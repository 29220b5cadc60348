# script_scout/capture/interceptor.py
"""
Per-response capture: classify, decide immediate or deferred save, write.

The browser pushes :class:`ResponseEvent` messages onto an ``asyncio.Queue``
and a pool of worker tasks consumes them. Every body read is bounded by
``pending_timeout`` and the queue join by ``join_timeout``, so a streaming or
stalled response cannot hold a page open. Every failure inside the handling of
one response is logged and discarded.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, List, Optional

from script_scout.capture.classifier import classify, is_wasm_magic
from script_scout.capture.inline_wasm import save_inline_wasm
from script_scout.capture.models import (
    Classification,
    CrawlSession,
    PendingCapture,
    ResourceKind,
    ResponseEvent,
    SaveTarget,
)
from script_scout.capture.paths import resolve_path
from script_scout.config import CrawlerConfig
from script_scout.logger import LOGGER_NAME
from script_scout.utils import write_bytes

__all__ = ("ResponseInterceptor",)


def _consume_result(task: "asyncio.Future[Any]") -> None:
    # abandoned body reads finish after the drain moved on
    if not task.cancelled():
        task.exception()


class ResponseInterceptor:
    """Consumer side of the response channel."""

    def __init__(self, session: CrawlSession, config: CrawlerConfig) -> None:
        self.session = session
        self.config = config
        self.queue: asyncio.Queue[ResponseEvent] = asyncio.Queue()
        self.logger = logging.getLogger(LOGGER_NAME)
        self._workers: List[asyncio.Task[None]] = []
        self._probe_types = frozenset(config.probe_resource_types)

    # ------------------------------------------------------------------ #
    # Channel                                                            #
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(), name=f"interceptor-{i}")
            for i in range(self.config.interceptor_workers)
        ]

    async def stop(self) -> None:
        for w in self._workers:
            w.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

    def submit(self, event: ResponseEvent) -> None:
        self.queue.put_nowait(event)

    def on_response(self, response: Any) -> None:
        """Playwright ``response`` listener."""
        try:
            self.submit(ResponseEvent.from_playwright(response))
        except Exception as exc:
            self.logger.debug("[SKIP] unreadable response event: %s", exc)

    async def join(self) -> None:
        """Wait until every submitted event has been handled, at most ``join_timeout`` seconds."""
        try:
            await asyncio.wait_for(self.queue.join(), timeout=self.config.join_timeout)
        except asyncio.TimeoutError:
            self.logger.warning(
                "[QUEUE] %d response(s) still unhandled after %.1f s; moving on",
                self.queue.qsize(), self.config.join_timeout,
            )

    async def settle(self) -> int:
        """Flush the channel, then drain deferred WASM captures."""
        await self.join()
        return await self.drain_pending()

    async def _worker(self) -> None:
        while True:
            event = await self.queue.get()
            try:
                await self.handle(event)
            finally:
                self.queue.task_done()

    # ------------------------------------------------------------------ #
    # Handling                                                           #
    # ------------------------------------------------------------------ #

    async def handle(self, event: ResponseEvent) -> Optional[Path]:
        """Process one response; returns the written path, if any."""
        try:
            return await self._handle(event)
        except Exception as exc:
            self.logger.debug("[ERR] response handler failed for %s: %s", event.url, exc)
            return None

    async def _handle(self, event: ResponseEvent) -> Optional[Path]:
        url = event.url
        if not url or url in self.session.saved:
            return None
        if not self.config.exclusive_saves:
            return await self._process(event)

        if url in self.session.claimed:
            return None
        self.session.claimed.add(url)
        try:
            return await self._process(event)
        finally:
            if url not in self.session.saved and url not in self.session.pending:
                self.session.claimed.discard(url)

    async def _process(self, event: ResponseEvent) -> Optional[Path]:
        first = classify(event.content_type, event.url, resource_type=event.resource_type)
        self.logger.debug(
            "[RESP] %s type=%s content-type=%s -> %s (%s)",
            event.url, event.resource_type, event.content_type, first.kind.value, first.rule,
        )
        if not first.is_capturable:
            if (event.resource_type or "").lower() in self._probe_types:
                return await self._probe(event)
            return None
        if first.kind is ResourceKind.WASM:
            return await self._capture_wasm(event)
        return await self._capture(event, first)

    async def _capture_wasm(self, event: ResponseEvent) -> Optional[Path]:
        try:
            body = await self._read_body(event)
        except Exception as exc:
            self.logger.debug("[PENDING] body of %s not readable yet (%s); deferring", event.url, exc)
            self.session.pending[event.url] = PendingCapture(url=event.url, event=event)
            return None
        return await self._save_wasm(event.url, body, event.content_type)

    async def _capture(self, event: ResponseEvent, first: Classification) -> Optional[Path]:
        try:
            body = await self._read_body(event)
        except Exception as exc:
            self.logger.debug("[SKIP] no body for %s: %s", event.url, exc)
            return None
        if not body:
            self.logger.debug("[SKIP] empty body for %s", event.url)
            return None

        final = classify(event.content_type, event.url, body, event.resource_type)
        kind = final.kind if final.is_capturable else first.kind
        if kind is ResourceKind.WASM:
            self.logger.info("[WASM] %s recognised by %s", event.url, final.rule)

        target = SaveTarget(
            resolve_path(event.url, self.session.output_dir, kind, event.content_type, self.session.main_hostname),
            kind,
        )
        await self._write(event.url, target, body)

        if kind is ResourceKind.JAVASCRIPT:
            await save_inline_wasm(body, self.session.output_dir)
        return target.path

    async def _probe(self, event: ResponseEvent) -> Optional[Path]:
        try:
            body = await self._read_body(event)
        except Exception:
            return None
        if not is_wasm_magic(body):
            return None
        self.logger.info("[WASM] %s carries WASM magic despite content-type %s", event.url, event.content_type)
        return await self._save_wasm(event.url, body, event.content_type)

    async def _save_wasm(self, url: str, body: Optional[bytes], content_type: Optional[str]) -> Optional[Path]:
        if not body:
            self.logger.debug("[SKIP] empty body for WASM %s", url)
            return None
        if not is_wasm_magic(body):
            self.logger.warning("[WASM] %s was classified as WASM but lacks the magic number", url)
        target = SaveTarget(
            resolve_path(url, self.session.output_dir, ResourceKind.WASM, content_type, self.session.main_hostname),
            ResourceKind.WASM,
        )
        await self._write(url, target, body)
        return target.path

    async def _write(self, url: str, target: SaveTarget, body: bytes) -> None:
        await write_bytes(target.path, body)
        self.session.mark_saved(url, target.path, target.kind, len(body))
        self.logger.info("[SAVE] %s %s -> %s", target.kind.value, url, target.path)

    # ------------------------------------------------------------------ #
    # Deferred captures                                                  #
    # ------------------------------------------------------------------ #

    async def drain_pending(self) -> int:
        """Retry each deferred WASM body once, bounded by ``pending_timeout``.

        The timer wins a race against a slow read: the read is abandoned,
        not aborted, and the entry is dropped. Returns the number saved.
        """
        pending = self.session.pending
        if pending:
            self.logger.info("Draining %d pending WASM response(s)", len(pending))
        saved = 0
        while pending:
            url = next(iter(pending))
            capture = pending.pop(url)
            try:
                if url in self.session.saved:
                    continue
                body = await self._read_with_timeout(capture)
                if body is not None and await self._save_wasm(url, body, capture.event.content_type):
                    saved += 1
            except Exception as exc:
                self.logger.warning("[PENDING] failed to save %s: %s", url, exc)
            finally:
                if url not in self.session.saved:
                    self.session.claimed.discard(url)
        return saved

    async def _read_body(self, event: ResponseEvent) -> bytes:
        """Body read bounded by ``pending_timeout``.

        On timeout the read is abandoned, not aborted, and
        :class:`asyncio.TimeoutError` is raised.
        """
        task = asyncio.ensure_future(event.read_body())
        task.add_done_callback(_consume_result)
        return await asyncio.wait_for(asyncio.shield(task), timeout=self.config.pending_timeout)

    async def _read_with_timeout(self, capture: PendingCapture) -> Optional[bytes]:
        try:
            return await self._read_body(capture.event)
        except asyncio.TimeoutError:
            self.logger.warning(
                "[PENDING] %s: body not available within %.1f s, dropped",
                capture.url, self.config.pending_timeout,
            )
        except Exception as exc:
            self.logger.warning("[PENDING] %s: body read failed (%s), dropped", capture.url, exc)
        return None
