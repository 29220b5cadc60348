# File: tests/fakes.py
"""In-memory stand-ins for the Playwright objects the capture engine talks to."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

WASM_MODULE = b"\x00asm\x01\x00\x00\x00"


class FakeRequest:
    def __init__(self, url: str, resource_type: str = "other") -> None:
        self.url = url
        self.resource_type = resource_type


class FakeResponse:
    """Mimics ``playwright.async_api.Response``.

    *errors* are raised by successive ``body()`` calls before the real body
    is returned; *delay* makes every read slow.
    """

    def __init__(
        self,
        url: str,
        body: Any = b"",
        content_type: Optional[str] = None,
        resource_type: str = "other",
        errors: Optional[List[BaseException]] = None,
        delay: float = 0.0,
    ) -> None:
        self.url = url
        self._body = body
        self.headers: Dict[str, str] = {"content-type": content_type} if content_type else {}
        self.request = FakeRequest(url, resource_type)
        self._errors = list(errors or [])
        self._delay = delay
        self.body_calls = 0

    async def body(self) -> Any:
        self.body_calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._errors:
            raise self._errors.pop(0)
        return self._body


class StalledResponse(FakeResponse):
    """A response whose body never arrives until ``release`` is set (SSE, long-poll, stuck fetch)."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.release = asyncio.Event()

    async def body(self) -> Any:
        self.body_calls += 1
        await self.release.wait()
        return self._body


class FakeNavResponse:
    def __init__(self, status: int = 200) -> None:
        self.status = status


@dataclass
class SitePage:
    html: str = "<html></html>"
    responses: List[FakeResponse] = field(default_factory=list)
    #: number of goto() calls that fail first; None → always fail
    failures: Optional[int] = 0
    error_message: str = "net::ERR_CONNECTION_RESET at {url}"


class FakePage:
    def __init__(self, context: FakeContext) -> None:
        self.context = context
        self.url = "about:blank"
        self.goto_calls: List[Dict[str, Any]] = []
        self.closed = False

    async def goto(self, url: str, wait_until: str = "load", timeout: float = 30000) -> FakeNavResponse:
        self.goto_calls.append({"url": url, "wait_until": wait_until, "timeout": timeout})
        site_page = self.context.site.get(url)
        if site_page is None:
            raise Exception(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        if site_page.failures is None or site_page.failures > 0:
            if site_page.failures:
                site_page.failures -= 1
            raise Exception(site_page.error_message.format(url=url))
        self.url = url
        for response in site_page.responses:
            self.context.emit("response", response)
        return FakeNavResponse(200)

    async def content(self) -> str:
        site_page = self.context.site.get(self.url)
        return site_page.html if site_page else ""

    async def close(self) -> None:
        self.closed = True


class FakeContext:
    def __init__(self, site: Optional[Dict[str, SitePage]] = None) -> None:
        self.site = site or {}
        self.closed = False
        self.handlers: Dict[str, List[Callable[[Any], None]]] = {}
        self.routes: List[Any] = []
        self.pages: List[FakePage] = []

    def on(self, event: str, handler: Callable[[Any], None]) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event: str, payload: Any) -> None:
        for handler in self.handlers.get(event, []):
            handler(payload)

    async def route(self, pattern: str, handler: Any) -> None:
        self.routes.append((pattern, handler))

    async def new_page(self) -> FakePage:
        page = FakePage(self)
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeAPIResponse:
    def __init__(self, body: bytes = b"", ok: bool = True, content_type: str = "application/wasm") -> None:
        self._body = body
        self.ok = ok
        self.headers = {"content-type": content_type}

    async def body(self) -> bytes:
        return self._body


class FakeRoute:
    def __init__(self, url: str, response: Optional[FakeAPIResponse] = None, fetch_error: Optional[Exception] = None) -> None:
        self.request = FakeRequest(url, "fetch")
        self._response = response
        self._fetch_error = fetch_error
        self.continued = False
        self.fulfilled_with: Any = None

    async def fetch(self) -> FakeAPIResponse:
        if self._fetch_error is not None:
            raise self._fetch_error
        return self._response

    async def continue_(self) -> None:
        self.continued = True

    async def fulfill(self, response: Any = None) -> None:
        self.fulfilled_with = response
