# script_scout/capture/models.py
"""
Data models shared by the capture engine.
"""
from __future__ import annotations

import json
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set
from script_scout.utils import extract_domain

WASM_MAGIC = b"\x00asm"


class ResourceKind(str, Enum):
    JAVASCRIPT = "javascript"
    WASM = "wasm"
    OTHER = "other"

    @property
    def extension(self) -> Optional[str]:
        return {ResourceKind.JAVASCRIPT: ".js", ResourceKind.WASM: ".wasm"}.get(self)


class ClassificationSignal(str, Enum):
    MAGIC_BYTES = "magic-bytes"
    CONTENT_TYPE = "declared-content-type"
    URL_PATTERN = "url-pattern"
    RESOURCE_TYPE = "resource-type-hint"
    CONTENT_HEURISTIC = "content-heuristic"


class NavigationErrorKind(str, Enum):
    CONNECTION_RESET = "connection-reset"
    TIMEOUT = "timeout"
    DNS_FAILURE = "dns-failure"
    TLS_FAILURE = "tls-failure"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class Classification:
    """Outcome of classifying one response."""

    kind: ResourceKind
    signal: Optional[ClassificationSignal] = None
    rule: Optional[str] = None

    @property
    def default_extension(self) -> Optional[str]:
        return self.kind.extension

    @property
    def is_capturable(self) -> bool:
        return self.kind is not ResourceKind.OTHER


@dataclass(frozen=True, slots=True)
class SaveTarget:
    path: Path
    kind: ResourceKind


@dataclass(slots=True)
class ResponseEvent:
    """A network response as seen by the interceptor.

    ``read_body`` is the deferred body read supplied by the browser; it may
    fail, or never finish, long after the event was emitted.
    """

    url: str
    read_body: Callable[[], Awaitable[bytes]]
    content_type: Optional[str] = None
    resource_type: Optional[str] = None

    @classmethod
    def from_playwright(cls, response: Any) -> ResponseEvent:
        """Wrap a ``playwright.async_api.Response``."""
        headers = response.headers or {}
        return cls(
            url=response.url,
            read_body=response.body,
            content_type=headers.get("content-type"),
            resource_type=response.request.resource_type,
        )


@dataclass(slots=True)
class PendingCapture:
    url: str
    event: ResponseEvent
    enqueued_at: float = field(default_factory=time.monotonic)


@dataclass(slots=True)
class SavedResource:
    url: str
    path: str
    kind: ResourceKind
    size: int


@dataclass(slots=True)
class NavigationFailure:
    url: str
    kind: NavigationErrorKind
    attempts: int
    message: str


class NavigationError(Exception):
    """Raised when every navigation attempt for a page failed."""

    def __init__(self, url: str, kind: NavigationErrorKind, attempts: int, message: str) -> None:
        super().__init__(f"{kind.value}: {message}")
        self.url = url
        self.kind = kind
        self.attempts = attempts
        self.message = message


@dataclass
class CrawlSession:
    """Mutable state of one crawl, passed by reference to every component."""

    main_hostname: Optional[str]
    output_dir: Path
    visited: Set[str] = field(default_factory=set)
    to_visit: Deque[str] = field(default_factory=deque)
    saved: Set[str] = field(default_factory=set)
    claimed: Set[str] = field(default_factory=set)
    pending: Dict[str, PendingCapture] = field(default_factory=dict)
    records: List[SavedResource] = field(default_factory=list)
    failures: List[NavigationFailure] = field(default_factory=list)

    @classmethod
    def start(cls, start_url: str, output_dir: Path) -> CrawlSession:
        session = cls(main_hostname=extract_domain(start_url) or None, output_dir=Path(output_dir))
        session.to_visit.append(start_url)
        return session

    def enqueue(self, url: str) -> bool:
        """Queue *url* unless it was visited or is already waiting."""
        if url in self.visited or url in self.to_visit:
            return False
        self.to_visit.append(url)
        return True

    def mark_saved(self, url: str, path: Path, kind: ResourceKind, size: int) -> None:
        # a racing duplicate rewrote the same file; keep one record
        if url in self.saved:
            return
        self.saved.add(url)
        self.records.append(SavedResource(url=url, path=str(path), kind=kind, size=size))


@dataclass(slots=True)
class CrawlSummary:
    """What a finished crawl produced; printed by the CLI."""

    start_url: str
    output_dir: str
    pages_visited: List[str]
    saved: List[SavedResource]
    failures: List[NavigationFailure]

    @classmethod
    def from_session(cls, start_url: str, session: CrawlSession) -> CrawlSummary:
        return cls(
            start_url=start_url,
            output_dir=str(session.output_dir),
            pages_visited=sorted(session.visited),
            saved=list(session.records),
            failures=list(session.failures),
        )

    def counts(self) -> Dict[str, int]:
        result = {kind.value: 0 for kind in (ResourceKind.JAVASCRIPT, ResourceKind.WASM)}
        for record in self.saved:
            result[record.kind.value] = result.get(record.kind.value, 0) + 1
        return result

    def json(self, *, pretty: bool = False) -> str:
        output = asdict(self)
        output["counts"] = self.counts()
        return json.dumps(output, ensure_ascii=False, indent=2 if pretty else None, default=str)


__all__ = [
    "WASM_MAGIC",
    "ResourceKind",
    "ClassificationSignal",
    "NavigationErrorKind",
    "Classification",
    "SaveTarget",
    "ResponseEvent",
    "PendingCapture",
    "SavedResource",
    "NavigationFailure",
    "NavigationError",
    "CrawlSession",
    "CrawlSummary",
]
