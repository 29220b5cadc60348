# File: script_scout/utils.py
"""script_scout.utils: URL origin helpers and file writing shared by the capture engine."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Collection, List, Optional, Sequence, Tuple
from urllib.parse import urldefrag, urlparse

from script_scout.logger import logger

__all__: Sequence[str] = (
    "origin_of",
    "same_origin",
    "extract_domain",
    "strip_fragment",
    "remove_duplicates",
    "ensure_dir",
    "write_bytes",
)

_DEFAULT_PORTS = {"http": 80, "https": 443}


def origin_of(url: str) -> Optional[Tuple[str, str, Optional[int]]]:
    """Return ``(scheme, host, port)`` with default ports filled in, or None for opaque URLs."""
    try:
        parsed = urlparse(url)
        port = parsed.port
    except ValueError:
        return None
    if parsed.scheme not in _DEFAULT_PORTS or not parsed.hostname:
        return None
    return parsed.scheme, parsed.hostname.lower(), port or _DEFAULT_PORTS[parsed.scheme]


def same_origin(url: str, other: str) -> bool:
    """Scheme, host and port equality; opaque URLs never match."""
    origin = origin_of(url)
    return origin is not None and origin == origin_of(other)


def extract_domain(url: str) -> str:
    """Hostname of *url* without further checks."""
    return urlparse(url).hostname or ""


def strip_fragment(url: str) -> str:
    return urldefrag(url)[0]


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Remove duplicate URLs, keeping order."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique


def ensure_dir(path: Path | str) -> Path:
    """Create *path* (and parents); errors propagate to the caller."""
    p = Path(path).expanduser()
    p.mkdir(parents=True, exist_ok=True)
    return p


async def write_bytes(path: Path, data: bytes) -> None:
    """Create parent directories and write *data* off the event loop."""

    def _write() -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    await asyncio.to_thread(_write)
