# script_scout/capture/paths.py
"""
Deterministic mapping from a captured URL to its place in the output tree.

Layout::

    <output_root>/<hostname>/<bucket>/<filename>
    <output_root>/inline/<timestamp>_<random><ext>          (data: URLs)
    <output_root>/inline/embedded_<timestamp>_<random>.wasm (inline WASM)

Resources from other hosts are filed under the main site's hostname with the
foreign service name prefixed to the filename.
"""
from __future__ import annotations

import posixpath
import re
import time
import uuid
from pathlib import Path
from typing import Optional, Sequence, Union
from urllib.parse import urlparse

from script_scout.capture.classifier import guess_extension
from script_scout.capture.models import ResourceKind

__all__: Sequence[str] = (
    "BUCKETS",
    "INLINE_DIR",
    "sanitize",
    "service_name",
    "bucket_for",
    "filename_for",
    "resolve_path",
    "inline_path",
)

BUCKETS = ("js", "wasm", "css", "images", "fonts", "data", "other")
INLINE_DIR = "inline"
MAX_NAME_LENGTH = 200

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9\-_./]")


def sanitize(name: str) -> str:
    """Replace characters outside ``[A-Za-z0-9-_./]`` and cap the length."""
    return _UNSAFE_CHARS.sub("_", name)[:MAX_NAME_LENGTH]


def service_name(hostname: str) -> str:
    """Filename prefix for a third-party host: ``cdn.b.com`` → ``b.com``."""
    labels = [label for label in hostname.split(".") if label]
    if len(labels) >= 3:
        labels = labels[1:]
    return sanitize(".".join(labels))


def bucket_for(kind: ResourceKind, content_type: Optional[str]) -> str:
    """Top-level bucket; the classified kind wins over the declared type."""
    ct = (content_type or "").lower()
    if kind is ResourceKind.JAVASCRIPT or "javascript" in ct:
        return "js"
    if kind is ResourceKind.WASM or "application/wasm" in ct:
        return "wasm"
    if "css" in ct:
        return "css"
    if "image" in ct:
        return "images"
    if "font" in ct:
        return "fonts"
    if "json" in ct:
        return "data"
    return "other"


def filename_for(pathname: str, extension: Optional[str]) -> str:
    """Flatten a URL path into one filename, adding *extension* if it has none."""
    name = pathname.lstrip("/").replace("/", "_")
    if name in ("", ".", "..") or name.endswith("_"):
        name = name.rstrip(".") + "index"
    if not posixpath.splitext(name)[1] and extension:
        name += extension
    return name


def resolve_path(
    url: str,
    output_root: Union[str, Path],
    kind: ResourceKind,
    content_type: Optional[str] = None,
    main_hostname: Optional[str] = None,
) -> Path:
    """Return the file path a response for *url* is written to."""
    if url.startswith("data:"):
        return inline_path(output_root, kind.extension or guess_extension(content_type) or "")

    parsed = urlparse(url)
    hostname = parsed.hostname or ""
    extension = kind.extension or guess_extension(content_type)
    filename = filename_for(parsed.path, extension)

    target_host = hostname
    if main_hostname and hostname != main_hostname:
        target_host = main_hostname
        filename = f"{service_name(hostname)}_{filename}"

    return Path(output_root) / sanitize(target_host) / bucket_for(kind, content_type) / sanitize(filename)


def inline_path(output_root: Union[str, Path], extension: str = "", *, prefix: str = "") -> Path:
    """Synthetic, collision-free name under ``<output_root>/inline``."""
    stamp = int(time.time() * 1000)
    return Path(output_root) / INLINE_DIR / f"{prefix}{stamp}_{uuid.uuid4().hex[:10]}{extension}"
