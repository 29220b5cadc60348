# script_scout/capture/classifier.py
"""
Layered classification of network responses into JavaScript, WASM or other.

Each heuristic is a named rule in :data:`CLASSIFICATION_RULES`; the table is
ordered by priority and the first matching rule decides the kind. New hints
belong in the pattern tuples below, not in control flow.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from script_scout.capture.models import (
    WASM_MAGIC,
    Classification,
    ClassificationSignal,
    ResourceKind,
)

__all__: Sequence[str] = (
    "ClassificationRule",
    "CLASSIFICATION_RULES",
    "classify",
    "is_wasm_magic",
    "looks_like_javascript",
    "guess_extension",
)

SNIFF_WINDOW = 1000

WASM_CONTENT_TYPES: Tuple[str, ...] = ("application/wasm",)
JS_CONTENT_TYPES: Tuple[str, ...] = ("javascript", "ecmascript", "text/js")

WASM_URL_PATTERNS: Tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\.wasm(?:\?|#|$)",
        r"^data:application/wasm(?:;|,)",
        r"/wasm/",
        r"/webassembly/",
        r"/canvas/",
        r"/canvas2d/",
        r"/canvaskit/",
        r"/webgl/",
        r"/flutter/",
        r"/emscripten/",
        r"/unity/",
        r"/unreal/",
    )
)

JS_URL_PATTERNS: Tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\.m?js(?:\?|#|$)",
        r"/js/",
        r"/javascript/",
        r"/scripts/",
        r"\.min\.js",
        r"\.bundle\.js",
        r"\.chunk\.js",
    )
)

JS_SOURCE_TOKENS = re.compile(
    r"(?:function|var|let|const|=>|import|export|class|async|await|console\.|document\.|window\.)"
)


def is_wasm_magic(data: Optional[bytes]) -> bool:
    """True when *data* starts with the WebAssembly preamble ``00 61 73 6D``."""
    return bool(data) and data[:4] == WASM_MAGIC


def looks_like_javascript(data: Optional[bytes]) -> bool:
    """Low-precision sniff of the first bytes for common source tokens."""
    if not data or is_wasm_magic(data):
        return False
    text = data[:SNIFF_WINDOW].decode("utf-8", errors="replace")
    return bool(JS_SOURCE_TOKENS.search(text))


def _content_type_has(content_type: Optional[str], needles: Tuple[str, ...]) -> bool:
    if not content_type:
        return False
    lower = content_type.lower()
    return any(n in lower for n in needles)


def _url_matches(url: str, patterns: Tuple[re.Pattern[str], ...]) -> bool:
    return any(p.search(url) for p in patterns)


@dataclass(frozen=True, slots=True)
class _Inputs:
    content_type: Optional[str]
    url: str
    body: Optional[bytes]
    resource_type: Optional[str]


@dataclass(frozen=True, slots=True)
class ClassificationRule:
    name: str
    kind: ResourceKind
    signal: ClassificationSignal
    test: Callable[[_Inputs], bool]


CLASSIFICATION_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        "wasm-magic", ResourceKind.WASM, ClassificationSignal.MAGIC_BYTES,
        lambda i: is_wasm_magic(i.body),
    ),
    ClassificationRule(
        "wasm-content-type", ResourceKind.WASM, ClassificationSignal.CONTENT_TYPE,
        lambda i: _content_type_has(i.content_type, WASM_CONTENT_TYPES),
    ),
    ClassificationRule(
        "js-content-type", ResourceKind.JAVASCRIPT, ClassificationSignal.CONTENT_TYPE,
        lambda i: _content_type_has(i.content_type, JS_CONTENT_TYPES),
    ),
    ClassificationRule(
        "wasm-url", ResourceKind.WASM, ClassificationSignal.URL_PATTERN,
        lambda i: _url_matches(i.url, WASM_URL_PATTERNS),
    ),
    ClassificationRule(
        "js-url", ResourceKind.JAVASCRIPT, ClassificationSignal.URL_PATTERN,
        lambda i: _url_matches(i.url, JS_URL_PATTERNS),
    ),
    ClassificationRule(
        "script-resource", ResourceKind.JAVASCRIPT, ClassificationSignal.RESOURCE_TYPE,
        lambda i: (i.resource_type or "").lower() == "script",
    ),
    ClassificationRule(
        "js-content-sniff", ResourceKind.JAVASCRIPT, ClassificationSignal.CONTENT_HEURISTIC,
        lambda i: looks_like_javascript(i.body),
    ),
)


def classify(
    content_type: Optional[str],
    url: str,
    body: Optional[bytes] = None,
    resource_type: Optional[str] = None,
    rules: Sequence[ClassificationRule] = CLASSIFICATION_RULES,
) -> Classification:
    """Return the kind decided by the first matching rule, or ``OTHER``."""
    inputs = _Inputs(content_type=content_type, url=url or "", body=body, resource_type=resource_type)
    for rule in rules:
        if rule.test(inputs):
            return Classification(kind=rule.kind, signal=rule.signal, rule=rule.name)
    return Classification(kind=ResourceKind.OTHER)


def guess_extension(content_type: Optional[str]) -> Optional[str]:
    """Extension implied by a declared content type alone."""
    if _content_type_has(content_type, WASM_CONTENT_TYPES):
        return ".wasm"
    if _content_type_has(content_type, JS_CONTENT_TYPES):
        return ".js"
    return None
