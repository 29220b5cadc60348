"""Capture engine: classify network responses and persist JavaScript and WASM."""

from script_scout.capture.classifier import classify, is_wasm_magic
from script_scout.capture.crawler import CaptureCrawler, probe_responses
from script_scout.capture.inline_wasm import extract_inline_wasm, save_inline_wasm
from script_scout.capture.interceptor import ResponseInterceptor
from script_scout.capture.models import (
    Classification,
    CrawlSession,
    CrawlSummary,
    NavigationError,
    NavigationErrorKind,
    ResourceKind,
    ResponseEvent,
)
from script_scout.capture.navigator import NavigationController, classify_navigation_error
from script_scout.capture.paths import inline_path, resolve_path
from script_scout.capture.router import RequestRouter

__all__ = [
    "CaptureCrawler",
    "Classification",
    "CrawlSession",
    "CrawlSummary",
    "NavigationController",
    "NavigationError",
    "NavigationErrorKind",
    "RequestRouter",
    "ResourceKind",
    "ResponseEvent",
    "ResponseInterceptor",
    "classify",
    "classify_navigation_error",
    "extract_inline_wasm",
    "inline_path",
    "is_wasm_magic",
    "probe_responses",
    "resolve_path",
    "save_inline_wasm",
]
