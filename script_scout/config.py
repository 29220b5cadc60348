# === FILE: script_scout/config.py ===
"""
Loading and validation of the ScriptScout crawler configuration.
Pydantic describes the schema and validates the data; YAML and JSON files
are accepted, and CLI arguments are applied on top as overrides.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    field_validator,
)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS: Dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate, br",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

DEFAULT_LAUNCH_ARGS: List[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]


class ViewportConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    width: int = Field(1920, gt=0)
    height: int = Field(1080, gt=0)


class CrawlerConfig(BaseModel):
    """Configuration for one capture run."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    start_url: HttpUrl = Field(..., description="Page the crawl starts from.")
    output_dir: Path = Field(Path("downloads"), description="Root of the output tree.")
    max_pages: int = Field(1, ge=1, description="Hard limit on visited pages.")
    headless: bool = Field(True, description="Run Chromium without a window.")

    navigation_timeout: float = Field(60.0, gt=0, description="Timeout of one goto() attempt (seconds).")
    navigation_retries: int = Field(3, ge=1, description="Navigation attempts per page.")
    retry_backoff: float = Field(2.0, ge=0, description="Backoff step; attempt N waits N * step.")
    settle_time: float = Field(5.0, ge=0, description="Wait after DOMContentLoaded (seconds).")
    wasm_settle_time: float = Field(2.0, ge=0, description="Extra wait for late WASM fetches (seconds).")
    pending_timeout: float = Field(10.0, gt=0, description="Budget of every response body read (seconds).")
    join_timeout: float = Field(30.0, gt=0, description="Longest wait for the response queue to empty after a page.")

    interceptor_workers: int = Field(4, ge=1, description="Consumer tasks of the response queue.")
    exclusive_saves: bool = Field(False, description="Claim URLs before the first await (no duplicate writes).")
    probe_resource_types: List[str] = Field(
        default_factory=lambda: ["fetch", "xhr"],
        description="Resource types whose bodies are checked for WASM magic even when unclassified.",
    )
    router_url_tokens: List[str] = Field(
        default_factory=lambda: ["compile", "wasi", "target=arduino"],
        description="Request URLs containing every token are captured by the router; empty disables it.",
    )

    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1)
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    extra_headers: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_HEADERS))
    launch_args: List[str] = Field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))
    bypass_csp: bool = True

    @field_validator("output_dir", mode="before")
    def _expand_output_dir(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @field_validator("probe_resource_types", mode="after")
    def _lower_resource_types(cls, v: List[str]) -> List[str]:
        return [t.strip().lower() for t in v if t.strip()]


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def read_config_file(path: Union[str, Path]) -> dict[str, Any]:
    """Read a YAML or JSON mapping from *path* without validating it."""
    path_obj = Path(path).expanduser().resolve()
    if not path_obj.is_file():
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path_obj)
    if suffix == ".json":
        return _read_json(path_obj)
    raise ValueError(f"Unsupported config format: {suffix}")


def load_config(path: Union[str, Path, None] = None, **overrides: Any) -> CrawlerConfig:
    """
    Build a validated CrawlerConfig from an optional YAML/JSON file.

    Keyword overrides whose value is not None replace the file's values, so
    the CLI can pass its arguments through unconditionally.
    """
    data: dict[str, Any] = read_config_file(path) if path is not None else {}
    data.update({k: v for k, v in overrides.items() if v is not None})
    return CrawlerConfig(**data)


__all__ = ["CrawlerConfig", "ViewportConfig", "load_config", "read_config_file"]
