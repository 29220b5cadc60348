# File: tests/conftest.py
from pathlib import Path
from typing import Callable

import pytest

from script_scout.capture.models import CrawlSession
from script_scout.config import CrawlerConfig
from script_scout.logger import init_logging

START_URL = "https://a.com/"


def pytest_configure(config):
    """Register custom markers so that `--strict-markers` does not fail."""
    config.addinivalue_line(
        "markers",
        "browser: drives a real Chromium (set SCRIPT_SCOUT_BROWSER_TESTS=1 to run)",
    )


@pytest.fixture(autouse=True)
def fresh_logging():
    """CliRunner swaps sys.stdout; rebind the project logger for every test."""
    init_logging(level="DEBUG")
    yield
    init_logging()


@pytest.fixture()
def output_dir(tmp_path) -> Path:
    return tmp_path / "out"


@pytest.fixture()
def make_config(output_dir) -> Callable[..., CrawlerConfig]:
    """
    Factory for a CrawlerConfig with every wait shortened so tests run instantly.
    """

    def _make(**overrides) -> CrawlerConfig:
        values = dict(
            start_url=START_URL,
            output_dir=output_dir,
            settle_time=0,
            wasm_settle_time=0,
            retry_backoff=0,
            pending_timeout=0.5,
            interceptor_workers=2,
        )
        values.update(overrides)
        return CrawlerConfig(**values)

    return _make


@pytest.fixture()
def config(make_config) -> CrawlerConfig:
    return make_config()


@pytest.fixture()
def session(config) -> CrawlSession:
    """
    Fresh session for the main host ``a.com``.
    """
    return CrawlSession.start(str(config.start_url), config.output_dir)
