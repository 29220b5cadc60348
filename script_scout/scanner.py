# === FILE: script_scout/scanner.py ===
"""
Thin wrapper that runs one capture session.
"""
from script_scout.capture.crawler import CaptureCrawler
from script_scout.capture.models import CrawlSummary
from script_scout.config import CrawlerConfig


async def start_scan(cfg: CrawlerConfig) -> CrawlSummary:
    """
    Launch the browser, crawl from ``cfg.start_url`` and return the summary.

    Parameters
    ----------
    cfg : CrawlerConfig
        Crawl configuration.

    Returns
    -------
    CrawlSummary
        Visited pages, written files and navigation failures.
    """
    async with CaptureCrawler(cfg) as crawler:
        summary = await crawler.crawl()
    return summary

__all__ = ["start_scan"]
