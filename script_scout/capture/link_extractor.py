# script_scout/capture/link_extractor.py
"""
Same-origin link harvesting from a rendered page.
"""
from __future__ import annotations

from typing import Iterable, List
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

from script_scout.utils import remove_duplicates, same_origin, strip_fragment


def extract_links(html: str, page_url: str) -> List[str]:
    """
    Extract absolute HTTP(S) links from the anchors of *html*.

    Relative hrefs are resolved against *page_url*; fragments are dropped;
    mailto:, javascript: and similar schemes are ignored.
    """
    soup = BeautifulSoup(html, "html.parser")
    links: List[str] = []
    for tag in soup.find_all("a", href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        raw = href_val.strip()
        if not raw or raw.startswith(("mailto:", "javascript:", "tel:", "data:")):
            continue
        absolute = strip_fragment(urljoin(page_url, raw))
        if absolute.startswith(("http://", "https://")):
            links.append(absolute)
    return remove_duplicates(links)


def filter_same_origin(links: Iterable[str], origin_url: str) -> List[str]:
    """Keep only links whose origin equals the origin of *origin_url*."""
    return [link for link in links if same_origin(link, origin_url)]
