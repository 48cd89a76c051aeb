"""Sitemap and feed discovery for sites whose pages are poorly linked.

Used by the crawler as a fallback source of candidate URLs when
link-following alone does not fill the page budget.  Sitemaps and feeds
are parsed with BeautifulSoup's XML (lxml) parser.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from urllib.parse import urlparse

import structlog
from bs4 import BeautifulSoup

from src.services.crawling.url_fetcher import UrlFetcher
from src.services.crawling.url_utils import normalize_link, should_process_url

logger = structlog.get_logger(logger_name=__name__)

SITEMAP_PATHS: tuple[str, ...] = ("sitemap.xml", "sitemap_index.xml", "wp-sitemap.xml")
FEED_PATHS: tuple[str, ...] = ("feed", "rss", "feed.xml", "rss.xml", "atom.xml")

_ROBOTS_SITEMAP = re.compile(r"^\s*Sitemap:\s*(\S+)\s*$", re.IGNORECASE | re.MULTILINE)
_MAX_SITEMAP_DEPTH = 3

BeforeRequest = Callable[[], Awaitable[None]]


def parse_sitemap_xml(body: str) -> tuple[list[str], list[str]]:
    """Split a sitemap document into ``(page_urls, child_sitemap_urls)``.

    Documents without a ``urlset`` or ``sitemapindex`` root yield two
    empty lists.
    """
    soup = BeautifulSoup(body, "xml")
    root = soup.find(["urlset", "sitemapindex"])
    if root is None:
        return [], []

    locs = [loc.get_text(strip=True) for loc in root.find_all("loc")]
    locs = [loc for loc in locs if loc]
    if root.name == "sitemapindex":
        return [], locs
    return locs, []


def parse_feed_links(body: str) -> list[str]:
    """Return the item links of an RSS feed or the entry links of an Atom feed.

    Channel- and feed-level links (usually the site root) are skipped.
    """
    soup = BeautifulSoup(body, "xml")
    links: list[str] = []
    for item in soup.find_all("item"):
        link = item.find("link")
        if link is not None and link.get_text(strip=True):
            links.append(link.get_text(strip=True))
    for entry in soup.find_all("entry"):
        for link in entry.find_all("link"):
            if link.get("rel", "alternate") == "alternate" and link.get("href"):
                links.append(link["href"].strip())
                break
    return links


class UrlDiscoverer:
    """Finds candidate page URLs from sitemaps and feeds of the seed's site."""

    def __init__(self, fetcher: UrlFetcher) -> None:
        self._fetcher = fetcher

    async def discover(
        self,
        seed_url: str,
        include_patterns: list[str] | None = None,
        exclude_patterns: list[str] | None = None,
        before_request: BeforeRequest | None = None,
    ) -> list[str]:
        """Return same-domain URLs from sitemaps, then feeds, in discovery order.

        *before_request* is awaited ahead of every HTTP request; the
        crawler passes its rate limiter here.
        """
        candidates = await self.sitemap_urls(seed_url, before_request)
        candidates += await self.feed_urls(seed_url, before_request)

        seen: set[str] = set()
        urls: list[str] = []
        for candidate in candidates:
            link = normalize_link(candidate, seed_url)
            if link is None or link in seen:
                continue
            if not should_process_url(link, include_patterns, exclude_patterns):
                continue
            seen.add(link)
            urls.append(link)

        logger.info("urls_discovered", seed=seed_url, count=len(urls))
        return urls

    async def sitemap_urls(self, seed_url: str, before_request: BeforeRequest | None = None) -> list[str]:
        root = _site_root(seed_url)
        sitemaps = [root + path for path in SITEMAP_PATHS]

        robots = await self._get(root + "robots.txt", before_request)
        if robots:
            sitemaps += _ROBOTS_SITEMAP.findall(robots)

        urls: list[str] = []
        visited: set[str] = set()
        for sitemap in sitemaps:
            urls += await self._walk_sitemap(sitemap, visited, 0, before_request)
        return urls

    async def feed_urls(self, seed_url: str, before_request: BeforeRequest | None = None) -> list[str]:
        root = _site_root(seed_url)
        urls: list[str] = []
        for path in FEED_PATHS:
            body = await self._get(root + path, before_request)
            if body and ("<rss" in body or "<feed" in body):
                urls += parse_feed_links(body)
        return urls

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _get(self, url: str, before_request: BeforeRequest | None) -> str | None:
        if before_request is not None:
            await before_request()
        return await self._fetcher.fetch_text(url)

    async def _walk_sitemap(
        self,
        sitemap_url: str,
        visited: set[str],
        depth: int,
        before_request: BeforeRequest | None,
    ) -> list[str]:
        if sitemap_url in visited or depth > _MAX_SITEMAP_DEPTH:
            return []
        visited.add(sitemap_url)

        body = await self._get(sitemap_url, before_request)
        if not body:
            return []
        pages, children = parse_sitemap_xml(body)
        for child in children:
            pages += await self._walk_sitemap(child, visited, depth + 1, before_request)
        if pages:
            logger.debug("sitemap_parsed", sitemap=sitemap_url, urls=len(pages))
        return pages


def _site_root(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme or 'https'}://{parsed.netloc}/"
