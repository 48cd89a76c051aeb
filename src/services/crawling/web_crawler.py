"""Same-domain breadth-first crawler for external URL ingestion.

# ─── DESIGN ────────────────────────────────────────────────────────────
#
# A crawl starts with the seed ("main") page.  If the main page yields no
# content the crawl fails immediately; otherwise, when follow_links is on,
# links are followed breadth-first:
#
#   - same domain only, deduplicated, filtered by include/exclude patterns
#   - depth-limited (max_depth) and page-limited (max_pages, main included)
#   - at least rate_limit_seconds between consecutive requests, sitemap
#     and feed requests included
#   - sitemaps and feeds fill the queue once link-following runs dry
#   - wall-clock budget (max_job_seconds) stops the crawl early
#
# Per-page failures are warnings, never errors.  The crawler does not
# persist anything: the job manager stores the returned CrawlResult.
#
# probe() is the one-shot bot-protection check the job manager runs on the
# seed before a crawl.  A hit flags the URL permanently.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from src.config.domain_knowledge import CHALLENGE_MARKERS, find_marker
from src.models.jobs import CrawledPage, CrawlOptions, CrawlResult, ErrorType
from src.services.crawling.url_discovery import UrlDiscoverer
from src.services.crawling.url_fetcher import UrlFetcher
from src.services.crawling.url_utils import should_process_url
from src.utils.errors import BotProtectionError, CrawlError

if TYPE_CHECKING:
    from src.services.ingestion.source_processors.html_processor import HTMLProcessor

logger = structlog.get_logger(logger_name=__name__)

NO_CONTENT_MESSAGE = (
    "The provided URL content cannot be extracted or crawled due to bot protection or dynamic content."
)
SUBPAGES_BLOCKED_MESSAGE = (
    "The main page has been successfully embedded, but we were unable to process subordinate URLs "
    "due to bot protection, caching, or JavaScript rendering requirements. You may need to manually "
    "submit important subordinate URLs for embedding."
)
LINKS_DISABLED_MESSAGE = (
    "Only the main page was embedded as subordinate URL crawling was disabled (follow_links=false)."
)


class WebCrawler:
    """Crawls a seed URL and its same-domain pages.

    Parameters
    ----------
    fetcher:
        HTTP fetcher with bot-protection detection.
    html_processor:
        Turns fetched HTML into embeddable text.
    discoverer:
        Sitemap/feed discovery used when link-following runs dry; ``None``
        disables the fallback.
    rate_limit_seconds:
        Minimum delay between two requests.
    clock:
        Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        fetcher: UrlFetcher,
        html_processor: HTMLProcessor | None = None,
        discoverer: UrlDiscoverer | None = None,
        rate_limit_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        # Deferred: html_processor imports src.services.crawling (circular).
        from src.services.ingestion.source_processors.html_processor import HTMLProcessor

        self._fetcher = fetcher
        self._html = html_processor or HTMLProcessor()
        self._discoverer = discoverer
        self._rate_limit = rate_limit_seconds
        self._clock = clock
        self._last_request: float | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def probe(self, url: str) -> str | None:
        """Return the challenge marker found on the seed page, or ``None``.

        Raises
        ------
        CrawlError
            If the seed cannot be fetched at all.
        """
        await self._throttle()
        response = await self._fetcher.fetch_raw(url)
        marker = find_marker(response.text or "", CHALLENGE_MARKERS)
        if marker is not None:
            logger.warning("seed_bot_protected", url=url, marker=marker)
        return marker

    async def crawl(self, url: str, options: CrawlOptions | None = None) -> CrawlResult:
        """Crawl *url* within the limits of *options*.

        Returns
        -------
        CrawlResult
            ``success`` is ``False`` only when the main page produced no
            content; subordinate failures are listed in ``warnings``.
        """
        options = options or CrawlOptions()
        started = self._clock()

        try:
            main = await self._fetch_page(url, options, depth=0)
        except BotProtectionError as exc:
            logger.warning("main_page_blocked", url=url, error=str(exc))
            return CrawlResult(
                success=False,
                main_url=url,
                warnings=[f"Bot protection detected on main URL: {url}"],
                user_message=NO_CONTENT_MESSAGE,
                error_type=ErrorType.BOT_PROTECTION,
            )
        except CrawlError as exc:
            logger.warning("main_page_fetch_failed", url=url, error=str(exc))
            return CrawlResult(
                success=False,
                main_url=url,
                warnings=[f"Failed to fetch content from main URL: {url} - {exc.message}"],
                user_message=f"Failed to fetch the URL: {exc.message}",
                error_type=ErrorType.FETCH_FAILED,
            )

        if main is None:
            logger.info("main_page_empty", url=url)
            return CrawlResult(
                success=False,
                main_url=url,
                user_message=NO_CONTENT_MESSAGE,
                error_type=ErrorType.NO_CONTENT,
            )

        if not options.follow_links:
            return CrawlResult(success=True, main_url=url, pages=[main], user_message=LINKS_DISABLED_MESSAGE)

        pages, warnings, attempted = await self._crawl_subpages(main, options, started)
        result = CrawlResult(
            success=True,
            main_url=url,
            pages=[main, *pages],
            warnings=warnings,
            user_message=_summary_message(len(pages), attempted, warnings),
        )
        logger.info(
            "crawl_complete",
            seed=url,
            pages=len(result.pages),
            attempted=attempted,
            warnings=len(warnings),
            elapsed=round(self._clock() - started, 2),
        )
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _crawl_subpages(
        self,
        main: CrawledPage,
        options: CrawlOptions,
        started: float,
    ) -> tuple[list[CrawledPage], list[str], int]:
        pages: list[CrawledPage] = []
        warnings: list[str] = []
        visited: set[str] = {main.url}
        queue: deque[tuple[str, int]] = deque()
        discovery_done = self._discoverer is None or options.max_depth == 0
        attempted = 0

        if options.max_depth > 0:
            self._enqueue(queue, main.links, 1, visited, options)

        while 1 + len(pages) < options.max_pages:
            if not queue:
                if discovery_done:
                    break
                discovery_done = True
                discovered = await self._discoverer.discover(
                    main.url,
                    options.include_patterns,
                    options.exclude_patterns,
                    before_request=self._throttle,
                )
                # Discovered pages are crawled but their links are not followed.
                self._enqueue(queue, discovered, options.max_depth, visited, options)
                continue

            if self._clock() - started > options.max_job_seconds:
                warnings.append(
                    f"Crawl time limit of {options.max_job_seconds}s reached; {len(queue)} URLs were not processed."
                )
                logger.warning("crawl_time_budget_exhausted", seed=main.url, skipped=len(queue))
                break

            link, depth = queue.popleft()
            if link in visited:
                continue
            visited.add(link)
            attempted += 1

            try:
                page = await self._fetch_page(link, options, depth)
            except CrawlError as exc:
                warnings.append(f"Error processing subordinate URL: {link} - {exc.message}")
                continue
            if page is None:
                warnings.append(f"No content after processing subordinate URL: {link}")
                continue

            pages.append(page)
            if depth < options.max_depth:
                self._enqueue(queue, page.links, depth + 1, visited, options)

        return pages, warnings, attempted

    @staticmethod
    def _enqueue(
        queue: deque[tuple[str, int]],
        links: list[str],
        depth: int,
        visited: set[str],
        options: CrawlOptions,
    ) -> None:
        queued = {link for link, _ in queue}
        for link in links:
            if link in visited or link in queued:
                continue
            if not should_process_url(link, options.include_patterns, options.exclude_patterns):
                continue
            queue.append((link, depth))
            queued.add(link)

    async def _fetch_page(self, url: str, options: CrawlOptions, depth: int) -> CrawledPage | None:
        """Fetch and extract one page; ``None`` when it has no usable content."""
        await self._throttle()
        fetched = await self._fetcher.fetch(url)
        if fetched.html is None:
            return None

        content = self._html.process(
            fetched.html, url, options.include_selectors, options.exclude_selectors
        )
        if not content:
            return None

        return CrawledPage(
            url=url,
            title=self._html.extract_title(fetched.html),
            content=content,
            links=self._html.extract_links(fetched.html, url),
            depth=depth,
        )

    async def _throttle(self) -> None:
        now = self._clock()
        if self._last_request is not None and self._rate_limit > 0:
            wait = self._rate_limit - (now - self._last_request)
            if wait > 0:
                await asyncio.sleep(wait)
        self._last_request = self._clock()


def _summary_message(succeeded: int, attempted: int, warnings: list[str]) -> str:
    if attempted and not succeeded:
        return SUBPAGES_BLOCKED_MESSAGE
    message = "The main page has been successfully processed."
    if succeeded:
        message += f" Successfully processed {succeeded} subordinate URLs."
    if warnings:
        message += " Some warnings were encountered during processing."
    return message
