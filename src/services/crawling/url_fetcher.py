"""HTTP page fetching with bot-protection detection.

:class:`UrlFetcher` wraps an ``httpx.AsyncClient`` (injected or owned) and
returns a :class:`FetchResult` for HTML pages.  Challenge pages and
blocked responses raise :class:`~src.utils.errors.BotProtectionError`;
other non-200 responses and transport failures raise
:class:`~src.utils.errors.CrawlError`.  Non-HTML responses are not errors,
they simply carry no HTML.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import urlparse

import httpx
import structlog

from src.config.domain_knowledge import FETCH_BLOCK_MARKERS, PROTECTION_HEADER_PATTERN, find_marker
from src.utils.errors import BotProtectionError, CrawlError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 15.0
_DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; StorefrontRetrievalBot/1.0)"

_SUSPICIOUS_HEADERS = ("x-robots-tag", "cf-ray", "server", "x-firewall-protection")
_SUSPICIOUS_STATUS_CODES = frozenset({403, 429, 503})
# Body markers only count on error responses and pages shorter than this.
_CHALLENGE_BODY_LIMIT = 5000
_HTML_CONTENT_TYPE = re.compile(r"text/html|application/xhtml\+xml", re.IGNORECASE)


@dataclass(frozen=True)
class FetchResult:
    """A fetched page; ``html`` is ``None`` for non-HTML or empty bodies."""

    url: str
    status_code: int
    html: str | None
    headers: dict[str, str] = field(default_factory=dict)


def detect_bot_protection(body: str, headers: httpx.Headers | dict[str, str], status_code: int) -> str | None:
    """Return a short reason when a response looks like a bot challenge, else ``None``.

    Checks, in order: protection-related values in well-known headers,
    challenge phrases in the body of an error response or a challenge-sized
    page, and 403/429/503 status codes.
    """
    for name in _SUSPICIOUS_HEADERS:
        value = headers.get(name)
        # A plain CDN ``server: cloudflare`` on a successful page is not a challenge.
        if value and status_code != 200 and PROTECTION_HEADER_PATTERN.search(value):
            return f"header {name}: {value}"

    body = body or ""
    if status_code != 200 or len(body) < _CHALLENGE_BODY_LIMIT:
        marker = find_marker(body, FETCH_BLOCK_MARKERS)
        if marker is not None:
            return f"body marker '{marker}'"

    if status_code in _SUSPICIOUS_STATUS_CODES:
        return f"status {status_code}"
    return None


class UrlFetcher:
    """Fetches pages for the crawler.

    Parameters
    ----------
    http_client:
        Shared ``httpx.AsyncClient``; one is created (and closed by
        :meth:`close`) when omitted.
    timeout:
        Per-request timeout in seconds for an owned client.
    user_agent:
        ``User-Agent`` header for an owned client.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
        user_agent: str = _DEFAULT_USER_AGENT,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={
                "User-Agent": user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.5",
            },
            follow_redirects=True,
        )

    async def fetch(self, url: str) -> FetchResult:
        """GET *url* and classify the response.

        Raises
        ------
        BotProtectionError
            If the response looks like a challenge page.
        CrawlError
            On transport errors, timeouts and non-200 responses.
        """
        response = await self._get(url)
        body = response.text

        reason = detect_bot_protection(body, response.headers, response.status_code)
        if reason is not None:
            logger.warning("bot_protection_detected", url=url, reason=reason)
            raise BotProtectionError(provider_name=self.get_provider_name())

        if response.status_code != 200:
            raise CrawlError(
                message=f"HTTP error: {response.status_code} for {url}",
                provider_name=self.get_provider_name(),
            )

        content_type = response.headers.get("content-type", "")
        html: str | None = body if body and _HTML_CONTENT_TYPE.search(content_type) else None
        if html is None:
            logger.debug("non_html_response", url=url, content_type=content_type)

        return FetchResult(
            url=str(response.url),
            status_code=response.status_code,
            html=html,
            headers=dict(response.headers),
        )

    async def fetch_raw(self, url: str) -> httpx.Response:
        """GET *url* and return the response whatever its status.

        Raises
        ------
        CrawlError
            On transport errors and timeouts.
        """
        return await self._get(url)

    async def fetch_text(self, url: str) -> str | None:
        """GET *url* and return the body of a 200 response, else ``None``.

        Used for sitemaps, feeds and ``robots.txt``, where failure just
        means "nothing discovered".
        """
        try:
            response = await self._get(url)
        except CrawlError:
            return None
        if response.status_code != 200 or not response.text:
            return None
        return response.text

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def get_provider_name(self) -> str:
        return "url_fetcher"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _get(self, url: str) -> httpx.Response:
        parsed = urlparse(url)
        headers = {"Referer": f"{parsed.scheme}://{parsed.netloc}"} if parsed.netloc else None
        try:
            return await self._client.get(url, headers=headers)
        except httpx.TimeoutException as exc:
            raise CrawlError(
                message=f"Timeout fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise CrawlError(
                message=f"Failed to fetch URL {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
