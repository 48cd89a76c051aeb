"""Unit tests for UrlFetcher and bot-protection detection."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from src.services.crawling.url_fetcher import UrlFetcher, detect_bot_protection
from src.utils.errors import BotProtectionError, CrawlError

_PAGE = "<html><body><p>Garden hose guide.</p></body></html>"


def _fetcher(handler: Callable[[httpx.Request], httpx.Response]) -> UrlFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return UrlFetcher(http_client=client)


class TestDetectBotProtection:
    def test_clean_page(self) -> None:
        assert detect_bot_protection(_PAGE, {"server": "nginx"}, 200) is None

    def test_cdn_header_on_success_is_ignored(self) -> None:
        assert detect_bot_protection(_PAGE, {"server": "cloudflare"}, 200) is None

    def test_protection_header_on_error(self) -> None:
        reason = detect_bot_protection("", {"server": "cloudflare"}, 403)
        assert reason is not None
        assert reason.startswith("header server")

    def test_marker_in_short_page(self) -> None:
        body = "<html>Checking your browser before accessing</html>"
        assert detect_bot_protection(body, {}, 200) == "body marker 'checking your browser'"

    def test_marker_in_long_page_is_ignored(self) -> None:
        body = "<p>" + "mug " * 2000 + "</p><footer>captcha-free checkout</footer>"
        assert detect_bot_protection(body, {}, 200) is None

    def test_suspicious_status(self) -> None:
        assert detect_bot_protection("", {}, 429) == "status 429"

    def test_plain_not_found(self) -> None:
        assert detect_bot_protection("", {}, 404) is None


class TestUrlFetcher:
    @pytest.mark.asyncio
    async def test_fetch_html(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=_PAGE, headers={"content-type": "text/html; charset=utf-8"})

        result = await _fetcher(handler).fetch("https://ex.com/guide")

        assert result.status_code == 200
        assert result.html == _PAGE
        assert result.url == "https://ex.com/guide"
        assert seen[0].headers["Referer"] == "https://ex.com"

    @pytest.mark.asyncio
    async def test_non_html_has_no_html(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"%PDF-1.4", headers={"content-type": "application/pdf"})

        result = await _fetcher(handler).fetch("https://ex.com/file.pdf")
        assert result.html is None

    @pytest.mark.asyncio
    async def test_challenge_raises_bot_protection(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, text="Attention required | Cloudflare", headers={"content-type": "text/html"})

        with pytest.raises(BotProtectionError):
            await _fetcher(handler).fetch("https://ex.com")

    @pytest.mark.asyncio
    async def test_plain_server_error_is_not_bot_protection(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="Internal server error")

        with pytest.raises(CrawlError) as excinfo:
            await _fetcher(handler).fetch("https://ex.com")
        assert not isinstance(excinfo.value, BotProtectionError)
        assert "500" in excinfo.value.message

    @pytest.mark.asyncio
    async def test_not_found_raises_crawl_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text="missing")

        with pytest.raises(CrawlError, match="404"):
            await _fetcher(handler).fetch("https://ex.com/missing")

    @pytest.mark.asyncio
    async def test_transport_error_raises_crawl_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(CrawlError):
            await _fetcher(handler).fetch("https://ex.com")

    @pytest.mark.asyncio
    async def test_timeout_raises_crawl_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(CrawlError, match="Timeout"):
            await _fetcher(handler).fetch("https://ex.com")

    @pytest.mark.asyncio
    async def test_fetch_raw_returns_any_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, text="denied")

        response = await _fetcher(handler).fetch_raw("https://ex.com")
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_fetch_text(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/robots.txt":
                return httpx.Response(200, text="Sitemap: https://ex.com/sitemap.xml")
            if request.url.path == "/down":
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(404)

        fetcher = _fetcher(handler)
        assert await fetcher.fetch_text("https://ex.com/robots.txt") == "Sitemap: https://ex.com/sitemap.xml"
        assert await fetcher.fetch_text("https://ex.com/missing") is None
        assert await fetcher.fetch_text("https://ex.com/down") is None

    @pytest.mark.asyncio
    async def test_injected_client_is_not_closed(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        fetcher = UrlFetcher(http_client=client)
        await fetcher.close()
        assert client.is_closed is False
        await client.aclose()
