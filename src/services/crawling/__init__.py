"""Web crawling for external URL ingestion.

- **url_utils**      -- link resolution, job URL normalization, path patterns
- **UrlFetcher**     -- httpx page fetching with bot-protection detection
- **UrlDiscoverer**  -- sitemap and RSS/Atom feed discovery
- **WebCrawler**     -- seed probe and breadth-first same-domain crawl
"""

from src.services.crawling.url_discovery import UrlDiscoverer
from src.services.crawling.url_fetcher import FetchResult, UrlFetcher, detect_bot_protection
from src.services.crawling.web_crawler import WebCrawler

__all__ = [
    "FetchResult",
    "UrlDiscoverer",
    "UrlFetcher",
    "WebCrawler",
    "detect_bot_protection",
]
