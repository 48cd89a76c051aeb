"""URL normalization and include/exclude pattern matching for the crawler.

Three normalizations live here and must not be confused:

* :func:`normalize_link` turns an ``href`` found on a page into an absolute
  same-domain URL (or rejects it).
* :func:`normalize_url_for_job` is the canonical form of a *submitted* URL;
  job ids and bot-protection flags are keyed on its md5 via :func:`url_key`.
* :func:`wildcard_to_regex` compiles operator-entered path patterns such as
  ``/blog/*``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import urljoin, urlparse, urlunparse

from src.utils.hashing import md5_hex

_SKIPPED_SCHEMES = re.compile(r"^(#|javascript:|mailto:|tel:)", re.IGNORECASE)


def normalize_link(href: str, base_url: str, domain: str | None = None) -> str | None:
    """Resolve *href* against *base_url*; return ``None`` for links not worth following.

    Anchors, ``javascript:``, ``mailto:`` and ``tel:`` links are skipped,
    fragments are stripped, and links that resolve to a host other than
    *domain* (default: the host of *base_url*) are dropped.
    """
    href = (href or "").strip()
    if not href or _SKIPPED_SCHEMES.match(href):
        return None
    href = href.split("#", 1)[0]
    if not href:
        return None

    domain = (domain or urlparse(base_url).hostname or "").lower()
    absolute = urljoin(base_url, href)
    parsed = urlparse(absolute)
    if parsed.scheme not in ("http", "https"):
        return None
    if (parsed.hostname or "").lower() != domain:
        return None
    return urlunparse(parsed._replace(fragment=""))


def normalize_url_for_job(url: str) -> str:
    """Canonical form of a submitted URL.

    Lower-cases scheme and host, defaults the scheme to ``https``, strips
    a trailing slash from any path except the root, and keeps the query.
    """
    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"
    parsed = urlparse(url)
    scheme = (parsed.scheme or "https").lower()
    netloc = parsed.netloc.lower()
    path = parsed.path or ""
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    normalized = f"{scheme}://{netloc}{path}"
    if parsed.query:
        normalized += f"?{parsed.query}"
    return normalized


def url_key(url: str) -> str:
    """md5 of the normalized URL: the job id and bot-flag key of *url*."""
    return md5_hex(normalize_url_for_job(url))


def wildcard_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a ``*`` wildcard pattern into an anchored, case-insensitive regex."""
    escaped = re.escape(pattern).replace(r"\*", ".*")
    return re.compile(f"^{escaped}$", re.IGNORECASE)


def _matches_any(path: str, patterns: Iterable[str]) -> bool:
    return any(wildcard_to_regex(p).match(path) for p in patterns if p)


def should_process_url(
    url: str,
    include_patterns: Iterable[str] | None = None,
    exclude_patterns: Iterable[str] | None = None,
) -> bool:
    """Apply path patterns to *url*: exclusions win, empty inclusions allow all."""
    path = urlparse(url).path or "/"
    if exclude_patterns and _matches_any(path, exclude_patterns):
        return False
    include = [p for p in (include_patterns or []) if p]
    if not include:
        return True
    return _matches_any(path, include)
