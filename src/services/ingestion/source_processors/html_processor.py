"""Source processor for crawled HTML pages.

Turns a raw HTML document into the plain-text layout stored for
``external_url`` content::

    Title: <page title>

    Content:
    <cleaned body text>

    Additional Structured Content:
    <headings, paragraphs, content blocks and list items not already in Content>

    Source URL: <url>

Operator-supplied include/exclude selectors narrow extraction.  Only plain
tag names, ``.class`` and ``#id`` selectors are understood; anything else
is ignored.  When BeautifulSoup finds no body text at all, trafilatura's
main-content extraction is tried before giving up.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import structlog
import trafilatura
from bs4 import BeautifulSoup, Tag

from src.config.domain_knowledge import strip_boilerplate
from src.services.crawling.url_utils import normalize_link

logger = structlog.get_logger(logger_name=__name__)

_NON_CONTENT_TAGS = ("script", "style", "svg", "noscript", "iframe")

_TAG_SELECTOR = re.compile(r"^[a-zA-Z][a-zA-Z0-9]*$")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
_HAS_ALNUM = re.compile(r"[a-z0-9]", re.IGNORECASE)

_MIN_SENTENCE_CHARS = 5
_PARAGRAPH_CHARS = 300

_SEMANTIC_TAGS = ("article", "section", "main", "div")
_CONTENT_CLASSES = (
    "content", "entry-content", "post-content", "page-content", "main-content",
    "article-content", "entry", "post", "page", "article", "blog-post",
    "elementor", "fl-builder", "divi", "fusion", "vc_row", "et_pb_section",
    "container", "wrapper", "inner", "main", "site-content",
)
_NAVIGATION_CLASS = re.compile(r"menu|navigation|sidebar|footer|header|banner|cookie", re.IGNORECASE)
_NAV_LIST_CLASS = re.compile(r"menu|nav", re.IGNORECASE)

_MIN_PARAGRAPH_CHARS = 25
_MIN_BLOCK_CHARS = 100
_MIN_LIST_ITEM_CHARS = 20


def clean_content(text: str) -> str:
    """Normalize extracted page text for embedding.

    Collapses whitespace, removes navigation and social boilerplate,
    drops sentences shorter than five characters or without any letter or
    digit, removes repeated sentences (case-insensitive, first occurrence
    wins) and regroups what remains into paragraphs of roughly 300
    characters separated by blank lines.
    """
    if not text:
        return ""
    text = _WHITESPACE.sub(" ", text).strip()
    text = _WHITESPACE.sub(" ", strip_boilerplate(text)).strip()

    seen: set[str] = set()
    sentences: list[str] = []
    for sentence in _SENTENCE_BOUNDARY.split(text):
        sentence = sentence.strip()
        normalized = sentence.lower()
        if len(normalized) < _MIN_SENTENCE_CHARS or not _HAS_ALNUM.search(normalized):
            continue
        if normalized in seen:
            continue
        seen.add(normalized)
        sentences.append(sentence)

    paragraphs: list[str] = []
    current = ""
    for sentence in sentences:
        if len(current) > _PARAGRAPH_CHARS:
            paragraphs.append(current.strip())
            current = sentence
        else:
            current = f"{current} {sentence}"
    if current.strip():
        paragraphs.append(current.strip())
    return "\n\n".join(paragraphs)


def select_elements(soup: BeautifulSoup, selector: str) -> list[Tag]:
    """Resolve a ``tag``, ``.class`` or ``#id`` selector; other forms match nothing."""
    selector = selector.strip()
    if not selector:
        return []
    if _TAG_SELECTOR.match(selector):
        return list(soup.find_all(selector))
    if selector.startswith(".") and len(selector) > 1:
        return list(soup.find_all(class_=selector[1:]))
    if selector.startswith("#") and len(selector) > 1:
        return list(soup.find_all(id=selector[1:]))
    logger.debug("unsupported_selector_ignored", selector=selector)
    return []


class HTMLProcessor:
    """Extracts embeddable text, the title and outgoing links from HTML pages."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process(
        self,
        html: str,
        url: str,
        include_selectors: Iterable[str] | None = None,
        exclude_selectors: Iterable[str] | None = None,
    ) -> str:
        """Return the formatted page text, or ``""`` when the page has no content.

        Parameters
        ----------
        html:
            Raw HTML of the page.
        url:
            Page URL, appended as the ``Source URL`` line.
        include_selectors:
            When given, only text inside matching elements is used and the
            structured pass is skipped.
        exclude_selectors:
            Elements removed before any extraction.
        """
        include = [s for s in (include_selectors or []) if s and s.strip()]
        exclude = [s for s in (exclude_selectors or []) if s and s.strip()]

        soup = BeautifulSoup(html or "", "html.parser")
        title = self.extract_title(soup)

        for tag in soup.find_all(list(_NON_CONTENT_TAGS)):
            if not tag.decomposed:
                tag.decompose()
        for selector in exclude:
            for element in select_elements(soup, selector):
                if not element.decomposed:
                    element.decompose()

        if include:
            parts = [
                element.get_text(" ", strip=True)
                for selector in include
                for element in select_elements(soup, selector)
            ]
            content = clean_content("\n\n".join(parts))
            structured = ""
        else:
            body = soup.body or soup
            content = clean_content(body.get_text(" "))
            structured = self._structured_content(soup)
            if not content:
                content = self._fallback_content(html)

        if not (content or structured):
            logger.info("html_no_content", url=url)
            return ""

        sections: list[str] = []
        if title:
            sections.append(f"Title: {title}\n\n")
        if content:
            sections.append(f"Content:\n{content}\n\n")
        if structured and structured not in content:
            sections.append(f"Additional Structured Content:\n{structured}\n\n")
        sections.append(f"Source URL: {url}")

        result = "".join(sections)
        logger.debug("html_processed", url=url, chars=len(result), selectors=bool(include))
        return result

    @staticmethod
    def extract_title(document: BeautifulSoup | str) -> str:
        soup = document if isinstance(document, BeautifulSoup) else BeautifulSoup(document or "", "html.parser")
        tag = soup.find("title")
        return tag.get_text(" ", strip=True) if tag else ""

    @staticmethod
    def extract_links(html: str, base_url: str) -> list[str]:
        """Return unique same-domain absolute links in document order."""
        soup = BeautifulSoup(html or "", "html.parser")
        seen: set[str] = set()
        links: list[str] = []
        for anchor in soup.find_all("a", href=True):
            link = normalize_link(anchor["href"], base_url)
            if link and link not in seen:
                seen.add(link)
                links.append(link)
        return links

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _structured_content(self, soup: BeautifulSoup) -> str:
        parts: list[str] = []
        for level in range(1, 7):
            for heading in soup.find_all(f"h{level}"):
                text = heading.get_text(" ", strip=True)
                if text:
                    parts.append(f"{text}\n")

        for paragraph in soup.find_all("p"):
            text = paragraph.get_text(" ", strip=True)
            if len(text) > _MIN_PARAGRAPH_CHARS:
                parts.append(f"{text}\n\n")

        seen: set[int] = set()
        for element in soup.find_all(list(_SEMANTIC_TAGS)):
            classes = " ".join(element.get("class") or [])
            if not classes or id(element) in seen:
                continue
            if not any(c in classes for c in _CONTENT_CLASSES) or _NAVIGATION_CLASS.search(classes):
                continue
            seen.add(id(element))
            text = element.get_text(" ", strip=True)
            if len(text) > _MIN_BLOCK_CHARS:
                parts.append(f"{text}\n\n")

        for list_el in soup.find_all("ul"):
            if _NAV_LIST_CLASS.search(" ".join(list_el.get("class") or [])):
                continue
            items = list_el.find_all("li")
            if not items:
                continue
            for item in items:
                text = item.get_text(" ", strip=True)
                if len(text) > _MIN_LIST_ITEM_CHARS:
                    parts.append(f"• {text}\n")
            parts.append("\n")

        return "".join(parts).strip()

    @staticmethod
    def _fallback_content(html: str) -> str:
        extracted = trafilatura.extract(html, include_comments=False, include_tables=True)
        if not extracted:
            return ""
        logger.debug("trafilatura_fallback_used", chars=len(extracted))
        return clean_content(extracted)
