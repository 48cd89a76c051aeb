"""Text normalization helpers shared by the source processors.

1. **HTML stripping** -- CMS fields (descriptions, post bodies, excerpts)
   arrive as HTML; embeddings should see only the words.
2. **Word trimming** -- short descriptions are cut to a fixed word count.
3. **Whitespace collapsing** -- runs of blank space become one space.
"""

import re

from bs4 import BeautifulSoup

_WHITESPACE = re.compile(r"[ \t\r\f\v]+")
_BLANK_LINES = re.compile(r"\n\s*\n\s*\n+")


def strip_html(text: str | None) -> str:
    """Return the visible text of an HTML fragment.

    Newlines in the source are kept, tags become spaces, and
    ``<script>`` and ``<style>`` contents are dropped.

    Args:
        text: HTML (or plain text) to strip.

    Returns:
        Plain text with horizontal whitespace collapsed, or ``""``.
    """
    if not text:
        return ""
    if "<" not in text:
        return collapse_whitespace(text)
    soup = BeautifulSoup(text, "html.parser")
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    return collapse_whitespace(soup.get_text(" "))


def collapse_whitespace(text: str) -> str:
    """Collapse spaces/tabs, trim each line and keep at most one blank line."""
    lines = [_WHITESPACE.sub(" ", line).strip() for line in text.splitlines()]
    joined = "\n".join(lines)
    return _BLANK_LINES.sub("\n\n", joined).strip()


def trim_words(text: str, limit: int, more: str = "…") -> str:
    """Keep the first *limit* words of *text*, appending *more* when cut."""
    words = text.split()
    if len(words) <= limit:
        return " ".join(words)
    return " ".join(words[:limit]) + more
