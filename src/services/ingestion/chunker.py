"""Bounded-size text chunking along word or sentence boundaries.

Two strategies, both greedy and stateless per call:

1. **Word packing** (:meth:`ContentChunker.split_words`) -- for structured
   store content (products, posts, settings, PDFs).  Words are appended to
   the current chunk until the next one would push it past ``max_chars``.

2. **Sentence packing** (:meth:`ContentChunker.split_sentences`) -- for
   crawled and extracted prose.  The text is first reduced to letters,
   digits and light punctuation, then whole sentences are packed the same
   way, so every chunk ends on a sentence boundary.

A single word or sentence longer than ``max_chars`` becomes its own
oversized chunk; tokens are never cut in half.  Any chunk this module
emits is returned unchanged when chunked again with the same limit.
"""

from __future__ import annotations

import re

import structlog

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MAX_CHARS = 8000

_HORIZONTAL_WS = re.compile(r"[ \t\r\f\v]+")
_SPACED_NEWLINE = re.compile(r" *\n *")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")
_ANY_WS = re.compile(r"\s+")
# Letters, digits, whitespace and light punctuation survive prose cleaning.
# ':' '/' and currency/percent signs are kept so URLs and prices stay legible.
_PROSE_DISALLOWED = re.compile(r"[^\w\s\-.,!?():/'$%&@]|_")
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


class ContentChunker:
    """Splits text into chunks of at most ``max_chars`` characters.

    Parameters
    ----------
    max_chars:
        Default upper bound per chunk (default 8000).  Each split method
        also accepts a per-call override.
    """

    def __init__(self, max_chars: int = DEFAULT_MAX_CHARS) -> None:
        if max_chars <= 0:
            raise ValueError(f"max_chars must be positive, got {max_chars}")
        self._max_chars = max_chars

    @property
    def max_chars(self) -> int:
        return self._max_chars

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split_words(self, text: str, max_chars: int | None = None) -> list[str]:
        """Pack words greedily into chunks.

        Paragraph breaks are kept (runs of three or more newlines collapse
        to two); runs of spaces and tabs collapse to a single space.

        Returns
        -------
        list[str]
            Ordered chunks; empty input yields an empty list.
        """
        limit = max_chars or self._max_chars
        normalized = self._normalize_whitespace(text)
        if not normalized:
            return []
        if len(normalized) <= limit:
            return [normalized]

        chunks = self._pack(normalized.split(" "), limit)
        logger.debug("split_words", chunks=len(chunks), chars=len(normalized), limit=limit)
        return chunks

    def split_sentences(self, text: str, max_chars: int | None = None) -> list[str]:
        """Clean prose and pack whole sentences into chunks."""
        limit = max_chars or self._max_chars
        cleaned = self.clean_prose(text)
        if not cleaned:
            return []
        if len(cleaned) <= limit:
            return [cleaned]

        sentences = [s for s in _SENTENCE_BOUNDARY.split(cleaned) if s]
        chunks = self._pack(sentences, limit)
        logger.debug("split_sentences", chunks=len(chunks), sentences=len(sentences), limit=limit)
        return chunks

    @staticmethod
    def clean_prose(text: str) -> str:
        """Collapse whitespace and drop characters outside the prose set."""
        if not text:
            return ""
        collapsed = _ANY_WS.sub(" ", text)
        return _ANY_WS.sub(" ", _PROSE_DISALLOWED.sub("", collapsed)).strip()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize_whitespace(text: str) -> str:
        if not text:
            return ""
        text = _HORIZONTAL_WS.sub(" ", text)
        text = _SPACED_NEWLINE.sub("\n", text)
        text = _EXTRA_NEWLINES.sub("\n\n", text)
        return text.strip()

    @staticmethod
    def _pack(pieces: list[str], limit: int) -> list[str]:
        """Greedy packing: flush when ``current + " " + piece`` would exceed *limit*."""
        chunks: list[str] = []
        current = ""
        for piece in pieces:
            if not piece:
                continue
            if not current:
                current = piece
            elif len(current) + 1 + len(piece) > limit:
                chunks.append(current)
                current = piece
            else:
                current = f"{current} {piece}"
        if current:
            chunks.append(current)
        return chunks
