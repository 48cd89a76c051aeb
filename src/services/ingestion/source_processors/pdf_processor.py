"""Source processor for uploaded PDF documents.

Reads PDF files using PyMuPDF (fitz), extracts text page-by-page and
cleans it for embedding.  Failures are reported with distinct
:class:`~src.utils.errors.ContentError` subclasses so the job manager can
tell an unreadable file from a scanned one:

- :class:`~src.utils.errors.PDFReadError` -- the file cannot be opened or parsed
- :class:`~src.utils.errors.EmptyContentError` -- no text layer at all
  (typically a scanned document without OCR)
- :class:`~src.utils.errors.InsufficientContentError` -- some text, but
  fewer than ``min_chars`` characters after cleaning

Large files are read in groups of pages (:meth:`PDFProcessor.iter_page_groups`)
so only one group of page text is held in memory at a time.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from src.utils.errors import EmptyContentError, InsufficientContentError, PDFReadError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MIN_CHARS = 50
DEFAULT_PAGES_PER_GROUP = 10

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_PAGE_NUMBER_LINE = re.compile(r"^(?:page\s*)?\d+(?:\s*(?:/|of)\s*\d+)?$", re.IGNORECASE)
_HAS_ALNUM = re.compile(r"[^\W_]")


def clean_pdf_text(text: str) -> str:
    """Normalize raw PDF text.

    Removes control characters, collapses horizontal whitespace and drops
    lines that are empty, page numbers only, free of letters and digits,
    or repeats of an earlier line (running headers and footers).
    """
    if not text:
        return ""
    text = _CONTROL_CHARS.sub("", text.replace("\r\n", "\n").replace("\r", "\n"))

    seen: set[str] = set()
    lines: list[str] = []
    for raw_line in text.split("\n"):
        line = _HORIZONTAL_WS.sub(" ", raw_line).strip()
        if not line or _PAGE_NUMBER_LINE.match(line) or not _HAS_ALNUM.search(line):
            continue
        if line in seen:
            continue
        seen.add(line)
        lines.append(line)
    return "\n".join(lines)


class PDFProcessor:
    """Extracts clean text from PDF files.

    Parameters
    ----------
    min_chars:
        Minimum cleaned length for a PDF to count as having content.
    pages_per_group:
        Pages read together by :meth:`iter_page_groups`.
    """

    def __init__(
        self,
        min_chars: int = DEFAULT_MIN_CHARS,
        pages_per_group: int = DEFAULT_PAGES_PER_GROUP,
    ) -> None:
        self._min_chars = min_chars
        self._pages_per_group = pages_per_group

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract_text(self, file_path: str) -> str:
        """Return the cleaned text of the whole document.

        Raises
        ------
        PDFReadError
            If the file cannot be opened or a page cannot be parsed.
        EmptyContentError
            If no page has a text layer.
        InsufficientContentError
            If the cleaned text is shorter than ``min_chars``.
        """
        raw = "\n".join(self._page_texts(file_path))
        if not raw.strip():
            logger.warning("pdf_no_text_extracted", file_path=file_path)
            raise EmptyContentError(
                message="No text content found in PDF. The file may be scanned or image-based.",
                provider_name=self.get_provider_name(),
            )

        cleaned = clean_pdf_text(raw)
        self._check_length(cleaned, file_path)
        logger.info("pdf_text_extracted", file_path=file_path, chars=len(cleaned))
        return cleaned

    def iter_page_groups(self, file_path: str) -> Iterator[str]:
        """Yield cleaned text one page group at a time; empty groups are skipped.

        Raises the same errors as :meth:`extract_text`, with the emptiness
        and length checks applied to the document as a whole once the last
        group has been read.
        """
        total = 0
        group: list[str] = []
        for page_text in self._page_texts(file_path):
            group.append(page_text)
            if len(group) >= self._pages_per_group:
                cleaned = clean_pdf_text("\n".join(group))
                group = []
                if cleaned:
                    total += len(cleaned)
                    yield cleaned
        if group:
            cleaned = clean_pdf_text("\n".join(group))
            if cleaned:
                total += len(cleaned)
                yield cleaned

        if total == 0:
            raise EmptyContentError(
                message="No text content found in PDF. The file may be scanned or image-based.",
                provider_name=self.get_provider_name(),
            )
        if total < self._min_chars:
            raise InsufficientContentError(
                message=f"Extracted text is too short ({total} characters)",
                provider_name=self.get_provider_name(),
            )

    def get_provider_name(self) -> str:
        return "pymupdf"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _page_texts(self, file_path: str) -> Iterator[str]:
        try:
            doc = fitz.open(file_path)
        except (RuntimeError, ValueError, OSError) as exc:
            logger.error("pdf_open_failed", file_path=file_path, error=str(exc))
            raise PDFReadError(
                message=f"Unable to read PDF file: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        try:
            for page_num in range(len(doc)):
                try:
                    text = doc[page_num].get_text("text")
                except (RuntimeError, ValueError) as exc:
                    raise PDFReadError(
                        message=f"Unable to parse page {page_num + 1}: {exc}",
                        provider_name=self.get_provider_name(),
                    ) from exc
                yield text
        finally:
            doc.close()

    def _check_length(self, cleaned: str, file_path: str) -> None:
        if len(cleaned) < self._min_chars:
            logger.warning("pdf_text_insufficient", file_path=file_path, chars=len(cleaned))
            raise InsufficientContentError(
                message=f"Extracted text is too short ({len(cleaned)} characters)",
                provider_name=self.get_provider_name(),
            )
