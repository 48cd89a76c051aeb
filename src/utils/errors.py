"""Custom exception hierarchy for the retrieval engine.

All application exceptions inherit from :class:`EngineError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai_embedding", "sqlite_vector_store") caused
the failure.

The hierarchy is organized by engine component:

    EngineError  (base -- catch-all for any engine error)
    +-- ConfigurationError       (startup / missing config)
    +-- EmbeddingError           (embedding client failures)
    |   +-- EmptyInputError          (nothing to embed)
    |   +-- MissingCredentialsError  (no API key configured)
    |   +-- EmbeddingTransportError  (network unreachable / timeout)
    |   +-- EmbeddingAPIError        (non-200 response from the API)
    |   +-- MalformedResponseError   (response lacks the vector field)
    +-- VectorStoreError         (persistent storage failure)
    +-- ContentError             (unusable content, terminal for a job)
    |   +-- PDFReadError             (file cannot be opened / parsed)
    |   +-- EmptyContentError        (zero extractable text)
    |   +-- InsufficientContentError (text too short after cleaning)
    +-- CrawlError               (page fetch failure)
    |   +-- BotProtectionError       (target blocks automated access)
    +-- JobError                 (unknown job / invalid transition)

Transient failures (``EmbeddingTransportError``, ``EmbeddingAPIError``,
``CrawlError``) are safe to retry as a whole operation; content and
protection errors require a different input.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base exception for all engine errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai_embedding] Request timed out``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class ConfigurationError(EngineError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding client errors
# ---------------------------------------------------------------------------

class EmbeddingError(EngineError):
    """Raised when the embedding client cannot produce a vector.

    ``retryable`` tells callers whether repeating the same request could
    succeed (network and upstream failures) or not (bad input, missing
    credentials, malformed payloads).
    """

    retryable: bool = False

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyInputError(EmbeddingError):
    """Raised when asked to embed empty or whitespace-only text."""

    def __init__(
        self,
        message: str = "The text parameter is empty.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class MissingCredentialsError(EmbeddingError):
    """Raised when no API key is configured for the embedding endpoint."""

    def __init__(
        self,
        message: str = "Embedding API key is not configured.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingTransportError(EmbeddingError):
    """Raised when the embedding endpoint is unreachable or times out."""

    retryable = True

    def __init__(
        self,
        message: str = "Embedding endpoint is unreachable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingAPIError(EmbeddingError):
    """Raised when the embedding endpoint answers with a non-200 status."""

    retryable = True

    def __init__(
        self,
        message: str = "Embedding API returned an error",
        provider_name: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self._status_code = status_code
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status_code(self) -> int | None:
        return self._status_code


class MalformedResponseError(EmbeddingError):
    """Raised when the embedding response does not contain a vector."""

    def __init__(
        self,
        message: str = "Invalid embedding response format",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Storage errors
# ---------------------------------------------------------------------------

class VectorStoreError(EngineError):
    """Raised when a vector-store read or write fails."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Content errors -- terminal for the job that produced them
# ---------------------------------------------------------------------------

class ContentError(EngineError):
    """Raised when extracted content is unusable for embedding."""

    def __init__(
        self,
        message: str = "Content could not be used",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PDFReadError(ContentError):
    """Raised when a PDF cannot be opened or parsed."""

    def __init__(
        self,
        message: str = "Unable to read PDF file",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyContentError(ContentError):
    """Raised when a source yields no extractable text at all."""

    def __init__(
        self,
        message: str = "No text content found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InsufficientContentError(ContentError):
    """Raised when cleaned text is shorter than the usable minimum."""

    def __init__(
        self,
        message: str = "Extracted text is too short to be useful",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Crawl errors
# ---------------------------------------------------------------------------

class CrawlError(EngineError):
    """Raised when a page cannot be fetched during a crawl."""

    def __init__(
        self,
        message: str = "Failed to fetch URL",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class BotProtectionError(CrawlError):
    """Raised when a crawl target actively blocks automated access."""

    def __init__(
        self,
        message: str = "Bot protection detected",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Job errors
# ---------------------------------------------------------------------------

class JobError(EngineError):
    """Raised for unknown jobs or invalid job state transitions."""

    def __init__(
        self,
        message: str = "Ingestion job operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
