"""Abstract base class for text-embedding service providers.

Defines the contract for turning text into a fixed-length vector.  The
Vector Store calls it once per chunk on ingestion; the Retrieval
Orchestrator calls it once per query.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation:
#   OpenAIEmbeddingProvider — text-embedding-3-small (requires API key)
# Located in: src/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services.

    Implementations do not retry; a failed call surfaces as a typed
    :class:`~src.utils.errors.EmbeddingError` and the caller decides.
    """

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Generate the embedding vector for *text*.

        Parameters
        ----------
        text:
            The text to embed.  Must contain at least one non-whitespace
            character.

        Returns
        -------
        list[float]
            The embedding vector with length equal to :meth:`get_dimension`.

        Raises
        ------
        src.utils.errors.EmptyInputError
            If *text* is empty; no network call is made.
        src.utils.errors.MissingCredentialsError
            If no API key is configured; no network call is made.
        src.utils.errors.EmbeddingTransportError
            If the endpoint is unreachable or the request times out.
        src.utils.errors.EmbeddingAPIError
            If the endpoint answers with a non-success status.
        src.utils.errors.MalformedResponseError
            If the response carries no embedding vector.
        """

    @abstractmethod
    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts in one request, preserving order.

        Raises the same errors as :meth:`embed`; an empty list returns
        an empty list without a network call.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Example values: ``1536`` (``text-embedding-3-small``),
        ``3072`` (``text-embedding-3-large``).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and usable."""
