"""Abstract base class for vector-store providers.

Defines the contract for persisting embedded chunks and handing the
candidate pool to the Similarity Ranker.  The store is a single-tenant,
linear-scan store: there is no ANN index and no query-side similarity
search here; ranking happens in :mod:`src.services.similarity_ranker`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.content import ContentType, EmbeddingRecord


# Concrete implementation: SQLiteVectorStore (src/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for embedding storage.

    Row keys are ``(content_type, content_id)``; crawled content also
    carries ``source_url`` (page) and ``origin_url`` (seed) provenance used
    for grouping and bulk deletion.
    """

    @abstractmethod
    async def upsert_chunks(
        self,
        content_type: ContentType | str,
        content_id: str | int,
        chunks: list[str],
        source_url: str | None = None,
        origin_url: str | None = None,
        file_path: str | None = None,
    ) -> bool:
        """Embed and store *chunks* for one content item.

        Singleton types (``settings``) keep exactly one row: an existing
        row is updated in place.  Other types get one row per chunk, in
        chunk order.  Each chunk is embedded independently; a failure on
        one chunk does not stop the others.

        Returns
        -------
        bool
            ``True`` if at least one chunk was embedded and stored.
        """

    @abstractmethod
    async def delete_by_content(self, content_type: ContentType | str, content_id: str | int) -> int:
        """Remove every row for ``(content_type, content_id)``; return the count."""

    @abstractmethod
    async def delete_by_provenance(self, origin_url: str, exact_match: bool = True) -> int:
        """Remove every crawled row whose seed is *origin_url*; return the count.

        With ``exact_match=False`` rows whose seed starts with *origin_url*
        or whose page URL equals it are removed as well.
        """

    @abstractmethod
    async def delete_by_source_url(self, source_url: str) -> int:
        """Remove the rows of one crawled page; return the count."""

    @abstractmethod
    async def fetch_by_types(self, types: set[ContentType | str]) -> list[EmbeddingRecord]:
        """Return every row whose type is in *types*, after alias expansion."""

    @abstractmethod
    async def fetch_by_content(
        self, content_type: ContentType | str, content_id: str | int
    ) -> list[EmbeddingRecord]:
        """Return the rows of one content item in chunk order."""

    @abstractmethod
    async def count_by_content(self, content_type: ContentType | str, content_id: str | int) -> int:
        """Return the number of rows stored for one content item."""

    @abstractmethod
    async def count_by_origin(self, origin_url: str) -> int:
        """Return the number of crawled rows whose seed is *origin_url*."""

    @abstractmethod
    async def count_by_type(self) -> dict[str, int]:
        """Return row counts grouped by stored content type."""

    @abstractmethod
    async def list_source_urls(self, origin_url: str) -> list[str]:
        """Return the distinct page URLs crawled under *origin_url*."""

    @abstractmethod
    async def count(self) -> int:
        """Return the total number of stored rows."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
