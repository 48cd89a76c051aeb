"""Abstract base class for the storefront content source.

The CMS that owns products, posts and pages is an external collaborator.
The engine only reads items through this interface and is told about
deletions by the host calling
:meth:`~src.services.ingestion.ingestion_service.ContentIngestionService.handle_content_deleted`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.content import ContentItem


class IContentSource(ABC):
    """Read-only access to CMS content awaiting embedding."""

    @abstractmethod
    async def get_item(self, content_type: str, content_id: str) -> ContentItem | None:
        """Return one item, or ``None`` when it does not exist."""

    @abstractmethod
    async def list_unprocessed(
        self,
        types: list[str],
        excluded_ids: dict[str, set[str]],
        offset: int,
        limit: int,
    ) -> list[ContentItem]:
        """Return published items of *types* that have no embeddings yet.

        Parameters
        ----------
        types:
            Content types to include.
        excluded_ids:
            Per-type ids the operator excluded from the assistant.
        offset:
            Number of matching items to skip.
        limit:
            Maximum number of items to return.
        """

    @abstractmethod
    async def count_unprocessed(self, types: list[str], excluded_ids: dict[str, set[str]]) -> int:
        """Return how many items :meth:`list_unprocessed` would yield in total."""

    @abstractmethod
    async def get_item_categories(self, content_type: str, content_id: str) -> set[str]:
        """Return the category ids of an item (used for category exclusions)."""
