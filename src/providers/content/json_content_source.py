"""Content source backed by a JSON export of CMS items.

The file holds a list of objects shaped like
:class:`~src.models.content.ContentItem`::

    [
      {"content_type": "product", "content_id": "42", "title": "Blue Mug",
       "status": "publish",
       "attributes": {"price": "12.00", "category_ids": [7], ...}}
    ]

An item counts as unprocessed while the vector store holds no rows for it.
"""

from __future__ import annotations

import json
from pathlib import Path

import structlog

from src.interfaces.content_source import IContentSource
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.content import ContentItem
from src.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

_PUBLISHED = "publish"


class JsonContentSource(IContentSource):
    """Serves items loaded from *path*; processed state comes from *vector_store*."""

    def __init__(self, path: str | Path, vector_store: IVectorStoreProvider) -> None:
        self._path = Path(path)
        self._vector_store = vector_store
        self._items: list[ContentItem] | None = None

    async def get_item(self, content_type: str, content_id: str) -> ContentItem | None:
        for item in self._load():
            if item.content_type == content_type and item.content_id == str(content_id):
                return item
        return None

    async def list_unprocessed(
        self,
        types: list[str],
        excluded_ids: dict[str, set[str]],
        offset: int,
        limit: int,
    ) -> list[ContentItem]:
        pending = await self._unprocessed(types, excluded_ids)
        return pending[offset : offset + limit]

    async def count_unprocessed(self, types: list[str], excluded_ids: dict[str, set[str]]) -> int:
        return len(await self._unprocessed(types, excluded_ids))

    async def get_item_categories(self, content_type: str, content_id: str) -> set[str]:
        item = await self.get_item(content_type, content_id)
        if item is None:
            return set()
        return {str(c) for c in item.attributes.get("category_ids") or []}

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _unprocessed(self, types: list[str], excluded_ids: dict[str, set[str]]) -> list[ContentItem]:
        wanted = set(types)
        pending: list[ContentItem] = []
        for item in self._load():
            if item.status != _PUBLISHED or item.content_type not in wanted:
                continue
            if item.content_id in excluded_ids.get(item.content_type, set()):
                continue
            if await self._vector_store.count_by_content(item.content_type, item.content_id):
                continue
            pending.append(item)
        return pending

    def _load(self) -> list[ContentItem]:
        if self._items is None:
            try:
                raw = json.loads(self._path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                raise ConfigurationError(
                    message=f"Cannot read content export {self._path}: {exc}",
                    provider_name="json_content_source",
                ) from exc
            self._items = [
                ContentItem.model_validate({**entry, "content_id": str(entry.get("content_id", ""))})
                for entry in raw
            ]
            logger.info("content_export_loaded", path=str(self._path), items=len(self._items))
        return self._items
