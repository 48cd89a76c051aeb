"""Unit tests for JsonContentSource."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from src.providers.content.json_content_source import JsonContentSource
from src.providers.vector_store.sqlite_vector_store import SQLiteVectorStore
from src.utils.errors import ConfigurationError

_ITEMS = [
    {"content_type": "product", "content_id": 42, "title": "Blue Mug", "attributes": {"category_ids": [7, 8]}},
    {"content_type": "product", "content_id": "43", "title": "Tea Cup"},
    {"content_type": "post", "content_id": "7", "title": "Shipping", "status": "publish"},
    {"content_type": "page", "content_id": "9", "title": "Draft page", "status": "draft"},
]


@pytest.fixture()
def export_path(tmp_path: Path) -> Path:
    path = tmp_path / "content.json"
    path.write_text(json.dumps(_ITEMS), encoding="utf-8")
    return path


class TestJsonContentSource:
    @pytest.mark.asyncio
    async def test_ids_are_coerced_to_strings(
        self, export_path: Path, vector_store: SQLiteVectorStore
    ) -> None:
        source = JsonContentSource(export_path, vector_store)
        item = await source.get_item("product", "42")
        assert item is not None
        assert item.title == "Blue Mug"
        assert await source.get_item("product", "999") is None

    @pytest.mark.asyncio
    async def test_unprocessed_filters_status_type_and_exclusions(
        self, export_path: Path, vector_store: SQLiteVectorStore
    ) -> None:
        source = JsonContentSource(export_path, vector_store)
        items = await source.list_unprocessed(
            ["product", "post", "page"], {"product": {"43"}}, offset=0, limit=10
        )
        assert [(i.content_type, i.content_id) for i in items] == [("product", "42"), ("post", "7")]
        assert await source.count_unprocessed(["product", "post", "page"], {"product": {"43"}}) == 2

    @pytest.mark.asyncio
    async def test_embedded_items_are_not_pending(
        self, export_path: Path, vector_store: SQLiteVectorStore
    ) -> None:
        source = JsonContentSource(export_path, vector_store)
        await vector_store.upsert_chunks("product", "42", ["blue mug"])
        items = await source.list_unprocessed(["product"], {}, offset=0, limit=10)
        assert [i.content_id for i in items] == ["43"]

    @pytest.mark.asyncio
    async def test_paging(self, export_path: Path, vector_store: SQLiteVectorStore) -> None:
        source = JsonContentSource(export_path, vector_store)
        page = await source.list_unprocessed(["product", "post"], {}, offset=1, limit=1)
        assert [i.content_id for i in page] == ["43"]

    @pytest.mark.asyncio
    async def test_categories(self, export_path: Path, vector_store: SQLiteVectorStore) -> None:
        source = JsonContentSource(export_path, vector_store)
        assert await source.get_item_categories("product", "42") == {"7", "8"}
        assert await source.get_item_categories("product", "43") == set()
        assert await source.get_item_categories("post", "404") == set()

    @pytest.mark.asyncio
    async def test_unreadable_export_raises(self, tmp_path: Path, vector_store: SQLiteVectorStore) -> None:
        source = JsonContentSource(tmp_path / "missing.json", vector_store)
        with pytest.raises(ConfigurationError):
            await source.get_item("post", "1")
