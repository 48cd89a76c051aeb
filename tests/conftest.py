"""Shared pytest fixtures for the retrieval engine test suite."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from src.interfaces.content_source import IContentSource
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.job_store import IJobScheduler, JobCallable
from src.models.content import ContentItem
from src.providers.jobs.sqlite_job_store import SQLiteJobStore
from src.providers.settings.static_settings_source import StaticSettingsSource
from src.providers.vector_store.sqlite_vector_store import SQLiteVectorStore
from src.utils.errors import EmbeddingAPIError, EmptyInputError, MissingCredentialsError

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

VOCABULARY = (
    "mug",
    "ceramic",
    "blue",
    "coffee",
    "tea",
    "shirt",
    "cotton",
    "shipping",
    "delivery",
    "return",
    "refund",
    "policy",
    "contact",
    "email",
    "phone",
    "hours",
    "garden",
    "hose",
    "manual",
    "warranty",
)

_TOKEN = re.compile(r"[a-z]+")


class KeywordEmbeddingProvider(IEmbeddingProvider):
    """Deterministic bag-of-words embedder over a fixed vocabulary.

    Texts sharing vocabulary words point in similar directions; texts with
    no vocabulary words get a zero vector (cosine 0 against anything).
    """

    def __init__(
        self,
        vocabulary: tuple[str, ...] = VOCABULARY,
        available: bool = True,
        fail_on: str | None = None,
    ) -> None:
        self.vocabulary = vocabulary
        self.available = available
        self.fail_on = fail_on
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise EmptyInputError(provider_name=self.get_provider_name())
        if not self.available:
            raise MissingCredentialsError(provider_name=self.get_provider_name())
        if self.fail_on and self.fail_on in text:
            raise EmbeddingAPIError(
                message="HTTP error: 500", provider_name=self.get_provider_name(), status_code=500
            )
        self.calls.append(text)
        return self.vector_for(text)

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed(t) for t in texts]

    def vector_for(self, text: str) -> list[float]:
        tokens = _TOKEN.findall(text.lower())
        return [float(sum(1 for t in tokens if t in (word, word + "s"))) for word in self.vocabulary]

    def get_dimension(self) -> int:
        return len(self.vocabulary)

    def get_provider_name(self) -> str:
        return "keyword_embedding"

    def is_available(self) -> bool:
        return self.available


class InMemoryContentSource(IContentSource):
    """Content source over a list of items; processed state comes from the vector store."""

    def __init__(self, items: list[ContentItem], vector_store: SQLiteVectorStore) -> None:
        self.items = items
        self.vector_store = vector_store

    async def get_item(self, content_type: str, content_id: str) -> ContentItem | None:
        for item in self.items:
            if item.content_type == content_type and item.content_id == content_id:
                return item
        return None

    async def list_unprocessed(
        self,
        types: list[str],
        excluded_ids: dict[str, set[str]],
        offset: int,
        limit: int,
    ) -> list[ContentItem]:
        pending = await self._pending(types, excluded_ids)
        return pending[offset : offset + limit]

    async def count_unprocessed(self, types: list[str], excluded_ids: dict[str, set[str]]) -> int:
        return len(await self._pending(types, excluded_ids))

    async def get_item_categories(self, content_type: str, content_id: str) -> set[str]:
        item = await self.get_item(content_type, content_id)
        return {str(c) for c in item.attributes.get("category_ids", [])} if item else set()

    async def _pending(self, types: list[str], excluded_ids: dict[str, set[str]]) -> list[ContentItem]:
        pending = []
        for item in self.items:
            if item.status != "publish" or item.content_type not in types:
                continue
            if item.content_id in excluded_ids.get(item.content_type, set()):
                continue
            if await self.vector_store.count_by_content(item.content_type, item.content_id):
                continue
            pending.append(item)
        return pending


class RecordingScheduler(IJobScheduler):
    """Scheduler that records calls instead of running them."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[JobCallable, tuple[Any, ...], float]] = []

    async def schedule(self, fn: JobCallable, *args: Any, delay: float = 0.0) -> None:
        self.scheduled.append((fn, args, delay))

    async def run_all(self) -> list[Any]:
        results = []
        while self.scheduled:
            fn, args, _ = self.scheduled.pop(0)
            results.append(await fn(*args))
        return results


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def embedding_provider() -> KeywordEmbeddingProvider:
    return KeywordEmbeddingProvider()


@pytest_asyncio.fixture
async def vector_store(tmp_path: Path, embedding_provider: KeywordEmbeddingProvider) -> SQLiteVectorStore:
    store = SQLiteVectorStore(embedding_provider=embedding_provider, db_path=tmp_path / "embeddings.db")
    await store.initialize()
    return store


@pytest_asyncio.fixture
async def job_store(tmp_path: Path) -> SQLiteJobStore:
    store = SQLiteJobStore(db_path=tmp_path / "jobs.db")
    await store.initialize()
    return store


@pytest.fixture
def settings_source() -> StaticSettingsSource:
    return StaticSettingsSource()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def sample_product() -> ContentItem:
    return ContentItem(
        content_type="product",
        content_id="42",
        title="Blue Ceramic Mug",
        attributes={
            "url": "https://shop.example.com/product/blue-mug",
            "image": "https://shop.example.com/img/blue-mug.jpg",
            "in_stock": True,
            "average_rating": 4.5,
            "regular_price": "14.00",
            "sale_price": "12.00",
            "price": "12.00",
            "categories": ["Kitchen", "Mugs"],
            "tags": ["coffee", "gift"],
            "attributes": {"Color": "Blue", "Size": "Small | Large"},
            "description": "<p>A sturdy <strong>ceramic</strong> mug for coffee or tea.</p>",
            "short_description": "Holds 350ml of coffee.",
            "sku": "MUG-BLUE",
            "category_ids": [7],
        },
    )


@pytest.fixture
def sample_post() -> ContentItem:
    return ContentItem(
        content_type="post",
        content_id="7",
        title="Our Shipping Policy",
        attributes={
            "categories": ["News"],
            "tags": ["shipping"],
            "content": "<p>We offer free shipping and delivery on orders over $50.</p>",
            "excerpt": "Free shipping explained.",
        },
    )


@pytest.fixture
def sample_html() -> str:
    return """
    <html>
      <head><title>Garden Hose Guide</title><script>var x = 1;</script></head>
      <body>
        <nav class="main-navigation"><a href="/">Home</a></nav>
        <article class="entry-content">
          <h1>Choosing a Garden Hose</h1>
          <p>A good garden hose should resist kinks and last many seasons in the sun.</p>
          <p>Rubber hoses are heavier but tend to outlast vinyl hoses by several years.</p>
          <ul>
            <li>Check the warranty before you buy a new hose.</li>
            <li>Short</li>
          </ul>
          <a href="/care">Care tips</a>
          <a href="https://other.example.org/page">Elsewhere</a>
          <a href="mailto:help@example.com">Mail us</a>
        </article>
      </body>
    </html>
    """
