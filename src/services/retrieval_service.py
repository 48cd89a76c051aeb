"""Retrieval Orchestrator -- the query-path entry point.

``find_similar`` embeds the query once, pulls the type-scoped candidate
pool from the Vector Store, hands it to the Similarity Ranker and caches
the outcome for a few minutes.  With the ``product_search`` intent it
returns bare product ids instead of scored chunks.

Cached results expire by TTL only: a query may return results that are up
to ``cache_ttl`` seconds stale after content changes.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from src.interfaces.cache_provider import ICacheProvider
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.settings_source import EngineConfig, ISettingsSource
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.content import ContentType, PRODUCT_ALIASES, type_value
from src.models.retrieval import ScoredChunk, SearchIntent
from src.services.similarity_ranker import SimilarityRanker
from src.utils.hashing import md5_hex

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_SCOPE: tuple[str, ...] = (
    ContentType.SETTINGS.value,
    ContentType.PRODUCT.value,
    ContentType.POST.value,
    ContentType.PAGE.value,
    ContentType.PRODUCT_VARIATION.value,
    ContentType.PDF.value,
    ContentType.EXTERNAL_URL.value,
)

_CACHE_PREFIX = "similar:"


class RetrievalService:
    """Answers similarity queries against the stored chunks.

    Parameters
    ----------
    embedding_provider:
        Embeds the query text.
    vector_store:
        Supplies the candidate pool.
    cache:
        Short-lived result cache.
    settings_source:
        Supplies the commerce switch and product exclusions; re-read on
        every call so changes apply without rebuilding the service.
    ranker:
        Scoring strategy; defaults to :class:`SimilarityRanker`.
    cache_ttl:
        Seconds a cached result stays valid.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        cache: ICacheProvider,
        settings_source: ISettingsSource,
        ranker: SimilarityRanker | None = None,
        cache_ttl: int = 300,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._cache = cache
        self._settings_source = settings_source
        self._ranker = ranker or SimilarityRanker()
        self._cache_ttl = cache_ttl

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def find_similar(
        self,
        query: str,
        limit: int = 5,
        threshold: float = 0.7,
        content_types: Iterable[ContentType | str] | None = None,
        intent: SearchIntent | str | None = None,
    ) -> list[ScoredChunk] | list[int]:
        """Return the chunks (or product ids) most relevant to *query*.

        Parameters
        ----------
        query:
            Free-text question from the shopper.  Empty or whitespace-only
            queries return ``[]`` without calling the embedding provider.
        limit:
            Maximum number of results.
        threshold:
            Minimum type-weighted cosine similarity.
        content_types:
            Content types to search; ``None`` searches every known type.
            ``product`` automatically includes integration product aliases.
        intent:
            ``product_search`` returns a deduplicated list of product ids.

        Raises
        ------
        src.utils.errors.EmbeddingError
            If the query cannot be embedded.
        """
        config = self._settings_source.get_config()
        intent_value = _intent_value(intent)
        product_search = intent_value == SearchIntent.PRODUCT_SEARCH.value

        if not query or not query.strip():
            logger.debug("empty_query_skipped")
            return []
        if product_search and not config.commerce_enabled:
            logger.info("product_search_disabled")
            return []

        scope = sorted({type_value(t) for t in (content_types or DEFAULT_SCOPE)})
        cache_key = _CACHE_PREFIX + md5_hex(query, limit, threshold, ",".join(scope), intent_value)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            logger.debug("similar_cache_hit", intent=intent_value)
            return cached

        query_vector = await self._embedding_provider.embed(query)
        candidates = await self._vector_store.fetch_by_types(set(scope))

        if product_search:
            results: list[Any] = self._product_results(query, query_vector, candidates, threshold, limit, config)
        else:
            results = self._ranker.rank(query, query_vector, candidates, threshold, limit)

        await self._cache.set(cache_key, results, ttl=self._cache_ttl)
        logger.info(
            "similar_content_found",
            intent=intent_value,
            candidates=len(candidates),
            results=len(results),
            scope=scope,
        )
        return results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _product_results(
        self,
        query: str,
        query_vector: list[float],
        candidates: list,
        threshold: float,
        limit: int,
        config: EngineConfig,
    ) -> list[int]:
        product_candidates = [c for c in candidates if c.content_type in PRODUCT_ALIASES]
        ranked = self._ranker.rank(query, query_vector, product_candidates, threshold)
        ids = self._ranker.product_ids(ranked, config.excluded_products)
        return ids[: max(limit, 0)]


def _intent_value(intent: SearchIntent | str | None) -> str:
    if intent is None:
        return SearchIntent.GENERAL.value
    if isinstance(intent, SearchIntent):
        return intent.value
    return str(intent)
