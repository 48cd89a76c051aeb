"""Retrieval engine composition root.

Wires every provider and service together via constructor injection.
Configuration comes from ``.env`` / the environment (``Settings``) layered
over ``config/config.yaml``; nothing here is a module-level singleton, so
a host application can build as many independent engines as it needs.

Typical use::

    components = build_engine()
    await initialize_engine(components)
    results = await components["retrieval_service"].find_similar("blue mug")
    await shutdown_engine(components)
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from src.config.loader import load_config
from src.config.settings import Settings
from src.interfaces.content_source import IContentSource
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.pipeline.job_manager import IngestionJobManager
from src.pipeline.task_queue import TaskQueue
from src.providers.cache.memory_cache import MemoryCacheProvider
from src.providers.content.json_content_source import JsonContentSource
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.jobs.sqlite_job_store import SQLiteJobStore
from src.providers.settings.static_settings_source import StaticSettingsSource
from src.providers.vector_store.sqlite_vector_store import SQLiteVectorStore
from src.services.crawling.url_discovery import UrlDiscoverer
from src.services.crawling.url_fetcher import UrlFetcher
from src.services.crawling.web_crawler import WebCrawler
from src.services.ingestion.chunker import ContentChunker
from src.services.ingestion.ingestion_service import ContentIngestionService
from src.services.ingestion.source_processors.html_processor import HTMLProcessor
from src.services.ingestion.source_processors.pdf_processor import PDFProcessor
from src.services.retrieval_service import RetrievalService
from src.services.similarity_ranker import SimilarityRanker

logger = structlog.get_logger(logger_name=__name__)


def build_engine(
    custom_settings: Settings | None = None,
    embedding_provider: IEmbeddingProvider | None = None,
    content_source: IContentSource | None = None,
    content_path: str | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Construct every provider and service of the engine.

    Parameters
    ----------
    custom_settings:
        Application settings; a fresh ``Settings()`` is loaded when omitted.
    embedding_provider:
        Overrides the OpenAI-backed provider (tests, alternative backends).
    content_source:
        CMS adapter used for batch ingestion.
    content_path:
        JSON export to serve as content source when *content_source* is
        not given; batch ingestion is unavailable without either.
    http_client:
        Shared client for the crawler; one is created and owned otherwise.

    Returns
    -------
    dict
        Components keyed by role name.
    """
    s = custom_settings or Settings()
    config = load_config(settings=s)

    embedding = embedding_provider or OpenAIEmbeddingProvider(settings=s)
    vector_store = SQLiteVectorStore(embedding_provider=embedding, db_path=s.vector_db_path)
    job_store = SQLiteJobStore(db_path=s.jobs_db_path)
    cache = MemoryCacheProvider(max_size=s.search_cache_size, ttl=s.search_cache_ttl)
    settings_source = StaticSettingsSource.from_settings(s)
    chunker = ContentChunker(max_chars=s.chunk_max_chars)

    fetcher = UrlFetcher(
        http_client=http_client,
        timeout=s.crawl_request_timeout,
        user_agent=s.crawl_user_agent,
    )
    crawler = WebCrawler(
        fetcher=fetcher,
        html_processor=HTMLProcessor(),
        discoverer=UrlDiscoverer(fetcher),
        rate_limit_seconds=s.crawl_rate_limit_seconds,
    )
    task_queue = TaskQueue()

    job_manager = IngestionJobManager(
        job_store=job_store,
        vector_store=vector_store,
        crawler=crawler,
        pdf_processor=PDFProcessor(min_chars=s.pdf_min_chars),
        scheduler=task_queue,
        settings_source=settings_source,
        chunker=chunker,
        max_pdf_bytes=s.pdf_max_file_size,
        pdf_max_attempts=s.pdf_max_attempts,
        pdf_retry_interval=s.pdf_retry_interval,
    )
    retrieval_service = RetrievalService(
        embedding_provider=embedding,
        vector_store=vector_store,
        cache=cache,
        settings_source=settings_source,
        ranker=SimilarityRanker(),
        cache_ttl=s.search_cache_ttl,
    )

    if content_source is None and content_path:
        content_source = JsonContentSource(content_path, vector_store)
    ingestion_service = None
    if content_source is not None:
        ingestion_service = ContentIngestionService(
            content_source=content_source,
            vector_store=vector_store,
            embedding_provider=embedding,
            settings_source=settings_source,
            chunker=chunker,
        )
        settings_source.subscribe(ingestion_service.handle_settings_change)

    logger.info(
        "engine_built",
        embedding_provider=embedding.get_provider_name(),
        embedding_available=embedding.is_available(),
        vector_db=s.vector_db_path,
        content_source=type(content_source).__name__ if content_source else None,
    )

    return {
        "settings": s,
        "config": config,
        "settings_source": settings_source,
        "embedding_provider": embedding,
        "vector_store": vector_store,
        "job_store": job_store,
        "cache": cache,
        "fetcher": fetcher,
        "crawler": crawler,
        "task_queue": task_queue,
        "job_manager": job_manager,
        "retrieval_service": retrieval_service,
        "ingestion_service": ingestion_service,
    }


async def initialize_engine(components: dict[str, Any], start_queue: bool = True) -> None:
    """Create the SQLite tables and start the background task queue."""
    await components["vector_store"].initialize()
    await components["job_store"].initialize()
    if start_queue:
        await components["task_queue"].start()
    logger.info("engine_initialized", queue_started=start_queue)


async def shutdown_engine(components: dict[str, Any], drain: bool = False) -> None:
    """Stop the task queue (optionally after draining it) and release the HTTP client."""
    queue: TaskQueue = components["task_queue"]
    if drain and queue.running:
        await queue.join()
    await queue.stop()
    await components["fetcher"].close()
    logger.info("engine_shutdown", drained=drain)
