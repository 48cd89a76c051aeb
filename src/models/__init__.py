"""Engine domain models — re-exports all public model classes.

The models are organized across three submodules by domain concern:
    - content.py    — ContentType vocabulary, stored embedding records and
                      content-source items
    - jobs.py       — Ingestion job state machine and crawl results
    - retrieval.py  — Scored retrieval results and search intents

Import from ``src.models`` directly, e.g. ``from src.models import ContentType``.
"""

from __future__ import annotations

from src.models.content import (
    PRODUCT_ALIASES,
    SINGLETON_ID,
    ContentItem,
    ContentType,
    EmbeddingRecord,
    expand_types,
    is_product_type,
    is_singleton,
    type_priority,
    type_value,
    type_weight,
)
from src.models.jobs import (
    BatchResult,
    CrawledPage,
    CrawlOptions,
    CrawlResult,
    ErrorType,
    IngestionJob,
    JobKind,
    JobStatus,
    JobStatusReport,
    UrlStatus,
)
from src.models.retrieval import ScoredChunk, SearchIntent

__all__ = [
    "PRODUCT_ALIASES",
    "SINGLETON_ID",
    "BatchResult",
    "ContentItem",
    "ContentType",
    "CrawlOptions",
    "CrawlResult",
    "CrawledPage",
    "EmbeddingRecord",
    "ErrorType",
    "IngestionJob",
    "JobKind",
    "JobStatus",
    "JobStatusReport",
    "ScoredChunk",
    "SearchIntent",
    "UrlStatus",
    "expand_types",
    "is_product_type",
    "is_singleton",
    "type_priority",
    "type_value",
    "type_weight",
]
