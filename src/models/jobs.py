"""Ingestion job and crawl models.

URL-crawl jobs and PDF jobs share one :class:`IngestionJob` shape and one
state machine::

    PENDING → PROCESSING → COMPLETED
                         ↘ FAILED

Terminal states are only left through deletion or resubmission, which
overwrites the record under the same deterministic ``job_id``.  Jobs are
frozen; the job manager produces updated copies via
``model_copy(update={...})`` and persists them through the job store.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class JobKind(StrEnum):
    URL_CRAWL = "url_crawl"
    PDF = "pdf"


class ErrorType(StrEnum):
    """Failure kinds shown to operators; each maps to a user message."""

    BOT_PROTECTION = "bot_protection"
    NO_CONTENT = "no_content"
    FETCH_FAILED = "fetch_failed"
    EXTRACTION_FAILED = "extraction_failed"
    STORAGE_FAILED = "storage_failed"
    EMBEDDING_FAILED = "embedding_failed"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class IngestionJob(BaseModel):
    """Durable record of one asynchronous ingestion task."""

    model_config = ConfigDict(frozen=True)

    job_id: str = Field(description="Deterministic id derived from the normalized input.")
    kind: JobKind
    source: str = Field(description="Seed URL or PDF file path.")
    status: JobStatus = JobStatus.PENDING
    attempts: int = Field(default=0, ge=0)
    error_message: str | None = Field(default=None, description="Populated only when FAILED.")
    error_type: ErrorType | None = None
    user_message: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    next_attempt_at: datetime | None = Field(
        default=None, description="Earliest time a failed PDF job may be picked up again."
    )


class CrawlOptions(BaseModel):
    """Per-submission crawl options with engine defaults."""

    model_config = ConfigDict(frozen=True)

    follow_links: bool = True
    include_selectors: list[str] = Field(default_factory=list)
    exclude_selectors: list[str] = Field(default_factory=list)
    include_patterns: list[str] = Field(default_factory=list)
    exclude_patterns: list[str] = Field(default_factory=list)
    max_depth: int = Field(default=2, ge=0)
    max_pages: int = Field(default=15, ge=1)
    request_timeout: float = Field(default=15.0, gt=0)
    max_job_seconds: int = Field(default=180, gt=0)


class CrawledPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    title: str = ""
    content: str = ""
    links: list[str] = Field(default_factory=list)
    depth: int = 0


class CrawlResult(BaseModel):
    """Everything a crawl produced; persisted by the job manager, not the crawler."""

    model_config = ConfigDict(frozen=True)

    success: bool
    main_url: str
    pages: list[CrawledPage] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    user_message: str = ""
    error_type: ErrorType | None = Field(default=None, description="Set when the main page failed.")


class BatchResult(BaseModel):
    """Outcome of one content-ingestion batch."""

    model_config = ConfigDict(frozen=True)

    success: bool
    processed: int = 0
    failed: int = 0
    remaining: int = 0
    done: bool = False
    errors: list[str] = Field(default_factory=list)


class UrlStatus(StrEnum):
    BOT_PROTECTED = "bot_protected"
    PROCESSED = "processed"
    NO_CONTENT = "no_content"
    FAILED = "failed"
    PROCESSING = "processing"
    NOT_FOUND = "not_found"


class JobStatusReport(BaseModel):
    """Polling view of a job, always carrying a readable ``user_message``."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    status: JobStatus | None = Field(default=None, description="None when the job does not exist.")
    found: bool = True
    user_message: str = ""
    error_type: ErrorType | None = None
    embedding_count: int = 0
    attempts: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
