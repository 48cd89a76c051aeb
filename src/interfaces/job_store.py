"""Abstract base classes for ingestion job persistence and scheduling.

``IJobStore`` persists :class:`~src.models.jobs.IngestionJob` records and
bot-protection flags.  ``IJobScheduler`` is the "run this later" seam:
the engine ships an asyncio task queue implementation, and a host
application may substitute its own scheduler.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from src.models.jobs import IngestionJob, JobKind, JobStatus


class IJobStore(ABC):
    """Durable storage for ingestion jobs and bot-protection flags."""

    @abstractmethod
    async def save_job(self, job: IngestionJob) -> None:
        """Insert *job*, overwriting any record with the same ``job_id``."""

    @abstractmethod
    async def get_job(self, job_id: str) -> IngestionJob | None:
        """Return the job or ``None``."""

    @abstractmethod
    async def claim_job(self, job_id: str) -> IngestionJob | None:
        """Atomically move a PENDING job to PROCESSING.

        Returns the claimed job, or ``None`` when the job is missing or was
        not PENDING (already claimed by another worker, or terminal).
        """

    @abstractmethod
    async def update_job(self, job: IngestionJob) -> None:
        """Persist the mutable fields of an existing job."""

    @abstractmethod
    async def delete_job(self, job_id: str) -> bool:
        """Remove the job; return ``True`` if a record was deleted."""

    @abstractmethod
    async def list_jobs(
        self,
        kind: JobKind | None = None,
        statuses: list[JobStatus] | None = None,
        max_attempts: int | None = None,
        due_before: datetime | None = None,
        limit: int | None = None,
    ) -> list[IngestionJob]:
        """Return jobs oldest first, filtered by kind, status and retry budget."""

    @abstractmethod
    async def find_job_by_source(self, kind: JobKind, source: str) -> IngestionJob | None:
        """Return the most recent job of *kind* for *source*, if any."""

    @abstractmethod
    async def delete_failed_jobs(self, older_than: datetime, min_attempts: int) -> int:
        """Delete FAILED jobs updated before *older_than* with enough attempts."""

    @abstractmethod
    async def set_bot_flag(self, url_key: str, url: str) -> None:
        """Record that the URL identified by *url_key* blocks automated access."""

    @abstractmethod
    async def is_bot_flagged(self, url_key: str) -> bool:
        """Return ``True`` if a bot-protection flag is set for *url_key*."""

    @abstractmethod
    async def clear_bot_flag(self, url_key: str) -> bool:
        """Remove the flag; return ``True`` if one existed."""


JobCallable = Callable[..., Awaitable[Any]]


class IJobScheduler(ABC):
    """Fire-and-forget deferred execution of ingestion work."""

    @abstractmethod
    async def schedule(self, fn: JobCallable, *args: Any, delay: float = 0.0) -> None:
        """Run ``await fn(*args)`` later, after at least *delay* seconds."""
