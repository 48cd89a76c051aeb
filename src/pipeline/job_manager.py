"""Asynchronous ingestion jobs for external URLs and uploaded PDFs.

# ─── HOW A JOB RUNS ───────────────────────────────────────────────────
#
#   submit_url / submit_pdf ──save PENDING──→ job store
#                           ──schedule──────→ task queue ──→ run_*_job
#
#   run_*_job:
#     1. claim_job()  PENDING → PROCESSING (atomic; a lost race is a no-op)
#     2. do the work  (probe + crawl + save, or extract + chunk + store)
#     3. update_job() → COMPLETED, or FAILED with error_type/user_message
#
# Job ids are deterministic (md5 of the normalized URL, ``pdf-{id}``), so
# resubmitting the same input overwrites the previous record, and stored
# rows are deleted before new ones are written.
#
# Every failure kind maps to an operator-readable message in
# USER_MESSAGES; get_status() always returns one.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from src.interfaces.job_store import IJobScheduler, IJobStore
from src.interfaces.settings_source import ISettingsSource
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.content import ContentType
from src.models.jobs import (
    CrawlOptions,
    CrawlResult,
    ErrorType,
    IngestionJob,
    JobKind,
    JobStatus,
    JobStatusReport,
    UrlStatus,
)
from src.services.crawling.url_utils import normalize_url_for_job, url_key
from src.services.crawling.web_crawler import NO_CONTENT_MESSAGE, WebCrawler
from src.services.ingestion.chunker import ContentChunker
from src.services.ingestion.source_processors.pdf_processor import PDFProcessor
from src.utils.errors import (
    BotProtectionError,
    ContentError,
    CrawlError,
    EmbeddingError,
    EngineError,
    JobError,
    PDFReadError,
    VectorStoreError,
)

logger = structlog.get_logger(logger_name=__name__)

BOT_PROTECTED_MESSAGE = (
    "This URL is protected against automated access. "
    "Please try a different URL or contact the website administrator."
)

USER_MESSAGES: dict[ErrorType, str] = {
    ErrorType.BOT_PROTECTION: BOT_PROTECTED_MESSAGE,
    ErrorType.NO_CONTENT: NO_CONTENT_MESSAGE,
    ErrorType.FETCH_FAILED: "The URL could not be fetched. Please check that it is reachable and try again.",
    ErrorType.EXTRACTION_FAILED: (
        "No usable text could be extracted from the document. The file may be scanned or image-based."
    ),
    ErrorType.STORAGE_FAILED: "The content could not be saved. Please try again later.",
    ErrorType.EMBEDDING_FAILED: (
        "Embeddings could not be generated for this content. Please check the API key and try again."
    ),
    ErrorType.TIMEOUT: "Processing took too long and was stopped. Please try again with fewer pages.",
    ErrorType.INTERNAL: "An unexpected error stopped processing. Please try again later.",
}

_STATUS_MESSAGES: dict[JobStatus, str] = {
    JobStatus.PENDING: "The job is queued for processing.",
    JobStatus.PROCESSING: "The job is being processed.",
    JobStatus.COMPLETED: "The content has been embedded successfully.",
    JobStatus.FAILED: "The job failed.",
}

_PDF_COMPLETED_MESSAGE = "The PDF has been processed and embedded successfully."

# Added to the crawler's own wall-clock budget before a run is cut off.
_CRAWL_GRACE_SECONDS = 60


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _error_type_for(exc: Exception) -> ErrorType:
    if isinstance(exc, VectorStoreError):
        return ErrorType.STORAGE_FAILED
    if isinstance(exc, EmbeddingError):
        return ErrorType.EMBEDDING_FAILED
    if isinstance(exc, ContentError):
        return ErrorType.EXTRACTION_FAILED
    if isinstance(exc, CrawlError):
        return ErrorType.FETCH_FAILED
    return ErrorType.INTERNAL


def _describe(exc: Exception) -> str:
    if isinstance(exc, EngineError):
        return exc.message
    return f"{type(exc).__name__}: {exc}"


class IngestionJobManager:
    """Creates, runs and reports on URL-crawl and PDF ingestion jobs.

    Parameters
    ----------
    job_store:
        Durable job records and bot-protection flags.
    vector_store:
        Destination of crawled and extracted chunks.
    crawler:
        Performs the probe and the crawl of a URL job.
    pdf_processor:
        Extracts text from PDF files.
    scheduler:
        Runs submitted jobs in the background.
    settings_source:
        Supplies the default crawl options.
    chunker:
        Splits page and document text into chunks.
    max_pdf_bytes:
        Files above this size are read page group by page group.
    pdf_max_attempts:
        Failed PDF jobs are retried while their attempts stay below this.
    pdf_retry_interval:
        Seconds a failed PDF job waits before it may run again.
    clock:
        Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        job_store: IJobStore,
        vector_store: IVectorStoreProvider,
        crawler: WebCrawler,
        pdf_processor: PDFProcessor,
        scheduler: IJobScheduler,
        settings_source: ISettingsSource,
        chunker: ContentChunker | None = None,
        max_pdf_bytes: int = 5 * 1024 * 1024,
        pdf_max_attempts: int = 3,
        pdf_retry_interval: int = 600,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._jobs = job_store
        self._vector_store = vector_store
        self._crawler = crawler
        self._pdf = pdf_processor
        self._scheduler = scheduler
        self._settings_source = settings_source
        self._chunker = chunker or ContentChunker()
        self._max_pdf_bytes = max_pdf_bytes
        self._pdf_max_attempts = pdf_max_attempts
        self._pdf_retry_interval = pdf_retry_interval
        self._clock = clock

    # ------------------------------------------------------------------
    # URL jobs
    # ------------------------------------------------------------------

    async def submit_url(self, url: str, options: CrawlOptions | dict[str, Any] | None = None) -> str:
        """Queue a crawl of *url* and return its job id.

        Raises
        ------
        JobError
            If *url* is blank.
        BotProtectionError
            If the URL was previously flagged as blocking automated access.
        """
        if not url or not url.strip():
            raise JobError(message="A URL is required")

        normalized = normalize_url_for_job(url)
        job_id = url_key(normalized)
        if await self._jobs.is_bot_flagged(job_id):
            logger.info("url_submission_rejected", url=normalized, reason="bot_flagged")
            raise BotProtectionError(message=BOT_PROTECTED_MESSAGE)

        crawl_options = self._merge_options(options)
        job = IngestionJob(
            job_id=job_id,
            kind=JobKind.URL_CRAWL,
            source=normalized,
            options=crawl_options.model_dump(),
        )
        await self._jobs.save_job(job)
        await self._scheduler.schedule(self.run_url_job, job_id)
        logger.info("url_job_submitted", job_id=job_id, url=normalized)
        return job_id

    async def run_url_job(self, job_id: str) -> IngestionJob | None:
        """Probe, crawl and store one URL job; ``None`` if it could not be claimed.

        Every failure, including storage errors, ends with the job in
        ``FAILED``; nothing raised here reaches the task queue.
        """
        job = await self._jobs.claim_job(job_id)
        if job is None:
            logger.info("job_not_claimable", job_id=job_id)
            return None

        try:
            return await self._crawl_and_store(job)
        except Exception as exc:
            logger.error("url_job_error", job_id=job_id, error=str(exc), exc_info=True)
            return await self._fail(job, _error_type_for(exc), _describe(exc))

    async def _crawl_and_store(self, job: IngestionJob) -> IngestionJob:
        options = CrawlOptions.model_validate(job.options)
        url = job.source

        try:
            marker = await self._crawler.probe(url)
        except CrawlError as exc:
            # The crawl reports the fetch failure itself.
            logger.warning("probe_failed", job_id=job.job_id, url=url, error=str(exc))
            marker = None
        if marker is not None:
            await self._jobs.set_bot_flag(job.job_id, url)
            return await self._fail(
                job, ErrorType.BOT_PROTECTION, f"Bot protection detected on {url} ({marker})"
            )

        try:
            result = await asyncio.wait_for(
                self._crawler.crawl(url, options),
                timeout=options.max_job_seconds + _CRAWL_GRACE_SECONDS,
            )
        except asyncio.TimeoutError:
            return await self._fail(job, ErrorType.TIMEOUT, f"Crawl of {url} timed out")

        if not result.success:
            error_type = result.error_type or ErrorType.NO_CONTENT
            detail = "; ".join(result.warnings) or result.user_message
            return await self._fail(job, error_type, detail, result.user_message or None)

        if not await self.save_results(result):
            return await self._fail(job, ErrorType.EMBEDDING_FAILED, f"No chunks were stored for {url}")

        completed = job.model_copy(
            update={
                "status": JobStatus.COMPLETED,
                "error_message": None,
                "error_type": None,
                "user_message": result.user_message,
                "result": {
                    "pages": [page.url for page in result.pages],
                    "warnings": result.warnings,
                    "embedding_count": await self._vector_store.count_by_origin(url),
                },
                "updated_at": self._clock(),
            }
        )
        await self._jobs.update_job(completed)
        logger.info("url_job_completed", job_id=job.job_id, pages=len(result.pages))
        return completed

    async def save_results(self, result: CrawlResult) -> bool:
        """Replace the stored rows of a crawl with its pages.

        Rows under the seed are deleted first, then each page is stored as
        ``external_url`` keyed by the hash of its URL.  Returns ``True`` if
        at least one chunk was stored.
        """
        origin = result.main_url
        removed = await self._vector_store.delete_by_provenance(origin)
        if removed:
            logger.info("previous_crawl_removed", origin_url=origin, removed=removed)

        stored_any = False
        for page in result.pages:
            chunks = self._chunker.split_sentences(page.content)
            if not chunks:
                continue
            page_id = url_key(page.url)
            await self._vector_store.delete_by_content(ContentType.EXTERNAL_URL, page_id)
            stored = await self._vector_store.upsert_chunks(
                ContentType.EXTERNAL_URL,
                page_id,
                chunks,
                source_url=page.url,
                origin_url=origin,
            )
            stored_any = stored_any or stored
        return stored_any

    # ------------------------------------------------------------------
    # PDF jobs
    # ------------------------------------------------------------------

    async def submit_pdf(
        self,
        attachment_id: str | int,
        file_path: str,
        file_name: str,
        temp_file: str | None = None,
    ) -> str:
        """Queue extraction of an uploaded PDF and return its job id.

        A job that already exists for the same file and has not failed is
        reused instead of queuing the file twice.  *temp_file*, when given,
        is read instead of *file_path* on the first run and removed once
        the run ends.
        """
        existing = await self._jobs.find_job_by_source(JobKind.PDF, file_path)
        if (
            existing is not None
            and existing.status != JobStatus.FAILED
            and existing.options.get("file_name") == file_name
        ):
            logger.info("pdf_job_reused", job_id=existing.job_id, file_name=file_name)
            return existing.job_id

        job_id = f"pdf-{attachment_id}"
        options: dict[str, Any] = {"attachment_id": str(attachment_id), "file_name": file_name}
        if temp_file:
            options["temp_file"] = temp_file
        job = IngestionJob(job_id=job_id, kind=JobKind.PDF, source=file_path, options=options)
        await self._jobs.save_job(job)
        await self._scheduler.schedule(self.run_pdf_job, job_id)
        logger.info("pdf_job_submitted", job_id=job_id, file_name=file_name)
        return job_id

    async def run_pdf_job(self, job_id: str) -> IngestionJob | None:
        """Extract, chunk and store one PDF job; ``None`` if it could not be claimed.

        Rows stored before a failure are removed, and the job is left
        ``FAILED`` with a retry time.
        """
        job = await self._jobs.claim_job(job_id)
        if job is None:
            logger.info("job_not_claimable", job_id=job_id)
            return None

        attachment_id = str(job.options.get("attachment_id") or job_id.removeprefix("pdf-"))
        temp_file = job.options.get("temp_file")
        try:
            return await self._extract_and_store(job, attachment_id, temp_file)
        except Exception as exc:
            if not isinstance(exc, ContentError):
                logger.error("pdf_job_error", job_id=job_id, error=str(exc), exc_info=True)
            await self._discard_partial_pdf(attachment_id)
            return await self._fail_pdf(job, _error_type_for(exc), _describe(exc), temp_file)

    async def _extract_and_store(
        self, job: IngestionJob, attachment_id: str, temp_file: str | None
    ) -> IngestionJob:
        path = temp_file or job.source
        await self._vector_store.delete_by_content(ContentType.PDF, attachment_id)
        large = self._file_size(path) > self._max_pdf_bytes
        if large:
            stored = await self._store_pdf_groups(attachment_id, path, job.source)
        else:
            text = await asyncio.to_thread(self._pdf.extract_text, path)
            stored = await self._vector_store.upsert_chunks(
                ContentType.PDF,
                attachment_id,
                self._chunker.split_words(text),
                file_path=job.source,
            )

        if not stored:
            return await self._fail_pdf(
                job, ErrorType.EMBEDDING_FAILED, f"No chunks were stored for {job.source}", temp_file
            )

        embedding_count = await self._vector_store.count_by_content(ContentType.PDF, attachment_id)
        self._remove_temp_file(temp_file)
        options = {k: v for k, v in job.options.items() if k != "temp_file"}
        completed = job.model_copy(
            update={
                "status": JobStatus.COMPLETED,
                "error_message": None,
                "error_type": None,
                "user_message": _PDF_COMPLETED_MESSAGE,
                "options": options,
                "result": {"embedding_count": embedding_count, "large_file": large},
                "next_attempt_at": None,
                "updated_at": self._clock(),
            }
        )
        await self._jobs.update_job(completed)
        logger.info("pdf_job_completed", job_id=job.job_id, large_file=large)
        return completed

    async def process_pending_pdf_jobs(self, batch: int = 1) -> int:
        """Run up to *batch* due PDF jobs, retrying failed ones; return how many ran."""
        due = await self._jobs.list_jobs(
            kind=JobKind.PDF,
            statuses=[JobStatus.PENDING, JobStatus.FAILED],
            max_attempts=self._pdf_max_attempts,
            due_before=self._clock(),
            limit=batch,
        )
        ran = 0
        for job in due:
            if job.status == JobStatus.FAILED:
                await self._jobs.update_job(
                    job.model_copy(update={"status": JobStatus.PENDING, "updated_at": self._clock()})
                )
                logger.info("pdf_job_retry", job_id=job.job_id, attempts=job.attempts)
            if await self.run_pdf_job(job.job_id) is not None:
                ran += 1
        return ran

    # ------------------------------------------------------------------
    # Housekeeping and status
    # ------------------------------------------------------------------

    async def cleanup_failed_jobs(self, days: int = 7) -> int:
        """Delete failed jobs that exhausted their retries more than *days* ago."""
        return await self._jobs.delete_failed_jobs(
            older_than=self._clock() - timedelta(days=days),
            min_attempts=self._pdf_max_attempts,
        )

    async def get_status(self, job_id: str) -> JobStatusReport:
        job = await self._jobs.get_job(job_id)
        if job is None:
            return JobStatusReport(job_id=job_id, found=False, user_message="No job found with this ID.")

        if job.status == JobStatus.FAILED:
            message = job.user_message or USER_MESSAGES.get(job.error_type, _STATUS_MESSAGES[job.status])
        else:
            message = job.user_message or _STATUS_MESSAGES[job.status]

        return JobStatusReport(
            job_id=job.job_id,
            status=job.status,
            user_message=message,
            error_type=job.error_type,
            embedding_count=await self._embedding_count(job),
            attempts=job.attempts,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )

    async def check_urls_status(self, urls: list[str]) -> dict[str, UrlStatus]:
        """Summarize the ingestion state of each URL in *urls*."""
        statuses: dict[str, UrlStatus] = {}
        for url in urls:
            normalized = normalize_url_for_job(url)
            key = url_key(normalized)
            if await self._jobs.is_bot_flagged(key):
                statuses[url] = UrlStatus.BOT_PROTECTED
                continue

            job = await self._jobs.get_job(key)
            if job is None:
                statuses[url] = UrlStatus.NOT_FOUND
            elif job.status in (JobStatus.PENDING, JobStatus.PROCESSING):
                statuses[url] = UrlStatus.PROCESSING
            elif job.status == JobStatus.COMPLETED:
                count = await self._vector_store.count_by_origin(job.source)
                statuses[url] = UrlStatus.PROCESSED if count else UrlStatus.NO_CONTENT
            elif job.error_type == ErrorType.NO_CONTENT:
                statuses[url] = UrlStatus.NO_CONTENT
            elif job.error_type == ErrorType.BOT_PROTECTION:
                statuses[url] = UrlStatus.BOT_PROTECTED
            else:
                statuses[url] = UrlStatus.FAILED
        return statuses

    async def delete_url(self, url: str, delete_all: bool = False) -> int:
        """Delete the rows of one crawled page, or of a whole crawl.

        With ``delete_all`` every row whose seed is (or starts with) *url*
        is removed.  The URL's job record and bot flag are removed either
        way.  Returns the number of rows deleted.
        """
        normalized = normalize_url_for_job(url)
        if delete_all:
            removed = await self._vector_store.delete_by_provenance(normalized, exact_match=False)
        else:
            removed = await self._vector_store.delete_by_source_url(normalized)
            if url != normalized:
                removed += await self._vector_store.delete_by_source_url(url)

        key = url_key(normalized)
        await self._jobs.delete_job(key)
        await self._jobs.clear_bot_flag(key)
        logger.info("url_deleted", url=normalized, delete_all=delete_all, removed=removed)
        return removed

    async def list_crawled_urls(self, origin_url: str) -> list[str]:
        return await self._vector_store.list_source_urls(normalize_url_for_job(origin_url))

    async def clear_bot_flag(self, url: str) -> bool:
        cleared = await self._jobs.clear_bot_flag(url_key(url))
        logger.info("bot_flag_cleared", url=url, cleared=cleared)
        return cleared

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _merge_options(self, options: CrawlOptions | dict[str, Any] | None) -> CrawlOptions:
        defaults = self._settings_source.get_config().crawl
        if options is None:
            return defaults
        if isinstance(options, CrawlOptions):
            return options
        return CrawlOptions.model_validate({**defaults.model_dump(), **options})

    async def _store_pdf_groups(self, attachment_id: str, path: str, file_path: str) -> bool:
        groups = self._pdf.iter_page_groups(path)
        stored_any = False
        group_no = 0
        while True:
            text = await asyncio.to_thread(next, groups, None)
            if text is None:
                break
            group_no += 1
            stored = await self._vector_store.upsert_chunks(
                ContentType.PDF,
                attachment_id,
                self._chunker.split_words(text),
                file_path=file_path,
            )
            stored_any = stored_any or stored
            logger.debug("pdf_group_stored", attachment_id=attachment_id, group=group_no, stored=stored)
        return stored_any

    async def _discard_partial_pdf(self, attachment_id: str) -> None:
        try:
            await self._vector_store.delete_by_content(ContentType.PDF, attachment_id)
        except VectorStoreError as exc:
            logger.warning("pdf_partial_cleanup_failed", attachment_id=attachment_id, error=str(exc))

    async def _embedding_count(self, job: IngestionJob) -> int:
        if job.kind == JobKind.URL_CRAWL:
            return await self._vector_store.count_by_origin(job.source)
        attachment_id = str(job.options.get("attachment_id") or job.job_id.removeprefix("pdf-"))
        return await self._vector_store.count_by_content(ContentType.PDF, attachment_id)

    async def _fail(
        self,
        job: IngestionJob,
        error_type: ErrorType,
        error_message: str,
        user_message: str | None = None,
        **extra: Any,
    ) -> IngestionJob:
        failed = job.model_copy(
            update={
                "status": JobStatus.FAILED,
                "attempts": job.attempts + 1,
                "error_message": error_message,
                "error_type": error_type,
                "user_message": user_message or USER_MESSAGES[error_type],
                "updated_at": self._clock(),
                **extra,
            }
        )
        await self._jobs.update_job(failed)
        logger.warning(
            "job_failed",
            job_id=job.job_id,
            kind=job.kind.value,
            error_type=error_type.value,
            error=error_message,
            attempts=failed.attempts,
        )
        return failed

    async def _fail_pdf(
        self,
        job: IngestionJob,
        error_type: ErrorType,
        error_message: str,
        temp_file: str | None,
    ) -> IngestionJob:
        self._remove_temp_file(temp_file)
        options = {k: v for k, v in job.options.items() if k != "temp_file"}
        return await self._fail(
            job,
            error_type,
            error_message,
            options=options,
            next_attempt_at=self._clock() + timedelta(seconds=self._pdf_retry_interval),
        )

    def _file_size(self, path: str) -> int:
        try:
            return os.path.getsize(path)
        except OSError as exc:
            raise PDFReadError(message=f"Unable to read PDF file: {exc}") from exc

    @staticmethod
    def _remove_temp_file(temp_file: str | None) -> None:
        if not temp_file:
            return
        try:
            os.remove(temp_file)
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("temp_file_remove_failed", path=temp_file, error=str(exc))
