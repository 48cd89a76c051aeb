"""Unit tests for IngestionJobManager (URL crawl and PDF jobs)."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.models.jobs import (
    CrawledPage,
    CrawlOptions,
    CrawlResult,
    ErrorType,
    JobKind,
    JobStatus,
    UrlStatus,
)
from src.pipeline.job_manager import BOT_PROTECTED_MESSAGE, USER_MESSAGES, IngestionJobManager
from src.providers.jobs.sqlite_job_store import SQLiteJobStore
from src.providers.settings.static_settings_source import StaticSettingsSource
from src.providers.vector_store.sqlite_vector_store import SQLiteVectorStore
from src.services.crawling.url_utils import url_key
from src.utils.errors import (
    BotProtectionError,
    CrawlError,
    EmptyContentError,
    InsufficientContentError,
    JobError,
    VectorStoreError,
)
from tests.conftest import KeywordEmbeddingProvider, RecordingScheduler

SEED = "https://ex.com/guide"
NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class MutableClock:
    def __init__(self) -> None:
        self.now = NOW

    def __call__(self) -> datetime:
        return self.now


def _crawl_result(url: str, options: CrawlOptions | None = None) -> CrawlResult:
    return CrawlResult(
        success=True,
        main_url=url,
        pages=[
            CrawledPage(url=url, content="Garden hose care guide. Store the hose indoors in winter."),
            CrawledPage(url=f"{url}/warranty", content="The warranty covers two years.", depth=1),
        ],
        user_message="The main page has been successfully processed.",
    )


@pytest.fixture()
def crawler() -> MagicMock:
    crawler = MagicMock()
    crawler.probe = AsyncMock(return_value=None)
    crawler.crawl = AsyncMock(side_effect=_crawl_result)
    return crawler


@pytest.fixture()
def pdf_processor() -> MagicMock:
    processor = MagicMock()
    processor.extract_text.return_value = "Garden hose manual. The warranty covers two years of use."
    return processor


@pytest.fixture()
def clock() -> MutableClock:
    return MutableClock()


def _manager(
    job_store: SQLiteJobStore,
    vector_store: SQLiteVectorStore,
    crawler: MagicMock,
    pdf_processor: MagicMock,
    scheduler: RecordingScheduler,
    clock: MutableClock,
    **kwargs: object,
) -> IngestionJobManager:
    return IngestionJobManager(
        job_store=job_store,
        vector_store=vector_store,
        crawler=crawler,
        pdf_processor=pdf_processor,
        scheduler=scheduler,
        settings_source=StaticSettingsSource(),
        clock=clock,
        **kwargs,  # type: ignore[arg-type]
    )


@pytest.fixture()
def manager(
    job_store: SQLiteJobStore,
    vector_store: SQLiteVectorStore,
    crawler: MagicMock,
    pdf_processor: MagicMock,
    scheduler: RecordingScheduler,
    clock: MutableClock,
) -> IngestionJobManager:
    return _manager(job_store, vector_store, crawler, pdf_processor, scheduler, clock)


# ======================================================================
# URL jobs
# ======================================================================


class TestSubmitUrl:
    @pytest.mark.asyncio
    async def test_blank_url_rejected(self, manager: IngestionJobManager) -> None:
        with pytest.raises(JobError):
            await manager.submit_url("  ")

    @pytest.mark.asyncio
    async def test_saves_pending_job_and_schedules_it(
        self, manager: IngestionJobManager, job_store: SQLiteJobStore, scheduler: RecordingScheduler
    ) -> None:
        job_id = await manager.submit_url("EX.com/guide/")

        assert job_id == url_key(SEED)
        job = await job_store.get_job(job_id)
        assert job is not None
        assert job.status == JobStatus.PENDING
        assert job.source == SEED
        assert job.options == CrawlOptions().model_dump()
        assert scheduler.scheduled == [(manager.run_url_job, (job_id,), 0.0)]

    @pytest.mark.asyncio
    async def test_partial_options_fill_from_defaults(
        self, manager: IngestionJobManager, job_store: SQLiteJobStore
    ) -> None:
        job_id = await manager.submit_url(SEED, {"max_pages": 3, "follow_links": False})
        job = await job_store.get_job(job_id)

        assert job is not None
        assert job.options["max_pages"] == 3
        assert job.options["follow_links"] is False
        assert job.options["max_depth"] == 2

    @pytest.mark.asyncio
    async def test_flagged_url_rejected(self, manager: IngestionJobManager, job_store: SQLiteJobStore) -> None:
        await job_store.set_bot_flag(url_key(SEED), SEED)
        with pytest.raises(BotProtectionError) as excinfo:
            await manager.submit_url(SEED + "/")
        assert excinfo.value.message == BOT_PROTECTED_MESSAGE

    @pytest.mark.asyncio
    async def test_resubmission_in_another_spelling_keeps_one_job(
        self, manager: IngestionJobManager, job_store: SQLiteJobStore, scheduler: RecordingScheduler
    ) -> None:
        first = await manager.submit_url("EX.com/guide/")
        second = await manager.submit_url(SEED)

        assert first == second
        jobs = await job_store.list_jobs(kind=JobKind.URL_CRAWL)
        assert [job.job_id for job in jobs] == [first]
        assert jobs[0].status == JobStatus.PENDING

        results = await scheduler.run_all()
        assert [job.status for job in results if job is not None] == [JobStatus.COMPLETED]
        assert len(await job_store.list_jobs(kind=JobKind.URL_CRAWL)) == 1


class TestRunUrlJob:
    @pytest.mark.asyncio
    async def test_successful_crawl(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        vector_store: SQLiteVectorStore,
        crawler: MagicMock,
    ) -> None:
        job_id = await manager.submit_url(SEED)
        (job,) = await scheduler.run_all()

        assert job.status == JobStatus.COMPLETED
        assert job.result["pages"] == [SEED, f"{SEED}/warranty"]
        assert job.result["embedding_count"] == await vector_store.count_by_origin(SEED)
        assert job.result["embedding_count"] >= 2
        assert job.updated_at == NOW
        assert await vector_store.list_source_urls(SEED) == [SEED, f"{SEED}/warranty"]
        crawler.crawl.assert_awaited_once()

        report = await manager.get_status(job_id)
        assert report.status == JobStatus.COMPLETED
        assert report.embedding_count == job.result["embedding_count"]
        assert report.user_message == "The main page has been successfully processed."

    @pytest.mark.asyncio
    async def test_pages_stored_as_external_url(
        self, manager: IngestionJobManager, scheduler: RecordingScheduler, vector_store: SQLiteVectorStore
    ) -> None:
        await manager.submit_url(SEED)
        await scheduler.run_all()

        records = await vector_store.fetch_by_content("external_url", url_key(f"{SEED}/warranty"))
        assert [r.chunk_text for r in records] == ["The warranty covers two years."]
        assert records[0].origin_url == SEED
        assert records[0].source_url == f"{SEED}/warranty"

    @pytest.mark.asyncio
    async def test_unclaimable_job(self, manager: IngestionJobManager) -> None:
        assert await manager.run_url_job("unknown") is None

    @pytest.mark.asyncio
    async def test_probe_marker_flags_url(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        crawler: MagicMock,
        job_store: SQLiteJobStore,
    ) -> None:
        crawler.probe.return_value = "captcha"
        job_id = await manager.submit_url(SEED)
        (job,) = await scheduler.run_all()

        assert job.status == JobStatus.FAILED
        assert job.error_type == ErrorType.BOT_PROTECTION
        assert job.attempts == 1
        assert job.user_message == BOT_PROTECTED_MESSAGE
        assert await job_store.is_bot_flagged(job_id)
        crawler.crawl.assert_not_awaited()
        with pytest.raises(BotProtectionError):
            await manager.submit_url(SEED)

    @pytest.mark.asyncio
    async def test_probe_fetch_failure_is_not_fatal(
        self, manager: IngestionJobManager, scheduler: RecordingScheduler, crawler: MagicMock
    ) -> None:
        crawler.probe.side_effect = CrawlError(message="HTTP error: 500")
        await manager.submit_url(SEED)
        (job,) = await scheduler.run_all()

        assert job.status == JobStatus.COMPLETED
        crawler.crawl.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unsuccessful_crawl(
        self, manager: IngestionJobManager, scheduler: RecordingScheduler, crawler: MagicMock
    ) -> None:
        crawler.crawl.side_effect = None
        crawler.crawl.return_value = CrawlResult(
            success=False,
            main_url=SEED,
            warnings=[f"Failed to fetch content from main URL: {SEED} - HTTP error: 404"],
            user_message="Failed to fetch the URL: HTTP error: 404",
            error_type=ErrorType.FETCH_FAILED,
        )
        job_id = await manager.submit_url(SEED)
        (job,) = await scheduler.run_all()

        assert job.status == JobStatus.FAILED
        assert job.error_type == ErrorType.FETCH_FAILED
        assert job.error_message == f"Failed to fetch content from main URL: {SEED} - HTTP error: 404"
        report = await manager.get_status(job_id)
        assert report.user_message == "Failed to fetch the URL: HTTP error: 404"

    @pytest.mark.asyncio
    async def test_crawl_timeout(
        self, manager: IngestionJobManager, scheduler: RecordingScheduler, crawler: MagicMock
    ) -> None:
        crawler.crawl.side_effect = asyncio.TimeoutError()
        await manager.submit_url(SEED)
        (job,) = await scheduler.run_all()

        assert job.error_type == ErrorType.TIMEOUT
        assert job.user_message == USER_MESSAGES[ErrorType.TIMEOUT]

    @pytest.mark.asyncio
    async def test_nothing_embedded(
        self,
        tmp_path: Path,
        job_store: SQLiteJobStore,
        crawler: MagicMock,
        pdf_processor: MagicMock,
        scheduler: RecordingScheduler,
        clock: MutableClock,
    ) -> None:
        store = SQLiteVectorStore(KeywordEmbeddingProvider(available=False), tmp_path / "nokey.db")
        await store.initialize()
        manager = _manager(job_store, store, crawler, pdf_processor, scheduler, clock)

        await manager.submit_url(SEED)
        (job,) = await scheduler.run_all()

        assert job.error_type == ErrorType.EMBEDDING_FAILED

    @pytest.mark.asyncio
    async def test_recrawl_replaces_rows(
        self, manager: IngestionJobManager, scheduler: RecordingScheduler, vector_store: SQLiteVectorStore
    ) -> None:
        await manager.submit_url(SEED)
        await scheduler.run_all()
        first = await vector_store.count()

        await manager.submit_url(SEED)
        (job,) = await scheduler.run_all()

        assert job.status == JobStatus.COMPLETED
        assert await vector_store.count() == first

    @pytest.mark.asyncio
    async def test_storage_error_after_save_fails_job(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        vector_store: SQLiteVectorStore,
        job_store: SQLiteJobStore,
    ) -> None:
        job_id = await manager.submit_url(SEED)
        with patch.object(
            vector_store, "count_by_origin", AsyncMock(side_effect=VectorStoreError(message="disk I/O error"))
        ):
            (job,) = await scheduler.run_all()

        assert job.status == JobStatus.FAILED
        assert job.error_type == ErrorType.STORAGE_FAILED
        assert job.error_message == "disk I/O error"
        assert job.user_message == USER_MESSAGES[ErrorType.STORAGE_FAILED]
        stored = await job_store.get_job(job_id)
        assert stored is not None
        assert stored.status == JobStatus.FAILED

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_job(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        crawler: MagicMock,
        job_store: SQLiteJobStore,
    ) -> None:
        crawler.crawl.side_effect = RuntimeError("parser exploded")
        job_id = await manager.submit_url(SEED)
        (job,) = await scheduler.run_all()

        assert job.error_type == ErrorType.INTERNAL
        assert job.error_message == "RuntimeError: parser exploded"
        assert job.attempts == 1
        report = await manager.get_status(job_id)
        assert report.status == JobStatus.FAILED
        assert report.user_message == USER_MESSAGES[ErrorType.INTERNAL]

    @pytest.mark.asyncio
    async def test_failed_job_can_be_resubmitted(
        self, manager: IngestionJobManager, scheduler: RecordingScheduler, crawler: MagicMock
    ) -> None:
        crawler.crawl.side_effect = RuntimeError("parser exploded")
        await manager.submit_url(SEED)
        await scheduler.run_all()

        crawler.crawl.side_effect = _crawl_result
        await manager.submit_url(SEED)
        (job,) = await scheduler.run_all()

        assert job.status == JobStatus.COMPLETED



class TestUrlHousekeeping:
    @pytest.mark.asyncio
    async def test_get_status_unknown(self, manager: IngestionJobManager) -> None:
        report = await manager.get_status("nope")
        assert report.found is False
        assert report.user_message == "No job found with this ID."

    @pytest.mark.asyncio
    async def test_pending_status_message(self, manager: IngestionJobManager) -> None:
        job_id = await manager.submit_url(SEED)
        report = await manager.get_status(job_id)
        assert report.status == JobStatus.PENDING
        assert report.user_message == "The job is queued for processing."

    @pytest.mark.asyncio
    async def test_check_urls_status(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        job_store: SQLiteJobStore,
    ) -> None:
        await manager.submit_url(SEED)
        await scheduler.run_all()
        await manager.submit_url("https://ex.com/pending")
        await job_store.set_bot_flag(url_key("https://ex.com/blocked"), "https://ex.com/blocked")

        statuses = await manager.check_urls_status(
            [SEED, "https://ex.com/pending", "https://ex.com/blocked", "https://ex.com/never"]
        )
        assert statuses == {
            SEED: UrlStatus.PROCESSED,
            "https://ex.com/pending": UrlStatus.PROCESSING,
            "https://ex.com/blocked": UrlStatus.BOT_PROTECTED,
            "https://ex.com/never": UrlStatus.NOT_FOUND,
        }

    @pytest.mark.asyncio
    async def test_delete_single_page(
        self, manager: IngestionJobManager, scheduler: RecordingScheduler, vector_store: SQLiteVectorStore
    ) -> None:
        await manager.submit_url(SEED)
        await scheduler.run_all()

        removed = await manager.delete_url(f"{SEED}/warranty")

        assert removed == 1
        assert await manager.list_crawled_urls(SEED) == [SEED]

    @pytest.mark.asyncio
    async def test_delete_whole_crawl(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        vector_store: SQLiteVectorStore,
        job_store: SQLiteJobStore,
    ) -> None:
        job_id = await manager.submit_url(SEED)
        await scheduler.run_all()

        removed = await manager.delete_url(SEED, delete_all=True)

        assert removed >= 2
        assert await vector_store.count() == 0
        assert await job_store.get_job(job_id) is None

    @pytest.mark.asyncio
    async def test_clear_bot_flag(self, manager: IngestionJobManager, job_store: SQLiteJobStore) -> None:
        await job_store.set_bot_flag(url_key(SEED), SEED)
        assert await manager.clear_bot_flag(SEED) is True
        assert await manager.submit_url(SEED) == url_key(SEED)


# ======================================================================
# PDF jobs
# ======================================================================


@pytest.fixture()
def pdf_file(tmp_path: Path) -> Path:
    path = tmp_path / "manual.pdf"
    path.write_bytes(b"%PDF-1.4 small")
    return path


class TestPdfJobs:
    @pytest.mark.asyncio
    async def test_submit_and_run(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        vector_store: SQLiteVectorStore,
        pdf_file: Path,
    ) -> None:
        job_id = await manager.submit_pdf(5, str(pdf_file), "manual.pdf")
        (job,) = await scheduler.run_all()

        assert job_id == "pdf-5"
        assert job.status == JobStatus.COMPLETED
        assert job.result == {"embedding_count": 1, "large_file": False}
        (record,) = await vector_store.fetch_by_content("pdf", "5")
        assert record.file_path == str(pdf_file)

    @pytest.mark.asyncio
    async def test_duplicate_submission_reuses_job(
        self, manager: IngestionJobManager, scheduler: RecordingScheduler, pdf_file: Path
    ) -> None:
        first = await manager.submit_pdf(5, str(pdf_file), "manual.pdf")
        second = await manager.submit_pdf(6, str(pdf_file), "manual.pdf")

        assert second == first
        assert len(scheduler.scheduled) == 1

    @pytest.mark.asyncio
    async def test_temp_file_used_then_removed(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        pdf_processor: MagicMock,
        pdf_file: Path,
        tmp_path: Path,
    ) -> None:
        temp = tmp_path / "upload.tmp"
        temp.write_bytes(b"%PDF-1.4 temp")
        await manager.submit_pdf(5, str(pdf_file), "manual.pdf", temp_file=str(temp))
        (job,) = await scheduler.run_all()

        pdf_processor.extract_text.assert_called_once_with(str(temp))
        assert not temp.exists()
        assert "temp_file" not in job.options

    @pytest.mark.asyncio
    async def test_scanned_pdf_fails_with_retry_scheduled(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        pdf_processor: MagicMock,
        vector_store: SQLiteVectorStore,
        pdf_file: Path,
    ) -> None:
        pdf_processor.extract_text.side_effect = EmptyContentError(
            message="No text content found in PDF. The file may be scanned or image-based."
        )
        job_id = await manager.submit_pdf(5, str(pdf_file), "manual.pdf")
        (job,) = await scheduler.run_all()

        assert job.status == JobStatus.FAILED
        assert job.error_type == ErrorType.EXTRACTION_FAILED
        assert job.attempts == 1
        assert job.next_attempt_at == NOW + timedelta(seconds=600)
        assert await vector_store.count_by_content("pdf", "5") == 0
        report = await manager.get_status(job_id)
        assert report.user_message == USER_MESSAGES[ErrorType.EXTRACTION_FAILED]

    @pytest.mark.asyncio
    async def test_missing_file(self, manager: IngestionJobManager, scheduler: RecordingScheduler, tmp_path: Path) -> None:
        await manager.submit_pdf(5, str(tmp_path / "gone.pdf"), "gone.pdf")
        (job,) = await scheduler.run_all()
        assert job.error_type == ErrorType.EXTRACTION_FAILED

    @pytest.mark.asyncio
    async def test_large_file_read_in_groups(
        self,
        job_store: SQLiteJobStore,
        vector_store: SQLiteVectorStore,
        crawler: MagicMock,
        pdf_processor: MagicMock,
        scheduler: RecordingScheduler,
        clock: MutableClock,
        pdf_file: Path,
    ) -> None:
        pdf_processor.iter_page_groups.return_value = iter(["Group one about hoses.", "Group two about nozzles."])
        manager = _manager(job_store, vector_store, crawler, pdf_processor, scheduler, clock, max_pdf_bytes=4)

        await manager.submit_pdf(5, str(pdf_file), "manual.pdf")
        (job,) = await scheduler.run_all()

        assert job.status == JobStatus.COMPLETED
        assert job.result == {"embedding_count": 2, "large_file": True}
        pdf_processor.extract_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_large_file_failure_removes_partial_rows(
        self,
        job_store: SQLiteJobStore,
        vector_store: SQLiteVectorStore,
        crawler: MagicMock,
        pdf_processor: MagicMock,
        scheduler: RecordingScheduler,
        clock: MutableClock,
        pdf_file: Path,
    ) -> None:
        def groups(path: str) -> Iterator[str]:
            yield "Tiny"
            raise InsufficientContentError(message="Extracted text is too short (4 characters)")

        pdf_processor.iter_page_groups.side_effect = groups
        manager = _manager(job_store, vector_store, crawler, pdf_processor, scheduler, clock, max_pdf_bytes=4)

        await manager.submit_pdf(5, str(pdf_file), "manual.pdf")
        (job,) = await scheduler.run_all()

        assert job.error_type == ErrorType.EXTRACTION_FAILED
        assert await vector_store.count_by_content("pdf", "5") == 0

    @pytest.mark.asyncio
    async def test_failed_job_retried_when_due(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        pdf_processor: MagicMock,
        clock: MutableClock,
        pdf_file: Path,
    ) -> None:
        pdf_processor.extract_text.side_effect = [EmptyContentError(), "Garden hose manual text for retry."]
        job_id = await manager.submit_pdf(5, str(pdf_file), "manual.pdf")
        await scheduler.run_all()

        assert await manager.process_pending_pdf_jobs() == 0

        clock.now = NOW + timedelta(minutes=11)
        assert await manager.process_pending_pdf_jobs() == 1
        report = await manager.get_status(job_id)
        assert report.status == JobStatus.COMPLETED
        assert report.attempts == 1

    @pytest.mark.asyncio
    async def test_exhausted_job_not_retried(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        pdf_processor: MagicMock,
        clock: MutableClock,
        pdf_file: Path,
    ) -> None:
        pdf_processor.extract_text.side_effect = EmptyContentError()
        await manager.submit_pdf(5, str(pdf_file), "manual.pdf")
        await scheduler.run_all()
        for minutes in (11, 22):
            clock.now = NOW + timedelta(minutes=minutes)
            assert await manager.process_pending_pdf_jobs() == 1

        clock.now = NOW + timedelta(minutes=60)
        assert await manager.process_pending_pdf_jobs() == 0

    @pytest.mark.asyncio
    async def test_cleanup_failed_jobs(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        pdf_processor: MagicMock,
        clock: MutableClock,
        job_store: SQLiteJobStore,
        pdf_file: Path,
    ) -> None:
        pdf_processor.extract_text.side_effect = EmptyContentError()
        job_id = await manager.submit_pdf(5, str(pdf_file), "manual.pdf")
        await scheduler.run_all()
        for minutes in (11, 22):
            clock.now = NOW + timedelta(minutes=minutes)
            await manager.process_pending_pdf_jobs()

        assert await manager.cleanup_failed_jobs(days=7) == 0
        clock.now = NOW + timedelta(days=8)
        assert await manager.cleanup_failed_jobs(days=7) == 1
        assert await job_store.get_job(job_id) is None

    @pytest.mark.asyncio
    async def test_storage_error_after_store_fails_job(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        vector_store: SQLiteVectorStore,
        job_store: SQLiteJobStore,
        pdf_file: Path,
        tmp_path: Path,
    ) -> None:
        temp = tmp_path / "upload.tmp"
        temp.write_bytes(b"%PDF-1.4 temp")
        job_id = await manager.submit_pdf(5, str(pdf_file), "manual.pdf", temp_file=str(temp))
        with patch.object(
            vector_store, "count_by_content", AsyncMock(side_effect=VectorStoreError(message="disk I/O error"))
        ):
            (job,) = await scheduler.run_all()

        assert job.status == JobStatus.FAILED
        assert job.error_type == ErrorType.STORAGE_FAILED
        assert job.next_attempt_at == NOW + timedelta(seconds=600)
        assert not temp.exists()
        assert await vector_store.count_by_content("pdf", "5") == 0
        stored = await job_store.get_job(job_id)
        assert stored is not None
        assert stored.status == JobStatus.FAILED

    @pytest.mark.asyncio
    async def test_cleanup_error_still_fails_job(
        self,
        manager: IngestionJobManager,
        scheduler: RecordingScheduler,
        pdf_processor: MagicMock,
        vector_store: SQLiteVectorStore,
        job_store: SQLiteJobStore,
        pdf_file: Path,
    ) -> None:
        pdf_processor.extract_text.side_effect = EmptyContentError()
        job_id = await manager.submit_pdf(5, str(pdf_file), "manual.pdf")
        with patch.object(
            vector_store,
            "delete_by_content",
            AsyncMock(side_effect=[0, VectorStoreError(message="database is locked")]),
        ):
            (job,) = await scheduler.run_all()

        assert job.error_type == ErrorType.EXTRACTION_FAILED
        stored = await job_store.get_job(job_id)
        assert stored is not None
        assert stored.status == JobStatus.FAILED
