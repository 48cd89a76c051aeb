"""SQLite-backed ingestion job store.

Persists :class:`~src.models.jobs.IngestionJob` records and
bot-protection flags to ``data/ingestion_jobs.db`` using ``aiosqlite``.

Job ids are deterministic (md5 of the normalized URL, or ``pdf-<id>``), so
``save_job`` is an upsert: resubmitting the same input overwrites the
previous record instead of stacking duplicates.  ``claim_job`` is a
compare-and-set on ``status = 'pending'`` so that only one worker can move
a job into PROCESSING.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.job_store import IJobStore
from src.models.jobs import IngestionJob, JobKind, JobStatus
from src.utils.errors import JobError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/ingestion_jobs.db")

_CREATE_JOBS_SQL = """\
CREATE TABLE IF NOT EXISTS ingestion_jobs (
    job_id          TEXT    PRIMARY KEY,
    kind            TEXT    NOT NULL,
    source          TEXT    NOT NULL,
    status          TEXT    NOT NULL,
    attempts        INTEGER NOT NULL DEFAULT 0,
    error_message   TEXT,
    error_type      TEXT,
    user_message    TEXT,
    options         TEXT    NOT NULL DEFAULT '{}',
    result          TEXT    NOT NULL DEFAULT '{}',
    created_at      TEXT    NOT NULL,
    updated_at      TEXT    NOT NULL,
    next_attempt_at TEXT
);
"""

_CREATE_FLAGS_SQL = """\
CREATE TABLE IF NOT EXISTS bot_flags (
    url_key    TEXT PRIMARY KEY,
    url        TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_jobs_kind_status ON ingestion_jobs(kind, status);",
    "CREATE INDEX IF NOT EXISTS idx_jobs_source ON ingestion_jobs(kind, source);",
]

_UPSERT_SQL = """\
INSERT INTO ingestion_jobs
    (job_id, kind, source, status, attempts, error_message, error_type, user_message,
     options, result, created_at, updated_at, next_attempt_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(job_id)
DO UPDATE SET kind            = excluded.kind,
              source          = excluded.source,
              status          = excluded.status,
              attempts        = excluded.attempts,
              error_message   = excluded.error_message,
              error_type      = excluded.error_type,
              user_message    = excluded.user_message,
              options         = excluded.options,
              result          = excluded.result,
              created_at      = excluded.created_at,
              updated_at      = excluded.updated_at,
              next_attempt_at = excluded.next_attempt_at;
"""

_UPDATE_SQL = """\
UPDATE ingestion_jobs
SET status = ?, attempts = ?, error_message = ?, error_type = ?, user_message = ?,
    options = ?, result = ?, updated_at = ?, next_attempt_at = ?
WHERE job_id = ?;
"""

_CLAIM_SQL = """\
UPDATE ingestion_jobs
SET status = 'processing', updated_at = ?
WHERE job_id = ? AND status = 'pending';
"""

_SELECT_COLUMNS = (
    "job_id, kind, source, status, attempts, error_message, error_type, user_message, "
    "options, result, created_at, updated_at, next_attempt_at"
)


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="microseconds")


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class SQLiteJobStore(IJobStore):
    """SQLite persistence for ingestion jobs and bot flags."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the job and flag tables if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_JOBS_SQL)
            await db.execute(_CREATE_FLAGS_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("job_store_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    async def save_job(self, job: IngestionJob) -> None:
        await self._write(
            _UPSERT_SQL,
            (
                job.job_id,
                job.kind.value,
                job.source,
                job.status.value,
                job.attempts,
                job.error_message,
                job.error_type.value if job.error_type else None,
                job.user_message,
                json.dumps(job.options),
                json.dumps(job.result),
                _iso(job.created_at),
                _iso(job.updated_at),
                _iso(job.next_attempt_at),
            ),
        )
        logger.debug("job_saved", job_id=job.job_id, status=job.status.value)

    async def get_job(self, job_id: str) -> IngestionJob | None:
        rows = await self._read(
            f"SELECT {_SELECT_COLUMNS} FROM ingestion_jobs WHERE job_id = ?", (job_id,)
        )
        return _row_to_job(rows[0]) if rows else None

    async def claim_job(self, job_id: str) -> IngestionJob | None:
        changed = await self._write(_CLAIM_SQL, (_now_iso(), job_id))
        if changed != 1:
            return None
        return await self.get_job(job_id)

    async def update_job(self, job: IngestionJob) -> None:
        changed = await self._write(
            _UPDATE_SQL,
            (
                job.status.value,
                job.attempts,
                job.error_message,
                job.error_type.value if job.error_type else None,
                job.user_message,
                json.dumps(job.options),
                json.dumps(job.result),
                _iso(job.updated_at),
                _iso(job.next_attempt_at),
                job.job_id,
            ),
        )
        if changed != 1:
            raise JobError(
                message=f"Job {job.job_id} does not exist",
                provider_name=self.get_provider_name(),
            )

    async def delete_job(self, job_id: str) -> bool:
        changed = await self._write("DELETE FROM ingestion_jobs WHERE job_id = ?", (job_id,))
        return changed > 0

    async def list_jobs(
        self,
        kind: JobKind | None = None,
        statuses: list[JobStatus] | None = None,
        max_attempts: int | None = None,
        due_before: datetime | None = None,
        limit: int | None = None,
    ) -> list[IngestionJob]:
        clauses: list[str] = []
        params: list[Any] = []
        if kind is not None:
            clauses.append("kind = ?")
            params.append(kind.value)
        if statuses:
            clauses.append(f"status IN ({', '.join('?' for _ in statuses)})")
            params.extend(s.value for s in statuses)
        if max_attempts is not None:
            clauses.append("attempts < ?")
            params.append(max_attempts)
        if due_before is not None:
            clauses.append("(next_attempt_at IS NULL OR next_attempt_at <= ?)")
            params.append(_iso(due_before))

        sql = f"SELECT {_SELECT_COLUMNS} FROM ingestion_jobs"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at ASC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        rows = await self._read(sql, tuple(params))
        return [_row_to_job(r) for r in rows]

    async def find_job_by_source(self, kind: JobKind, source: str) -> IngestionJob | None:
        rows = await self._read(
            f"SELECT {_SELECT_COLUMNS} FROM ingestion_jobs "
            "WHERE kind = ? AND source = ? ORDER BY updated_at DESC LIMIT 1",
            (kind.value, source),
        )
        return _row_to_job(rows[0]) if rows else None

    async def delete_failed_jobs(self, older_than: datetime, min_attempts: int) -> int:
        deleted = await self._write(
            "DELETE FROM ingestion_jobs "
            "WHERE status = 'failed' AND attempts >= ? AND updated_at < ?",
            (min_attempts, _iso(older_than)),
        )
        logger.info("failed_jobs_cleaned", count=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Bot-protection flags
    # ------------------------------------------------------------------

    async def set_bot_flag(self, url_key: str, url: str) -> None:
        await self._write(
            "INSERT INTO bot_flags (url_key, url, created_at) VALUES (?, ?, ?) "
            "ON CONFLICT(url_key) DO UPDATE SET url = excluded.url",
            (url_key, url, _now_iso()),
        )
        logger.info("bot_flag_set", url=url)

    async def is_bot_flagged(self, url_key: str) -> bool:
        rows = await self._read("SELECT 1 FROM bot_flags WHERE url_key = ?", (url_key,))
        return bool(rows)

    async def clear_bot_flag(self, url_key: str) -> bool:
        changed = await self._write("DELETE FROM bot_flags WHERE url_key = ?", (url_key,))
        return changed > 0

    def get_provider_name(self) -> str:
        return "sqlite_job_store"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _write(self, sql: str, params: tuple[Any, ...]) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(sql, params)
                await db.commit()
                return cursor.rowcount
        except aiosqlite.Error as exc:
            raise JobError(
                message=f"Job store write failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def _read(self, sql: str, params: tuple[Any, ...]) -> list[aiosqlite.Row]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, params)
                return list(await cursor.fetchall())
        except aiosqlite.Error as exc:
            raise JobError(
                message=f"Job store read failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc


def _row_to_job(row: aiosqlite.Row) -> IngestionJob:
    data = dict(row)
    data["options"] = json.loads(data["options"] or "{}")
    data["result"] = json.loads(data["result"] or "{}")
    return IngestionJob.model_validate(data)
