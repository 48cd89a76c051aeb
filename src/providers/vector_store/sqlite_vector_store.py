"""SQLite-backed vector store.

Persists one row per embedded chunk to a local SQLite database (default
``data/embeddings.db``) using ``aiosqlite`` for async I/O.  Vectors are
stored as JSON arrays; similarity is computed outside the database by the
Similarity Ranker over the type-filtered candidate pool.

Every row write commits on its own, so a failure part-way through an item
never leaves a half-written row behind.  Readers may observe an item with
only some of its chunks stored while ingestion is still running.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.content import (
    ContentType,
    EmbeddingRecord,
    expand_types,
    is_singleton,
    type_value,
)
from src.utils.errors import EmbeddingError, VectorStoreError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/embeddings.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS embeddings (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    content_type TEXT    NOT NULL,
    content_id   TEXT    NOT NULL,
    chunk_index  INTEGER NOT NULL DEFAULT 0,
    chunk_text   TEXT    NOT NULL,
    embedding    TEXT    NOT NULL,
    source_url   TEXT,
    origin_url   TEXT,
    file_path    TEXT,
    created_at   TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at   TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_embeddings_content ON embeddings(content_type, content_id);",
    "CREATE INDEX IF NOT EXISTS idx_embeddings_origin ON embeddings(origin_url);",
    "CREATE INDEX IF NOT EXISTS idx_embeddings_source ON embeddings(source_url);",
]

_INSERT_SQL = """\
INSERT INTO embeddings
    (content_type, content_id, chunk_index, chunk_text, embedding, source_url, origin_url, file_path)
VALUES (?, ?, ?, ?, ?, ?, ?, ?);
"""

_UPDATE_SINGLETON_SQL = """\
UPDATE embeddings
SET chunk_text = ?,
    embedding  = ?,
    updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
WHERE id = ?;
"""

_SELECT_COLUMNS = (
    "id, content_type, content_id, chunk_index, chunk_text, embedding, "
    "source_url, origin_url, file_path, created_at, updated_at"
)


class SQLiteVectorStore(IVectorStoreProvider):
    """Embedding storage on SQLite with JSON-encoded vectors.

    Parameters
    ----------
    embedding_provider:
        Used to embed each chunk on :meth:`upsert_chunks`.
    db_path:
        Location of the SQLite file; parent directories are created by
        :meth:`initialize`.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        db_path: str | Path = _DEFAULT_DB_PATH,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the embeddings table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("vector_store_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert_chunks(
        self,
        content_type: ContentType | str,
        content_id: str | int,
        chunks: list[str],
        source_url: str | None = None,
        origin_url: str | None = None,
        file_path: str | None = None,
    ) -> bool:
        ctype = type_value(content_type)
        cid = str(content_id)
        chunks = [c for c in chunks if c and c.strip()]
        if not chunks:
            logger.warning("upsert_skipped_no_chunks", content_type=ctype, content_id=cid)
            return False

        if is_singleton(ctype):
            return await self._upsert_singleton(ctype, cid, chunks)

        stored = 0
        for index, chunk in enumerate(chunks):
            vector = await self._embed_chunk(ctype, cid, index, chunk)
            if vector is None:
                continue
            await self._execute_write(
                _INSERT_SQL,
                (ctype, cid, index, chunk, json.dumps(vector), source_url, origin_url, file_path),
            )
            stored += 1

        logger.info(
            "chunks_stored",
            content_type=ctype,
            content_id=cid,
            stored=stored,
            total=len(chunks),
        )
        return stored > 0

    async def delete_by_content(self, content_type: ContentType | str, content_id: str | int) -> int:
        deleted = await self._execute_write(
            "DELETE FROM embeddings WHERE content_type = ? AND content_id = ?",
            (type_value(content_type), str(content_id)),
        )
        logger.info(
            "embeddings_deleted",
            content_type=type_value(content_type),
            content_id=str(content_id),
            count=deleted,
        )
        return deleted

    async def delete_by_provenance(self, origin_url: str, exact_match: bool = True) -> int:
        if exact_match:
            sql = "DELETE FROM embeddings WHERE origin_url = ?"
            params: tuple[Any, ...] = (origin_url,)
        else:
            sql = "DELETE FROM embeddings WHERE origin_url LIKE ? ESCAPE '\\' OR source_url = ?"
            params = (_like_prefix(origin_url), origin_url)
        deleted = await self._execute_write(sql, params)
        logger.info("provenance_deleted", origin_url=origin_url, exact_match=exact_match, count=deleted)
        return deleted

    async def delete_by_source_url(self, source_url: str) -> int:
        deleted = await self._execute_write(
            "DELETE FROM embeddings WHERE source_url = ?",
            (source_url,),
        )
        logger.info("source_url_deleted", source_url=source_url, count=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_by_types(self, types: set[ContentType | str]) -> list[EmbeddingRecord]:
        expanded = sorted(expand_types(types))
        if not expanded:
            return []
        placeholders = ", ".join("?" for _ in expanded)
        rows = await self._fetch_all(
            f"SELECT {_SELECT_COLUMNS} FROM embeddings "
            f"WHERE content_type IN ({placeholders}) ORDER BY id",
            tuple(expanded),
        )
        return [_row_to_record(r) for r in rows]

    async def fetch_by_content(
        self, content_type: ContentType | str, content_id: str | int
    ) -> list[EmbeddingRecord]:
        rows = await self._fetch_all(
            f"SELECT {_SELECT_COLUMNS} FROM embeddings "
            "WHERE content_type = ? AND content_id = ? ORDER BY chunk_index, id",
            (type_value(content_type), str(content_id)),
        )
        return [_row_to_record(r) for r in rows]

    async def count_by_content(self, content_type: ContentType | str, content_id: str | int) -> int:
        rows = await self._fetch_all(
            "SELECT COUNT(*) AS n FROM embeddings WHERE content_type = ? AND content_id = ?",
            (type_value(content_type), str(content_id)),
        )
        return int(rows[0]["n"])

    async def count_by_origin(self, origin_url: str) -> int:
        rows = await self._fetch_all(
            "SELECT COUNT(*) AS n FROM embeddings WHERE origin_url = ?",
            (origin_url,),
        )
        return int(rows[0]["n"])

    async def list_source_urls(self, origin_url: str) -> list[str]:
        rows = await self._fetch_all(
            "SELECT DISTINCT source_url FROM embeddings "
            "WHERE origin_url = ? AND source_url IS NOT NULL ORDER BY source_url",
            (origin_url,),
        )
        return [r["source_url"] for r in rows]

    async def count(self) -> int:
        rows = await self._fetch_all("SELECT COUNT(*) AS n FROM embeddings", ())
        return int(rows[0]["n"])

    async def count_by_type(self) -> dict[str, int]:
        """Return row counts grouped by content type."""
        rows = await self._fetch_all(
            "SELECT content_type, COUNT(*) AS n FROM embeddings GROUP BY content_type",
            (),
        )
        return {r["content_type"]: int(r["n"]) for r in rows}

    def get_provider_name(self) -> str:
        return "sqlite_vector_store"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _upsert_singleton(self, ctype: str, cid: str, chunks: list[str]) -> bool:
        """Keep exactly one row for a singleton key.

        The first chunk that embeds successfully is written; later chunks
        are dropped with a warning since the key holds a single entry.
        """
        rows = await self._fetch_all(
            "SELECT id FROM embeddings WHERE content_type = ? AND content_id = ? ORDER BY id",
            (ctype, cid),
        )
        existing_ids = [r["id"] for r in rows]

        for index, chunk in enumerate(chunks):
            vector = await self._embed_chunk(ctype, cid, index, chunk)
            if vector is None:
                continue
            if existing_ids:
                await self._execute_write(
                    _UPDATE_SINGLETON_SQL, (chunk, json.dumps(vector), existing_ids[0])
                )
                if len(existing_ids) > 1:
                    placeholders = ", ".join("?" for _ in existing_ids[1:])
                    await self._execute_write(
                        f"DELETE FROM embeddings WHERE id IN ({placeholders})",
                        tuple(existing_ids[1:]),
                    )
            else:
                await self._execute_write(
                    _INSERT_SQL, (ctype, cid, 0, chunk, json.dumps(vector), None, None, None)
                )
            if index < len(chunks) - 1:
                logger.warning(
                    "singleton_chunks_dropped",
                    content_type=ctype,
                    dropped=len(chunks) - index - 1,
                )
            logger.info("singleton_upserted", content_type=ctype, updated=bool(existing_ids))
            return True
        return False

    async def _embed_chunk(self, ctype: str, cid: str, index: int, chunk: str) -> list[float] | None:
        try:
            return await self._embedding_provider.embed(chunk)
        except EmbeddingError as exc:
            logger.warning(
                "chunk_embedding_failed",
                content_type=ctype,
                content_id=cid,
                chunk_index=index,
                error=str(exc),
                retryable=exc.retryable,
            )
            return None

    async def _execute_write(self, sql: str, params: tuple[Any, ...]) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(sql, params)
                await db.commit()
                return cursor.rowcount
        except aiosqlite.Error as exc:
            raise VectorStoreError(
                message=f"Write failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def _fetch_all(self, sql: str, params: tuple[Any, ...]) -> list[aiosqlite.Row]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(sql, params)
                return list(await cursor.fetchall())
        except aiosqlite.Error as exc:
            raise VectorStoreError(
                message=f"Read failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc


def _decode_vector(raw: str | None) -> list[float]:
    try:
        value = json.loads(raw or "")
    except (TypeError, ValueError):
        return []
    if not isinstance(value, list):
        return []
    try:
        return [float(v) for v in value]
    except (TypeError, ValueError):
        return []


def _row_to_record(row: aiosqlite.Row) -> EmbeddingRecord:
    data = dict(row)
    return EmbeddingRecord(
        id=data["id"],
        content_type=data["content_type"],
        content_id=str(data["content_id"]),
        chunk_index=data["chunk_index"],
        chunk_text=data["chunk_text"],
        vector=_decode_vector(data["embedding"]),
        source_url=data["source_url"],
        origin_url=data["origin_url"],
        file_path=data["file_path"],
        created_at=data["created_at"],
        updated_at=data["updated_at"],
    )


def _like_prefix(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"
