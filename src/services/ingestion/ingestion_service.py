"""Batch embedding of store content and upkeep of the embedding table.

Pipeline stages for structured store content: **format -> chunk -> embed -> store**.

The :class:`ContentIngestionService` coordinates four collaborators without
any of them knowing about each other:

    1. IContentSource -- lists published items that have no embeddings yet
    2. Source processors -- ProductProcessor / DocumentProcessor format an
       item as labelled plain text
    3. ContentChunker -- word-packs the text into bounded chunks
    4. IVectorStoreProvider -- embeds and stores each chunk

It also keeps the table consistent with the operator's settings: newly
excluded items are purged, the settings singleton is re-embedded when the
contact or business text changes, and deleted items are removed on request.

All dependencies are injected via constructor, and the current
:class:`~src.interfaces.settings_source.EngineConfig` is read from the
settings source on every call.
"""

from __future__ import annotations

import structlog

from src.interfaces.content_source import IContentSource
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.settings_source import EXCLUDABLE_TYPES, EngineConfig, ISettingsSource
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.content import (
    PRODUCT_ALIASES,
    SINGLETON_ID,
    ContentItem,
    ContentType,
    is_product_type,
    type_value,
)
from src.models.jobs import BatchResult
from src.services.ingestion.chunker import ContentChunker
from src.services.ingestion.source_processors.document_processor import DocumentProcessor
from src.services.ingestion.source_processors.product_processor import ProductProcessor
from src.utils.errors import EngineError

logger = structlog.get_logger(logger_name=__name__)

_DOCUMENT_TYPES = frozenset({ContentType.POST.value, ContentType.PAGE.value})


class ContentIngestionService:
    """Embeds CMS content in batches and keeps stored embeddings in sync.

    Parameters
    ----------
    content_source:
        Read access to the CMS items.
    vector_store:
        Embeds and persists chunks.
    embedding_provider:
        Checked for credentials before a batch starts.
    settings_source:
        Supplies exclusions, batch size and settings text.
    chunker:
        Word-packing chunker; defaults to 8000-character chunks.
    """

    def __init__(
        self,
        content_source: IContentSource,
        vector_store: IVectorStoreProvider,
        embedding_provider: IEmbeddingProvider,
        settings_source: ISettingsSource,
        chunker: ContentChunker | None = None,
    ) -> None:
        self._content_source = content_source
        self._vector_store = vector_store
        self._embedding_provider = embedding_provider
        self._settings_source = settings_source
        self._chunker = chunker or ContentChunker()
        self._products = ProductProcessor()
        self._documents = DocumentProcessor()

    # ------------------------------------------------------------------
    # Batch processing
    # ------------------------------------------------------------------

    async def process_batch(self, offset: int = 0, batch_size: int | None = None) -> BatchResult:
        """Embed one batch of unprocessed items.

        Per-item failures are collected in ``errors`` and never abort the
        rest of the batch.  The settings singleton is embedded alongside
        the first batch that finds it missing.

        Parameters
        ----------
        offset:
            Number of unprocessed items to skip.
        batch_size:
            Items per batch; defaults to the configured batch size.
        """
        config = self._settings_source.get_config()
        if not self._embedding_provider.is_available():
            logger.warning("batch_skipped_no_credentials")
            return BatchResult(success=False, done=True, errors=["Embedding API key is not configured"])

        size = batch_size or config.batch_size
        types = self._content_types(config)
        items = await self._content_source.list_unprocessed(types, config.excluded_ids, offset, size)

        processed = 0
        failed = 0
        errors: list[str] = []
        for item in items:
            try:
                if await self._is_excluded(item, config):
                    logger.debug("item_excluded", content_type=item.content_type, content_id=item.content_id)
                    continue
                if await self.embed_item(item):
                    processed += 1
            except EngineError as exc:
                failed += 1
                errors.append(f"Error processing {item.content_type} ID: {item.content_id} - {exc.message}")
                logger.warning(
                    "item_processing_failed",
                    content_type=item.content_type,
                    content_id=item.content_id,
                    error=str(exc),
                )

        settings_pending = await self._settings_pending(config)
        if settings_pending:
            try:
                if await self.embed_settings(config):
                    processed += 1
                    settings_pending = False
            except EngineError as exc:
                failed += 1
                errors.append(f"Error processing settings content - {exc.message}")

        remaining = await self._content_source.count_unprocessed(types, config.excluded_ids)
        result = BatchResult(
            success=True,
            processed=processed,
            failed=failed,
            remaining=remaining + (1 if settings_pending else 0),
            done=len(items) < size,
            errors=errors,
        )
        logger.info(
            "batch_processed",
            offset=offset,
            items=len(items),
            processed=processed,
            failed=failed,
            remaining=result.remaining,
        )
        return result

    async def embed_item(self, item: ContentItem) -> bool:
        """Format, chunk and store one item; ``False`` when it has no text."""
        text = self.format_item(item)
        if not text.strip():
            logger.debug("item_empty", content_type=item.content_type, content_id=item.content_id)
            return False
        chunks = self._chunker.split_words(text)
        return await self._vector_store.upsert_chunks(item.content_type, item.content_id, chunks)

    def format_item(self, item: ContentItem) -> str:
        content_type = type_value(item.content_type)
        if is_product_type(content_type) or content_type == ContentType.PRODUCT_VARIATION.value:
            return self._products.format(item)
        if content_type in _DOCUMENT_TYPES:
            return self._documents.format(item)
        return ""

    async def embed_settings(self, config: EngineConfig | None = None) -> bool:
        """(Re)store the settings singleton from the contact and business text."""
        config = config or self._settings_source.get_config()
        text = self._documents.format_settings(config)
        if not text:
            return False
        chunks = self._chunker.split_words(text)
        return await self._vector_store.upsert_chunks(ContentType.SETTINGS, SINGLETON_ID, chunks)

    # ------------------------------------------------------------------
    # Upkeep
    # ------------------------------------------------------------------

    async def handle_settings_change(self, old: EngineConfig, new: EngineConfig) -> dict[str, int | bool]:
        """Apply a settings change to stored embeddings.

        Newly excluded ids are purged per type, and the settings singleton
        is re-embedded (or removed, when both texts are now blank) if the
        contact or business text changed.
        """
        removed = 0
        for content_type in EXCLUDABLE_TYPES:
            newly_excluded = new.excluded_for(content_type) - old.excluded_for(content_type)
            for content_id in sorted(newly_excluded):
                removed += await self._delete_item(content_type, content_id)

        settings_updated = False
        if old.contact_info != new.contact_info or old.custom_content != new.custom_content:
            if new.has_settings_content():
                settings_updated = await self.embed_settings(new)
            else:
                await self._vector_store.delete_by_content(ContentType.SETTINGS, SINGLETON_ID)
                settings_updated = True

        logger.info("settings_change_applied", removed=removed, settings_updated=settings_updated)
        return {"removed": removed, "settings_updated": settings_updated}

    async def handle_content_deleted(self, content_type: ContentType | str, content_id: str | int) -> int:
        """Remove the embeddings of an item deleted from the CMS."""
        removed = await self._vector_store.delete_by_content(content_type, content_id)
        logger.info(
            "content_deleted",
            content_type=type_value(content_type),
            content_id=str(content_id),
            removed=removed,
        )
        return removed

    async def cleanup_excluded_embeddings(self) -> int:
        """Purge embeddings of every currently excluded post, page and product."""
        config = self._settings_source.get_config()
        removed = 0
        for content_type in EXCLUDABLE_TYPES:
            for content_id in sorted(config.excluded_for(content_type)):
                removed += await self._delete_item(content_type, content_id)
        logger.info("excluded_embeddings_cleaned", removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _content_types(config: EngineConfig) -> list[str]:
        types = {t for t in config.included_types if not is_product_type(t)}
        if config.commerce_enabled:
            types |= PRODUCT_ALIASES
            types.add(ContentType.PRODUCT_VARIATION.value)
        return sorted(types)

    async def _is_excluded(self, item: ContentItem, config: EngineConfig) -> bool:
        content_type = type_value(item.content_type)
        if is_product_type(content_type):
            if item.content_id in config.excluded_products:
                return True
            if config.excluded_categories:
                categories = await self._content_source.get_item_categories(content_type, item.content_id)
                return bool(categories & config.excluded_categories)
            return False
        return item.content_id in config.excluded_for(content_type)

    async def _settings_pending(self, config: EngineConfig) -> bool:
        if not config.has_settings_content():
            return False
        return await self._vector_store.count_by_content(ContentType.SETTINGS, SINGLETON_ID) == 0

    async def _delete_item(self, content_type: str, content_id: str) -> int:
        if content_type == ContentType.PRODUCT.value:
            removed = 0
            for alias in sorted(PRODUCT_ALIASES):
                removed += await self._vector_store.delete_by_content(alias, content_id)
            return removed
        return await self._vector_store.delete_by_content(content_type, content_id)
