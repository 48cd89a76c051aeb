"""Content ingestion for the retrieval engine.

Pipeline stages: **format -> chunk -> embed -> store**.

1. **Format** (source_processors/) -- Type-specific processors turn CMS
   items, crawled HTML pages and uploaded PDFs into labelled plain text.

2. **Chunk** (chunker.py / ContentChunker) -- Word-packs structured text
   and sentence-packs prose into chunks of at most 8000 characters.

3. **Embed and store** (via IVectorStoreProvider) -- Each chunk is
   embedded independently and persisted under its ``(type, id)`` key.

The ContentIngestionService drives batch processing of CMS content and
keeps stored embeddings consistent with the operator's exclusions.
"""

from src.services.ingestion.chunker import ContentChunker
from src.services.ingestion.ingestion_service import ContentIngestionService

__all__ = [
    "ContentChunker",
    "ContentIngestionService",
]
