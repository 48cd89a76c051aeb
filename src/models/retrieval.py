"""Retrieval result models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class SearchIntent(StrEnum):
    """Caller hints that change the shape of retrieval results."""

    GENERAL = "general"
    PRODUCT_SEARCH = "product_search"


class ScoredChunk(BaseModel):
    """A candidate chunk that passed the similarity threshold.

    ``similarity`` is the type-weighted cosine score used for threshold
    filtering; ``score`` is the final blend of similarity and lexical
    relevance used for ordering within one priority band.
    """

    model_config = ConfigDict(frozen=True)

    content_type: str
    content_id: str
    chunk_text: str
    similarity: float = Field(description="cosine_similarity * type_weight.")
    relevance: float = Field(default=0.0, description="Lexical chunk relevance in [0, ~1.3].")
    score: float = Field(description="0.7 * similarity + 0.3 * relevance.")
    priority: int = Field(default=0, description="Content-type priority band.")
    source_url: str | None = None
