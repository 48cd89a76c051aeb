"""Content-type vocabulary and stored embedding records.

Defines the closed :class:`ContentType` enum, the single alias table that
maps the storefront's ``product`` type onto the post types different
commerce integrations use, the per-type ranking priority and weight, and
the :class:`EmbeddingRecord` / :class:`ContentItem` models that flow
between the Vector Store, the extractors and the ingestion service.

The storage layer still accepts arbitrary type strings (new integrations
can introduce types before this enum learns about them); helpers here
therefore take ``ContentType | str`` and fall back to neutral defaults for
unknown values.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ContentType(StrEnum):
    """Kinds of content the engine embeds."""

    PRODUCT = "product"
    PRODUCT_VARIATION = "product_variation"
    POST = "post"
    PAGE = "page"
    SETTINGS = "settings"
    PDF = "pdf"
    EXTERNAL_URL = "external_url"
    # Product post types used by commerce integrations other than the default.
    FC_PRODUCT = "fc_product"
    FLUENT_PRODUCTS = "fluent-products"
    FLUENT_PRODUCT = "fluent_product"


# ---------------------------------------------------------------------------
# Alias expansion -- the only place that knows integration product types.
# ---------------------------------------------------------------------------

PRODUCT_ALIASES: frozenset[str] = frozenset(
    {
        ContentType.PRODUCT.value,
        ContentType.FC_PRODUCT.value,
        ContentType.FLUENT_PRODUCTS.value,
        ContentType.FLUENT_PRODUCT.value,
    }
)

_ALIAS_TABLE: dict[str, frozenset[str]] = {
    ContentType.PRODUCT.value: PRODUCT_ALIASES,
}

SINGLETON_TYPES: frozenset[str] = frozenset({ContentType.SETTINGS.value})
SINGLETON_ID = "0"

_PRIORITY: dict[str, int] = {
    ContentType.SETTINGS.value: 4,
    ContentType.POST.value: 2,
    ContentType.PAGE.value: 2,
    ContentType.PRODUCT_VARIATION.value: 1,
    ContentType.PDF.value: 1,
    ContentType.EXTERNAL_URL.value: 1,
    **{alias: 3 for alias in PRODUCT_ALIASES},
}

_WEIGHT: dict[str, float] = {
    ContentType.SETTINGS.value: 1.3,
    ContentType.POST.value: 1.0,
    ContentType.PAGE.value: 1.0,
    ContentType.PRODUCT_VARIATION.value: 0.8,
    ContentType.PDF.value: 0.8,
    ContentType.EXTERNAL_URL.value: 0.8,
    **{alias: 1.2 for alias in PRODUCT_ALIASES},
}


def type_value(content_type: ContentType | str) -> str:
    """Return the plain string stored for *content_type*."""
    if isinstance(content_type, ContentType):
        return content_type.value
    return str(content_type)


def expand_types(types: set[ContentType | str] | list[ContentType | str]) -> set[str]:
    """Return *types* plus every alias registered for them."""
    expanded: set[str] = set()
    for content_type in types:
        value = type_value(content_type)
        expanded.add(value)
        expanded |= _ALIAS_TABLE.get(value, frozenset())
    return expanded


def is_product_type(content_type: ContentType | str) -> bool:
    return type_value(content_type) in PRODUCT_ALIASES


def is_singleton(content_type: ContentType | str) -> bool:
    return type_value(content_type) in SINGLETON_TYPES


def type_priority(content_type: ContentType | str) -> int:
    """Ranking priority: settings 4 > product 3 > post/page 2 > variation/pdf/url 1 > unknown 0."""
    return _PRIORITY.get(type_value(content_type), 0)


def type_weight(content_type: ContentType | str) -> float:
    """Trust multiplier applied to cosine similarity; unknown types are neutral."""
    return _WEIGHT.get(type_value(content_type), 1.0)


# ---------------------------------------------------------------------------
# Stored and source records
# ---------------------------------------------------------------------------

class EmbeddingRecord(BaseModel):
    """One stored chunk with its vector and, for crawled pages, provenance."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Row identifier assigned by the store.")
    content_type: str = Field(description="Type of the owning content item.")
    content_id: str = Field(description="Identifier of the owning content item.")
    chunk_index: int = Field(default=0, ge=0, description="Position of the chunk within its item.")
    chunk_text: str = Field(description="The text that was embedded.")
    vector: list[float] = Field(
        default_factory=list,
        description="Embedding vector; empty when the stored value could not be decoded.",
    )
    source_url: str | None = Field(default=None, description="Exact page crawled (crawled content only).")
    origin_url: str | None = Field(default=None, description="Seed URL of the crawl (crawled content only).")
    file_path: str | None = Field(default=None, description="Source file for PDF content.")
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ContentItem(BaseModel):
    """A structured record handed over by the content source.

    ``attributes`` holds the type-specific attributes (prices, categories,
    body text, ...) that the matching source processor formats.
    """

    model_config = ConfigDict(frozen=True)

    content_type: str = Field(description="Type of the item, e.g. product or page.")
    content_id: str = Field(description="Identifier of the item in the content source.")
    title: str = Field(default="", description="Display title or product name.")
    status: str = Field(default="publish", description="Publication status in the content source.")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Type-specific attributes.")
