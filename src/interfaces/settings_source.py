"""Abstract base class for the store-settings source.

Store owners edit exclusion lists, contact text and crawl limits in the
host application.  The engine reads them as an immutable
:class:`EngineConfig` snapshot injected into each component, and
re-reads the snapshot when the source notifies a change.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.jobs import CrawlOptions

# Types whose exclusion lists are honoured by ingestion and cleanup.
EXCLUDABLE_TYPES: tuple[str, ...] = ("post", "page", "product")


def extract_ids(raw: Any) -> set[str]:
    """Normalize an exclusion list to a set of id strings.

    Accepts either ``[{"value": 12}, {"value": 15}]`` (the shape the admin
    multi-select stores) or a plain list of ids.  Entries without a usable
    id are skipped.
    """
    if not raw:
        return set()
    ids: set[str] = set()
    for entry in raw:
        if isinstance(entry, dict):
            entry = entry.get("value")
        if entry is None or entry == "":
            continue
        ids.add(str(entry))
    return ids


class EngineConfig(BaseModel):
    """Snapshot of the store settings the engine depends on."""

    model_config = ConfigDict(frozen=True)

    api_key: str = ""
    batch_size: int = Field(default=10, ge=1)
    included_types: list[str] = Field(default_factory=lambda: list(EXCLUDABLE_TYPES))
    excluded_ids: dict[str, set[str]] = Field(default_factory=dict)
    excluded_categories: set[str] = Field(default_factory=set)
    commerce_enabled: bool = True
    contact_info: str = ""
    custom_content: str = ""
    crawl: CrawlOptions = Field(default_factory=CrawlOptions)
    max_upload_bytes: int = Field(default=5 * 1024 * 1024, gt=0)

    @field_validator("excluded_ids", mode="before")
    @classmethod
    def _normalize_excluded(cls, value: Any) -> dict[str, set[str]]:
        if not value:
            return {}
        return {str(t): extract_ids(ids) for t, ids in dict(value).items()}

    @field_validator("excluded_categories", mode="before")
    @classmethod
    def _normalize_categories(cls, value: Any) -> set[str]:
        return extract_ids(value)

    def excluded_for(self, content_type: str) -> set[str]:
        return self.excluded_ids.get(content_type, set())

    @property
    def excluded_products(self) -> set[str]:
        return self.excluded_for("product")

    def has_settings_content(self) -> bool:
        return bool(self.contact_info.strip() or self.custom_content.strip())


SettingsListener = Callable[[EngineConfig, EngineConfig], Awaitable[Any]]


class ISettingsSource(ABC):
    """Provides the current :class:`EngineConfig` and change notifications."""

    @abstractmethod
    def get_config(self) -> EngineConfig:
        """Return the current settings snapshot."""

    @abstractmethod
    def subscribe(self, listener: SettingsListener) -> None:
        """Register an async ``listener(old, new)`` called after every change."""
