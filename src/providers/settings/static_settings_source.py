"""In-memory settings source with change notification.

Listeners registered with :meth:`StaticSettingsSource.subscribe` are
awaited in registration order after every :meth:`update`.  A listener
that raises is logged and skipped so one faulty listener cannot block
the others.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from src.config.settings import Settings
from src.interfaces.settings_source import EngineConfig, ISettingsSource, SettingsListener
from src.models.jobs import CrawlOptions

logger = structlog.get_logger(logger_name=__name__)


class StaticSettingsSource(ISettingsSource):
    """Holds the current :class:`EngineConfig` snapshot."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self._config = config or EngineConfig()
        self._listeners: list[SettingsListener] = []

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> StaticSettingsSource:
        """Build the snapshot from application settings plus *overrides*."""
        crawl = CrawlOptions(
            max_depth=settings.crawl_max_depth,
            max_pages=settings.crawl_max_pages,
            request_timeout=settings.crawl_request_timeout,
            max_job_seconds=settings.crawl_max_job_seconds,
        )
        values: dict[str, Any] = {
            "api_key": settings.openai_api_key,
            "batch_size": settings.batch_size,
            "commerce_enabled": settings.commerce_enabled,
            "crawl": crawl,
            "max_upload_bytes": settings.pdf_max_file_size,
        }
        values.update(overrides)
        return cls(EngineConfig.model_validate(values))

    def get_config(self) -> EngineConfig:
        return self._config

    def subscribe(self, listener: SettingsListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    async def update(self, **changes: Any) -> EngineConfig:
        """Replace fields of the snapshot and notify every listener.

        Returns
        -------
        EngineConfig
            The new snapshot.
        """
        old = self._config
        new = EngineConfig.model_validate({**old.model_dump(), **changes})
        self._config = new
        logger.info("settings_updated", fields=sorted(changes))

        for listener in self._listeners:
            try:
                result = listener(old, new)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                logger.warning(
                    "settings_listener_error",
                    listener=getattr(listener, "__name__", repr(listener)),
                    error=str(exc),
                )
        return new
