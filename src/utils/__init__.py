"""Utility modules for the retrieval engine.

- **errors** -- Domain-specific exception hierarchy rooted at EngineError;
  each component raises its own subclass so callers can tell retryable
  failures from terminal ones without broad ``except Exception`` blocks.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **hashing** -- Stable md5 keys for cache entries and job identifiers.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    BotProtectionError,
    ConfigurationError,
    ContentError,
    CrawlError,
    EmbeddingError,
    EngineError,
    JobError,
    VectorStoreError,
)

# -- Stable hashing helpers ------------------------------------------------
from src.utils.hashing import md5_hex

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

__all__ = [
    "BotProtectionError",
    "ConfigurationError",
    "ContentError",
    "CrawlError",
    "EmbeddingError",
    "EngineError",
    "JobError",
    "VectorStoreError",
    "configure_logging",
    "get_logger",
    "md5_hex",
]
