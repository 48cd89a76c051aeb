"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Values are read from two sources, highest priority first:
#
#   1. Environment variables, e.g. OPENAI_API_KEY=sk-abc123
#   2. A ``.env`` file in the working directory
#
# Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults
# apply when neither source sets a value.
#
# Settings are read ONCE at construction and passed explicitly into each
# component (see src/main.py).  Runtime-editable store options (exclusion
# lists, contact text) live in EngineConfig and arrive through an
# ISettingsSource instead.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Retrieval engine settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Embedding API ===
    # Empty key = "not configured"; the embedding client raises
    # MissingCredentialsError instead of calling the API.
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_embedding_model: str = "text-embedding-3-small"
    embedding_timeout: float = 30.0

    # === Storage ===
    vector_db_path: str = "data/embeddings.db"
    jobs_db_path: str = "data/ingestion_jobs.db"

    # === Chunking / batching ===
    chunk_max_chars: int = 8000
    batch_size: int = 10

    # === Retrieval ===
    search_default_limit: int = 5
    search_default_threshold: float = 0.7
    search_cache_ttl: int = 300
    search_cache_size: int = 1024
    commerce_enabled: bool = True

    # === Crawling ===
    crawl_max_depth: int = 2
    crawl_max_pages: int = 15
    crawl_request_timeout: float = 15.0
    crawl_max_job_seconds: int = 180
    crawl_rate_limit_seconds: float = 1.0
    crawl_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # === PDF processing ===
    pdf_max_file_size: int = 5 * 1024 * 1024
    pdf_min_chars: int = 50
    pdf_max_attempts: int = 3
    pdf_retry_interval: int = 600

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def has_embedding_credentials(self) -> bool:
        """Return True when an embedding API key is configured."""
        return bool(self.openai_api_key)
