"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  — static defaults checked into the repo
#   2. .env file           — local developer overrides (not committed)
#   3. Environment vars    — set at deploy time
#
# load_config() reads the YAML file, then deep-merges the values that
# Settings resolved from .env / the environment on top of it.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pathlib import Path

import yaml

from src.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built Settings; a fresh instance is created when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "env": settings.app_env,
        },
        "embedding": {
            "model": settings.openai_embedding_model,
            "timeout": settings.embedding_timeout,
            "configured": settings.has_embedding_credentials(),
        },
        "storage": {
            "vector_db_path": settings.vector_db_path,
            "jobs_db_path": settings.jobs_db_path,
        },
        "retrieval": {
            "cache_ttl": settings.search_cache_ttl,
            "commerce_enabled": settings.commerce_enabled,
        },
        "crawl": {
            "max_depth": settings.crawl_max_depth,
            "max_pages": settings.crawl_max_pages,
            "request_timeout": settings.crawl_request_timeout,
            "max_job_seconds": settings.crawl_max_job_seconds,
            "rate_limit_seconds": settings.crawl_rate_limit_seconds,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
