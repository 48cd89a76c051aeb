"""Ingestion job persistence.

SQLiteJobStore keeps URL-crawl and PDF jobs in one table plus the
bot-protection flags the crawler consults before re-crawling a URL.
"""

from src.providers.jobs.sqlite_job_store import SQLiteJobStore

__all__ = ["SQLiteJobStore"]
