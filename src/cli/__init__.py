# =============================================================================
# src/cli/__init__.py — CLI Module Overview
# =============================================================================
#
# Command-line tools for operating the retrieval engine outside a host
# application. engine.py covers searching, crawling, PDF and batch
# ingestion, job status and housekeeping against local SQLite stores.
#
# Architecture Notes:
#   - argparse for argument parsing (not Click/Typer).
#   - Each run builds its own engine via src.main.build_engine(), because
#     CLI tools run as one-shot scripts, not long-lived servers.
# =============================================================================

"""CLI tools for the retrieval engine.

- ``python -m src.cli.engine`` — search, crawl, pdf, ingest, status and
  housekeeping commands.
"""
