# =============================================================================
# src/cli/engine.py — Operator CLI for the Retrieval Engine
# =============================================================================
#
# Standalone CLI for running the engine against local SQLite stores.
#
# Supported subcommands:
#
#   search      — Run a similarity search and print the ranked chunks
#   crawl       — Crawl a URL (and its same-domain pages) and embed it
#   pdf         — Extract and embed a PDF file
#   ingest      — Embed unprocessed items from a JSON content export
#   status      — Show the status of an ingestion job
#   urls        — Show the ingestion state of one or more URLs
#   delete-url  — Delete the embeddings of a crawled page or whole crawl
#   clear-flag  — Clear the bot-protection flag of a URL
#   cleanup     — Delete failed jobs that exhausted their retries
#   stats       — Print row counts per content type
#
# Crawl and PDF jobs run on the engine's task queue; the CLI waits for the
# queue to drain before printing the job status.
#
# Usage examples:
#   python -m src.cli.engine search "blue ceramic mug" --limit 5
#   python -m src.cli.engine crawl https://example.com --max-pages 10
#   python -m src.cli.engine pdf --file manual.pdf --id 42
#   python -m src.cli.engine ingest --content export.json
#   python -m src.cli.engine delete-url https://example.com --all
# =============================================================================

"""Operator CLI for the storefront retrieval engine.

Usage::

    python -m src.cli.engine search "return policy"
    python -m src.cli.engine crawl https://example.com --no-follow
    python -m src.cli.engine stats
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Any

from src.config.settings import Settings
from src.main import build_engine, initialize_engine, shutdown_engine
from src.models.jobs import JobStatus, JobStatusReport
from src.utils.errors import EngineError
from src.utils.logging import configure_logging


def _format_result(result: Any) -> str:
    if isinstance(result, int):
        return f"product {result}"
    snippet = " ".join(result.chunk_text.split())[:100]
    where = f" <{result.source_url}>" if result.source_url else ""
    return f"[{result.score:.3f}] {result.content_type} {result.content_id}{where}: {snippet}"


def _print_report(report: JobStatusReport) -> None:
    if not report.found:
        print(f"Job {report.job_id}: not found")
        return
    print(f"Job {report.job_id}")
    print(f"  Status:      {report.status.value if report.status else '-'}")
    print(f"  Message:     {report.user_message}")
    if report.error_type:
        print(f"  Error type:  {report.error_type.value}")
    print(f"  Embeddings:  {report.embedding_count}")
    print(f"  Attempts:    {report.attempts}")


async def _handle_search(args: argparse.Namespace, engine: dict[str, Any]) -> int:
    types = args.types.split(",") if args.types else None
    results = await engine["retrieval_service"].find_similar(
        args.query,
        limit=args.limit,
        threshold=args.threshold,
        content_types=types,
        intent=args.intent,
    )
    if not results:
        print("No matching content.")
        return 0
    for rank, result in enumerate(results, start=1):
        print(f"{rank:>2}. {_format_result(result)}")
    return 0


async def _handle_crawl(args: argparse.Namespace, engine: dict[str, Any]) -> int:
    options: dict[str, Any] = {"follow_links": not args.no_follow}
    if args.max_pages is not None:
        options["max_pages"] = args.max_pages
    if args.max_depth is not None:
        options["max_depth"] = args.max_depth
    if args.include:
        options["include_patterns"] = args.include
    if args.exclude:
        options["exclude_patterns"] = args.exclude

    manager = engine["job_manager"]
    job_id = await manager.submit_url(args.url, options)
    print(f"Crawling {args.url} (job {job_id})")
    await engine["task_queue"].join()

    report = await manager.get_status(job_id)
    _print_report(report)
    for url in await manager.list_crawled_urls(args.url):
        print(f"    {url}")
    return 0 if report.status == JobStatus.COMPLETED else 1


async def _handle_pdf(args: argparse.Namespace, engine: dict[str, Any]) -> int:
    if not os.path.isfile(args.file):
        print(f"Error: file not found: {args.file}", file=sys.stderr)
        return 1
    manager = engine["job_manager"]
    job_id = await manager.submit_pdf(args.id, os.path.abspath(args.file), os.path.basename(args.file))
    print(f"Processing {args.file} (job {job_id})")
    await engine["task_queue"].join()

    report = await manager.get_status(job_id)
    _print_report(report)
    return 0 if report.status == JobStatus.COMPLETED else 1


async def _handle_ingest(args: argparse.Namespace, engine: dict[str, Any]) -> int:
    service = engine["ingestion_service"]
    if service is None:
        print("Error: --content is required for ingest", file=sys.stderr)
        return 1

    total = 0
    while True:
        # Processed items drop out of the unprocessed set, so offset stays 0.
        batch = await service.process_batch(offset=0, batch_size=args.batch_size)
        if not batch.success:
            for error in batch.errors:
                print(f"Error: {error}", file=sys.stderr)
            return 1
        total += batch.processed
        for error in batch.errors:
            print(f"  {error}")
        print(f"  Processed {batch.processed} item(s); {batch.remaining} remaining")
        if batch.done or batch.processed == 0:
            break
    print(f"\nIngestion complete: {total} item(s) embedded")
    return 0


async def _handle_status(args: argparse.Namespace, engine: dict[str, Any]) -> int:
    report = await engine["job_manager"].get_status(args.job_id)
    _print_report(report)
    return 0 if report.found else 1


async def _handle_urls(args: argparse.Namespace, engine: dict[str, Any]) -> int:
    statuses = await engine["job_manager"].check_urls_status(args.urls)
    for url, status in statuses.items():
        print(f"  {status.value:<14} {url}")
    return 0


async def _handle_delete_url(args: argparse.Namespace, engine: dict[str, Any]) -> int:
    removed = await engine["job_manager"].delete_url(args.url, delete_all=args.all)
    print(f"Deleted {removed} embedding(s) for {args.url}")
    return 0


async def _handle_clear_flag(args: argparse.Namespace, engine: dict[str, Any]) -> int:
    cleared = await engine["job_manager"].clear_bot_flag(args.url)
    print("Flag cleared." if cleared else "No flag was set for this URL.")
    return 0


async def _handle_cleanup(args: argparse.Namespace, engine: dict[str, Any]) -> int:
    manager = engine["job_manager"]
    deleted = await manager.cleanup_failed_jobs(days=args.days)
    print(f"Deleted {deleted} failed job(s)")
    if engine["ingestion_service"] is not None:
        removed = await engine["ingestion_service"].cleanup_excluded_embeddings()
        print(f"Removed {removed} embedding(s) of excluded content")
    return 0


async def _handle_stats(args: argparse.Namespace, engine: dict[str, Any]) -> int:
    store = engine["vector_store"]
    counts = await store.count_by_type()
    print("Embedding Statistics")
    print("=" * 40)
    print(f"  Total rows:  {await store.count()}")
    if counts:
        print("\n  Rows by type:")
        for content_type, count in sorted(counts.items()):
            print(f"    {content_type:<18} {count}")
    provider = engine["embedding_provider"]
    print(f"\n  Embedding provider: {provider.get_provider_name()} "
          f"({'configured' if provider.is_available() else 'not configured'})")
    return 0


_HANDLERS = {
    "search": _handle_search,
    "crawl": _handle_crawl,
    "pdf": _handle_pdf,
    "ingest": _handle_ingest,
    "status": _handle_status,
    "urls": _handle_urls,
    "delete-url": _handle_delete_url,
    "clear-flag": _handle_clear_flag,
    "cleanup": _handle_cleanup,
    "stats": _handle_stats,
}

# Commands that run jobs on the background task queue.
_QUEUED_COMMANDS = frozenset({"crawl", "pdf"})


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.engine",
        description="Storefront retrieval engine operator CLI",
    )
    parser.add_argument("--content", help="JSON export of CMS items (for ingest/cleanup)")
    subparsers = parser.add_subparsers(dest="command")

    search = subparsers.add_parser("search", help="Run a similarity search")
    search.add_argument("query", help="Free-text query")
    search.add_argument("--limit", type=int, default=5, help="Maximum results")
    search.add_argument("--threshold", type=float, default=0.7, help="Minimum weighted similarity")
    search.add_argument("--types", help="Comma-separated content types to search")
    search.add_argument("--intent", choices=["product_search"], help="Search intent")

    crawl = subparsers.add_parser("crawl", help="Crawl and embed a URL")
    crawl.add_argument("url", help="Seed URL")
    crawl.add_argument("--no-follow", action="store_true", help="Embed only the seed page")
    crawl.add_argument("--max-pages", type=int, help="Page limit, seed included")
    crawl.add_argument("--max-depth", type=int, help="Link depth limit")
    crawl.add_argument("--include", nargs="*", help="Wildcard path patterns to include")
    crawl.add_argument("--exclude", nargs="*", help="Wildcard path patterns to exclude")

    pdf = subparsers.add_parser("pdf", help="Extract and embed a PDF")
    pdf.add_argument("--file", required=True, help="Path to the PDF file")
    pdf.add_argument("--id", required=True, help="Attachment id to store the PDF under")

    ingest = subparsers.add_parser("ingest", help="Embed unprocessed CMS items")
    ingest.add_argument("--batch-size", type=int, default=None, help="Items per batch")

    status = subparsers.add_parser("status", help="Show an ingestion job")
    status.add_argument("job_id", help="Job id returned by crawl or pdf")

    urls = subparsers.add_parser("urls", help="Show the ingestion state of URLs")
    urls.add_argument("urls", nargs="+", help="URLs to check")

    delete = subparsers.add_parser("delete-url", help="Delete crawled embeddings")
    delete.add_argument("url", help="Page URL, or seed URL with --all")
    delete.add_argument("--all", action="store_true", help="Delete every page crawled from this seed")

    clear = subparsers.add_parser("clear-flag", help="Clear a bot-protection flag")
    clear.add_argument("url", help="Flagged URL")

    cleanup = subparsers.add_parser("cleanup", help="Delete exhausted failed jobs")
    cleanup.add_argument("--days", type=int, default=7, help="Minimum age in days")

    subparsers.add_parser("stats", help="Show embedding statistics")
    return parser


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    engine = build_engine(app_settings, content_path=args.content)
    await initialize_engine(engine, start_queue=args.command in _QUEUED_COMMANDS)
    try:
        return await _HANDLERS[args.command](args, engine)
    except EngineError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    finally:
        await shutdown_engine(engine)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse arguments, build the engine and dispatch."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )
    sys.exit(asyncio.run(_run(args, app_settings)))


if __name__ == "__main__":
    main()
