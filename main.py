# main.py
# Command line entry point for BlogScout
# ======================================

"""
Drives the BlogScout service from the command line.

Commands:
- ingest URL: track a publication and pull its latest articles
- refresh [--force]: refresh every publication whose cooldown elapsed
- list: show the retained articles, newest first
- feeds: show tracked publications
- delete ID: stop tracking a publication and drop its articles
- backfill-dates: give undated articles an effective date
- serve: run the HTTP API with uvicorn
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from blogscout.config_manager import ConfigError
from config.settings import validate_config
from config.sources import validate_sources
from src import setup_logging
from src.pipeline.errors import BlogScoutError
from src.pipeline.service import BlogScoutService


def _print_articles(service: BlogScoutService, args: argparse.Namespace) -> int:
    articles, total = service.list_articles(args.feed, limit=args.limit, offset=args.offset)
    print(f"\n📰 ARTICLES ({len(articles)} of {total}):")
    for index, article in enumerate(articles, args.offset + 1):
        published = article.published_at.date().isoformat() if article.published_at else "unknown"
        print(f"  {index}. {article.title[:80]}")
        print(f"     {published} | {article.url}")
    return 0


def _print_feeds(service: BlogScoutService) -> int:
    publications = service.list_publications()
    print(f"\n📚 FEEDS ({len(publications)}):")
    for publication in publications:
        fetched = publication.last_fetched.isoformat() if publication.last_fetched else "never"
        print(f"  • {publication.id} | {publication.title}")
        print(f"     {publication.url} | last fetched: {fetched}")
    return 0


async def _run_async(service: BlogScoutService, args: argparse.Namespace) -> int:
    if args.command == "ingest":
        result = await service.ingest(args.url)
        state = "added" if result.created else "already tracked"
        print(f"✅ {result.publication.title} ({result.publication.url}) {state}")
        print(f"  • New articles: {result.added_count}")
        return 0

    if args.command == "refresh":
        report = await service.refresh_due(force=args.force)
        print(f"✅ Refreshed feeds: {report.refreshed_count}")
        print(f"  • New articles: {report.added_count}")
        if report.skipped_count:
            print(f"  • Skipped (already refreshing): {report.skipped_count}")
        for error in report.errors:
            print(f"  ❌ {error['url']}: {error['error']}")
        return 1 if report.errors and not report.refreshed_count else 0

    if args.command == "delete":
        removed = await service.delete_feed(args.feed_id)
        print(f"✅ Feed deleted, {removed} articles removed")
        return 0

    if args.command == "backfill-dates":
        repaired = await service.backfill_missing_dates()
        print(f"✅ Articles repaired: {repaired}")
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from src.serving import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="BlogScout")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Track a blog or newsletter")
    ingest.add_argument("url", help="Any URL on the publication")

    refresh = subparsers.add_parser("refresh", help="Refresh publications that are due")
    refresh.add_argument("--force", action="store_true", help="Ignore the refresh cooldown")

    listing = subparsers.add_parser("list", help="Show retained articles")
    listing.add_argument("--feed", default=None, help="Only articles of this feed id")
    listing.add_argument("--limit", type=int, default=20, help="Page size")
    listing.add_argument("--offset", type=int, default=0, help="Articles to skip")

    subparsers.add_parser("feeds", help="Show tracked publications")

    delete = subparsers.add_parser("delete", help="Stop tracking a publication")
    delete.add_argument("feed_id")

    subparsers.add_parser("backfill-dates", help="Assign effective dates to undated articles")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def main(argv: Optional[List[str]] = None, service: Optional[BlogScoutService] = None) -> int:
    """Entry point for command line execution."""
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        validate_config()
        validate_sources()
    except (ConfigError, ValueError) as exc:
        print(f"❌ Invalid configuration: {exc}")
        return 1

    if args.command == "serve":
        return _serve(args)

    try:
        service = service or BlogScoutService()
        if args.command == "list":
            return _print_articles(service, args)
        if args.command == "feeds":
            return _print_feeds(service)
        return asyncio.run(_run_async(service, args))
    except BlogScoutError as exc:
        print(f"❌ {exc}")
        return 1
    except KeyboardInterrupt:
        print("\n⚠️  Interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
