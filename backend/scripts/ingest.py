#!/usr/bin/env python3
"""
CLI tool for content ingestion.

Usage:
    # Ingest one URL (article, video or RSS feed) into a feed
    python -m scripts.ingest url https://example.com/post --feed-id 1 --user-id 1

    # Show how a URL would be handled
    python -m scripts.ingest classify https://youtu.be/dQw4w9WgXcQ

    # Create database tables
    python -m scripts.ingest init-db
"""

import argparse
import asyncio
import logging
import sys

from linkfeed.config import get_settings
from linkfeed.core.errors import IngestionError
from linkfeed.jobs.content_ingestion import ContentIngestionPipeline
from linkfeed.models.database import Database
from linkfeed.services.data_ingestion.classifier import canonical_url, classify
from linkfeed.services.post_repository import SQLAlchemyPostRepository

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


async def cmd_url(args) -> int:
    """Ingest a URL and wait for the result."""
    settings = get_settings()
    database = Database(args.database_url or settings.database_url)
    await database.create_tables()

    pipeline = ContentIngestionPipeline.create(SQLAlchemyPostRepository(database.async_session), settings)
    await pipeline.initialize()

    try:
        result = await pipeline.ingest(args.url, args.feed_id, args.user_id)
    except IngestionError as e:
        print(f"✗ {e}")
        return 1
    finally:
        await database.dispose()

    print(str(result))
    return 0


async def cmd_classify(args) -> int:
    """Print the classification of a URL."""
    classification = classify(args.url)
    print(f"kind:      {classification.kind.value}")
    if classification.video_id:
        print(f"video id:  {classification.video_id}")
    print(f"canonical: {canonical_url(args.url, classification, get_settings().extraction.video_host)}")
    return 0


async def cmd_init_db(args) -> int:
    """Create all tables."""
    database = Database(args.database_url or get_settings().database_url)
    await database.create_tables()
    await database.dispose()
    print("Tables created")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Linkfeed content ingestion")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    url_parser = subparsers.add_parser("url", help="Ingest a URL into a feed")
    url_parser.add_argument("url")
    url_parser.add_argument("--feed-id", type=int, required=True)
    url_parser.add_argument("--user-id", type=int, required=True)
    url_parser.set_defaults(func=cmd_url)

    classify_parser = subparsers.add_parser("classify", help="Classify a URL")
    classify_parser.add_argument("url")
    classify_parser.set_defaults(func=cmd_classify)

    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.set_defaults(func=cmd_init_db)

    args = parser.parse_args()
    return asyncio.run(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
