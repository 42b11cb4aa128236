"""
RSS batch ingestion.

Replays the single-URL pipeline for every item of an RSS/Atom feed,
one item at a time and in document order. Items are isolated from
each other: a failing item is logged and the batch moves on.
"""
import time
from enum import Enum

import structlog

from linkfeed.jobs.steps import attach_to_feed, derive_and_store
from linkfeed.services.data_ingestion.article import ArticleExtractor
from linkfeed.services.data_ingestion.base import BatchResult, ExtractedContent, FeedItem
from linkfeed.services.data_ingestion.html import strip_html
from linkfeed.services.data_ingestion.rss import FeedReader, absolutize_link, feed_origin
from linkfeed.services.derivation import DerivationStage
from linkfeed.services.post_repository import PostRepository

logger = structlog.get_logger(__name__)


class ItemOutcome(str, Enum):
    CREATED = "created"
    LINKED_EXISTING = "linked_existing"
    ALREADY_LINKED = "already_linked"


class RSSFeedIngestor:
    """Ingests every article of a feed document into one feed."""

    def __init__(
        self,
        repository: PostRepository,
        derivation: DerivationStage,
        article_extractor: ArticleExtractor,
        feed_reader: FeedReader,
    ):
        self.repository = repository
        self.derivation = derivation
        self.article_extractor = article_extractor
        self.feed_reader = feed_reader

    async def ingest_feed(self, feed_url: str, feed_id: int, user_id: int) -> BatchResult:
        """
        Ingest all items of a feed.

        Only a failure to fetch or parse the feed document itself raises
        (FeedFetchFailed); per-item failures end up in BatchResult.errors.
        """
        start_time = time.monotonic()
        result = BatchResult(feed_url=feed_url)

        items = await self.feed_reader.fetch_items(feed_url)
        result.items_found = len(items)
        if not items:
            logger.info("No items found in RSS feed", feed_url=feed_url)
            return result

        origin = feed_origin(feed_url)
        logger.info("Processing RSS feed", feed_url=feed_url, origin=origin, items=len(items))

        for item in items:
            if not item.link:
                logger.info("Skipping RSS item without link", title=item.title)
                result.items_skipped += 1
                continue

            try:
                outcome, linked = await self._ingest_item(item, origin, feed_id, user_id)
            except Exception as e:
                label = item.title or item.link
                logger.error("RSS item failed", item=label, error=str(e), error_type=type(e).__name__)
                result.errors.append(f"{label}: {e}")
                continue

            if outcome == ItemOutcome.CREATED:
                result.posts_created += 1
            elif outcome == ItemOutcome.LINKED_EXISTING:
                result.posts_linked += 1
            else:
                result.items_skipped += 1

            if not linked:
                result.posts_unlinked += 1

        result.duration_seconds = time.monotonic() - start_time
        logger.info("RSS feed ingestion finished", feed_url=feed_url, result=str(result))
        return result

    async def _ingest_item(
        self,
        item: FeedItem,
        origin: str,
        feed_id: int,
        user_id: int,
    ) -> tuple[ItemOutcome, bool]:
        """Ingest one item; returns its outcome and whether it is linked into the feed."""
        url = absolutize_link(item.link, origin)

        existing = await self.repository.get_post_by_original_url(url)
        if existing:
            edge = await self.repository.get_post_in_feed(feed_id, existing.post_id)
            if edge is not None:
                logger.debug("RSS item already in feed", url=url, post_id=existing.post_id)
                return ItemOutcome.ALREADY_LINKED, True

            await self.repository.create_feed_to_post_relationship(feed_id, existing.post_id, user_id)
            logger.info("Linked existing post", url=url, post_id=existing.post_id)
            return ItemOutcome.LINKED_EXISTING, True

        content = self._content_from_item(item, url)
        if content is None:
            logger.info("Fetching article for RSS item", url=url)
            content = await self.article_extractor.extract(url)
        else:
            logger.info("Using content embedded in RSS item", url=url)

        post, created = await derive_and_store(self.repository, self.derivation, content)
        linked = await attach_to_feed(self.repository, feed_id, post.post_id, user_id)

        logger.info("RSS item stored", url=url, post_id=post.post_id, title=content.title, linked=linked)
        outcome = ItemOutcome.CREATED if created else ItemOutcome.LINKED_EXISTING
        return outcome, linked

    @staticmethod
    def _content_from_item(item: FeedItem, url: str) -> ExtractedContent | None:
        """ExtractedContent built from the item alone, or None if it needs a fetch."""
        if not item.has_embedded_content:
            return None

        text = strip_html(item.content)
        if not text:
            return None

        return ExtractedContent(
            original_url=url,
            title=item.title,
            html_content=item.content,
            text_content=text,
        )
