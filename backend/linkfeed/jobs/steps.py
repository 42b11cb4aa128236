"""
Persist and link steps shared by the single-URL and RSS ingestion paths.
"""
import structlog

from linkfeed.core.errors import LinkAttachFailed, PostAlreadyExists
from linkfeed.models.domain import Post
from linkfeed.services.data_ingestion.base import ExtractedContent
from linkfeed.services.derivation import DerivationStage
from linkfeed.services.post_repository import PostRepository

logger = structlog.get_logger(__name__)


async def derive_and_store(
    repository: PostRepository,
    derivation: DerivationStage,
    content: ExtractedContent,
) -> tuple[Post, bool]:
    """
    Derive summary and embedding, then store the post.

    Returns the post and whether this call created it. When a concurrent
    ingestion stored the same URL first, the stored post is reused.
    """
    derived = await derivation.derive(content.text_content)

    try:
        post = await repository.create_post(
            content.original_url,
            content.text_content,
            content.html_content,
            content.title,
            derived.summary,
            derived.embedding,
        )
        return post, True
    except PostAlreadyExists:
        existing = await repository.get_post_by_original_url(content.original_url)
        if existing is None:
            raise
        logger.info(
            "Post stored concurrently, reusing it",
            original_url=content.original_url,
            post_id=existing.post_id,
        )
        return existing, False


async def attach_to_feed(
    repository: PostRepository,
    feed_id: int,
    post_id: int,
    user_id: int,
) -> bool:
    """
    Link a post into a feed.

    Failure is logged, never raised: the post already exists and the
    edge can be reconciled later.
    """
    try:
        await repository.create_feed_to_post_relationship(feed_id, post_id, user_id)
        return True
    except Exception as e:
        failure = LinkAttachFailed(feed_id, post_id, e)
        logger.error("Link attach failed", feed_id=feed_id, post_id=post_id, error=str(failure))
        return False
