"""
Dedup & persistence gateway for posts and their feed links.

The ingestion pipeline only talks to the PostRepository interface.
Uniqueness of original_url and of each (feed_id, post_id) pair is
enforced by the storage layer, not by the pipeline.
"""
from abc import ABC, abstractmethod
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linkfeed.core.errors import PostAlreadyExists
from linkfeed.models.database import DBFeedPost, DBPost
from linkfeed.models.domain import FeedToPostRelationship, Post

logger = structlog.get_logger(__name__)


class PostRepository(ABC):
    """Operations the ingestion pipeline requires from storage."""

    @abstractmethod
    async def get_post_by_original_url(self, original_url: str) -> Optional[Post]:
        """Exact match on the canonical URL."""
        pass

    @abstractmethod
    async def create_post(
        self,
        original_url: str,
        text_content: str,
        html_content: str,
        title: str,
        generated_summary: str,
        embedding: list[float],
    ) -> Post:
        """
        Store a new post.

        Raises:
            PostAlreadyExists: if original_url is already stored
        """
        pass

    @abstractmethod
    async def get_post_in_feed(self, feed_id: int, post_id: int) -> Optional[FeedToPostRelationship]:
        """Existing edge for a (feed, post) pair, if any."""
        pass

    @abstractmethod
    async def create_feed_to_post_relationship(
        self,
        feed_id: int,
        post_id: int,
        user_id: int,
    ) -> FeedToPostRelationship:
        """Link a post into a feed; returns the existing edge when already linked."""
        pass


def to_post(row: DBPost) -> Post:
    return Post(
        post_id=row.id,
        original_url=row.original_url,
        title=row.title,
        html_content=row.html_content,
        text_content=row.text_content,
        generated_summary=row.generated_summary,
        embedding=row.embedding_json or [],
        created_at=row.created_at,
    )


def to_relationship(row: DBFeedPost) -> FeedToPostRelationship:
    return FeedToPostRelationship(
        feed_id=row.feed_id,
        post_id=row.post_id,
        user_id=row.user_id,
        created_at=row.created_at,
    )


class SQLAlchemyPostRepository(PostRepository):
    """PostRepository backed by the async SQLAlchemy models."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_post_by_original_url(self, original_url: str) -> Optional[Post]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DBPost).where(DBPost.original_url == original_url)
            )
            row = result.scalar_one_or_none()
            return to_post(row) if row else None

    async def create_post(
        self,
        original_url: str,
        text_content: str,
        html_content: str,
        title: str,
        generated_summary: str,
        embedding: list[float],
    ) -> Post:
        async with self.session_factory() as session:
            row = DBPost(
                original_url=original_url,
                title=title,
                html_content=html_content,
                text_content=text_content,
                generated_summary=generated_summary,
                embedding_json=list(embedding),
            )
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise PostAlreadyExists(original_url) from e

            await session.refresh(row)
            logger.info("Post created", post_id=row.id, original_url=original_url)
            return to_post(row)

    async def get_post_in_feed(self, feed_id: int, post_id: int) -> Optional[FeedToPostRelationship]:
        async with self.session_factory() as session:
            row = await self._find_link(session, feed_id, post_id)
            return to_relationship(row) if row else None

    async def create_feed_to_post_relationship(
        self,
        feed_id: int,
        post_id: int,
        user_id: int,
    ) -> FeedToPostRelationship:
        async with self.session_factory() as session:
            existing = await self._find_link(session, feed_id, post_id)
            if existing:
                return to_relationship(existing)

            row = DBFeedPost(feed_id=feed_id, post_id=post_id, user_id=user_id)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError:
                # Lost a race against another ingestion of the same pair
                await session.rollback()
                existing = await self._find_link(session, feed_id, post_id)
                if existing is None:
                    raise
                return to_relationship(existing)

            await session.refresh(row)
            return to_relationship(row)

    @staticmethod
    async def _find_link(session: AsyncSession, feed_id: int, post_id: int) -> Optional[DBFeedPost]:
        result = await session.execute(
            select(DBFeedPost).where(
                DBFeedPost.feed_id == feed_id,
                DBFeedPost.post_id == post_id,
            )
        )
        return result.scalar_one_or_none()
