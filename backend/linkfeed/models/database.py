"""
SQLAlchemy database models for Linkfeed.
Uses SQLAlchemy 2.0 async patterns.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.ext.asyncio import AsyncAttrs, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# =============================================================================
# Base
# =============================================================================

class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all database models."""
    pass


# =============================================================================
# Posts
# =============================================================================

class DBPost(Base):
    """Extracted content with its generated summary and embedding."""
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    original_url: Mapped[str] = mapped_column(String(2048), nullable=False)

    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    html_content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    text_content: Mapped[str] = mapped_column(Text, nullable=False)
    generated_summary: Mapped[str] = mapped_column(Text, nullable=False)

    # Embedding (stored as JSON array)
    embedding_json: Mapped[Optional[list]] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Relationships
    feed_links: Mapped[list["DBFeedPost"]] = relationship(back_populates="post")

    __table_args__ = (
        Index("ix_posts_original_url", "original_url", unique=True),
    )


# =============================================================================
# Feeds
# =============================================================================

class DBFeed(Base):
    """User-curated collection of posts."""
    __tablename__ = "feeds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    owner_user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Relationships
    members: Mapped[list["DBFeedMember"]] = relationship(
        back_populates="feed", cascade="all, delete-orphan"
    )
    post_links: Mapped[list["DBFeedPost"]] = relationship(
        back_populates="feed", cascade="all, delete-orphan"
    )


class DBFeedMember(Base):
    """Membership of a user in a feed."""
    __tablename__ = "feed_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    feed_id: Mapped[int] = mapped_column(Integer, ForeignKey("feeds.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    feed: Mapped["DBFeed"] = relationship(back_populates="members")

    __table_args__ = (
        Index("ix_feed_members_pair", "feed_id", "user_id", unique=True),
    )


class DBFeedPost(Base):
    """Edge linking a post into a feed."""
    __tablename__ = "feed_posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    feed_id: Mapped[int] = mapped_column(Integer, ForeignKey("feeds.id"), nullable=False)
    post_id: Mapped[int] = mapped_column(Integer, ForeignKey("posts.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)  # Who added it
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    feed: Mapped["DBFeed"] = relationship(back_populates="post_links")
    post: Mapped["DBPost"] = relationship(back_populates="feed_links")

    __table_args__ = (
        Index("ix_feed_posts_pair", "feed_id", "post_id", unique=True),
        Index("ix_feed_posts_post", "post_id"),
    )


# =============================================================================
# Database Connection
# =============================================================================

class Database:
    """Database connection manager."""

    def __init__(self, database_url: str):
        self.engine = create_async_engine(
            database_url,
            echo=False,  # Set to True for SQL logging
            future=True,
        )
        self.async_session = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
        )

    async def create_tables(self):
        """Create all tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self):
        """Drop all tables (use with caution!)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self):
        await self.engine.dispose()

    async def get_session(self):
        """Get a database session."""
        async with self.async_session() as session:
            yield session
