"""
Domain models for Linkfeed.
These are the core business entities, independent of database/API representation.
"""
from datetime import datetime, timezone
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Content
# =============================================================================

class Post(BaseModel):
    """
    A durably stored piece of content.

    Created exactly once per distinct original_url and never mutated
    by the ingestion pipeline afterwards.
    """
    post_id: int
    original_url: str  # Canonical URL, the deduplication key
    title: str
    html_content: str
    text_content: str
    generated_summary: str
    embedding: list[float] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Feeds
# =============================================================================

class FeedToPostRelationship(BaseModel):
    """Edge linking one post into one feed, tagged with the acting user."""
    feed_id: int
    post_id: int
    user_id: int
    created_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# API schemas
# =============================================================================

class FeedCreate(BaseModel):
    """Request body for creating a feed."""
    title: str = Field(min_length=1, max_length=200)
    user_id: int


class FeedCreated(BaseModel):
    feed_id: int
    feed_slug: str


class ContentSubmission(BaseModel):
    """Request body for submitting a URL into a feed."""
    url: str = Field(min_length=1, max_length=2048)
    user_id: int

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("url must be an absolute http(s) URL")
        return v


class SubmissionAccepted(BaseModel):
    message: str = "Content ingestion scheduled"
    url: str
    feed_id: int
    pending_ingestions: int = 0
