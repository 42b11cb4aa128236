"""
Base classes and data models for content ingestion.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class SourceKind(str, Enum):
    """Extraction strategy chosen for a submitted URL."""
    RSS_FEED = "rss_feed"
    VIDEO_TRANSCRIPT = "video_transcript"
    ARTICLE = "article"


@dataclass(frozen=True)
class Classification:
    """Result of classifying a submitted URL."""
    kind: SourceKind
    video_id: Optional[str] = None


@dataclass
class ExtractedContent:
    """
    Normalized content produced by an extractor.

    Lives only for one pipeline invocation; original_url is already
    canonical and is what deduplication keys on.
    """
    original_url: str
    title: str
    html_content: str
    text_content: str  # Plain text used as summary/embedding input


@dataclass
class FeedItem:
    """One item of a parsed RSS/Atom document, in document order."""
    link: Optional[str]
    title: Optional[str] = None
    pub_date: Optional[str] = None  # Raw date string as it appears in the feed
    content: Optional[str] = None  # Embedded HTML body, if any

    @property
    def has_embedded_content(self) -> bool:
        """True when the item carries enough to skip fetching the page."""
        return bool(self.title and self.pub_date and self.content)


@dataclass
class TranscriptSegment:
    """A timestamped piece of a video transcript (offsets in seconds)."""
    text: str
    start: float
    duration: float

    @property
    def end(self) -> float:
        return self.start + self.duration


@dataclass
class VideoMetadata:
    title: str = ""
    description: str = ""


@dataclass
class IngestionResult:
    """Outcome of ingesting a single URL into a feed."""
    original_url: str
    post_id: int
    created: bool  # False when the post already existed
    linked: bool  # False when attaching to the feed failed

    def __str__(self) -> str:
        state = "created" if self.created else "existing"
        link = "linked" if self.linked else "link failed"
        return f"post {self.post_id} ({state}, {link}): {self.original_url}"


@dataclass
class BatchResult:
    """Result of ingesting every item of one RSS/Atom feed."""
    feed_url: str
    items_found: int = 0
    posts_created: int = 0
    posts_linked: int = 0
    items_skipped: int = 0
    posts_unlinked: int = 0  # Stored, but attaching to the feed failed
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        return (
            f"{status} {self.feed_url}: "
            f"found={self.items_found}, created={self.posts_created}, "
            f"linked={self.posts_linked}, unlinked={self.posts_unlinked}, "
            f"skipped={self.items_skipped}, "
            f"errors={len(self.errors)}, time={self.duration_seconds:.1f}s"
        )


class ContentExtractor(ABC):
    """
    Abstract base class for extractors.

    Each variant turns a source into ExtractedContent and raises
    ExtractionFailed when no usable content can be obtained.
    """

    kind: SourceKind

    @abstractmethod
    async def extract(self, url: str, classification: Optional[Classification] = None) -> ExtractedContent:
        """
        Extract normalized content.

        Args:
            url: Canonical URL of the source
            classification: Classifier output for the URL, when known

        Returns:
            ExtractedContent with original_url set to the canonical form
        """
        pass
