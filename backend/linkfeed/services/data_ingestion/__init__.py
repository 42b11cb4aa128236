"""
Content ingestion building blocks for Linkfeed.

This module provides:
- URL classification (RSS feed, video transcript, article)
- Extractors producing normalized ExtractedContent
- RSS/Atom feed reading
- Rate limiting for outbound requests
"""

from linkfeed.services.data_ingestion.base import (
    BatchResult,
    Classification,
    ContentExtractor,
    ExtractedContent,
    FeedItem,
    IngestionResult,
    SourceKind,
    TranscriptSegment,
    VideoMetadata,
)
from linkfeed.services.data_ingestion.article import ArticleExtractor
from linkfeed.services.data_ingestion.classifier import classify, canonical_url
from linkfeed.services.data_ingestion.rate_limiter import RateLimiter
from linkfeed.services.data_ingestion.rss import FeedReader
from linkfeed.services.data_ingestion.youtube import VideoTranscriptExtractor

__all__ = [
    "BatchResult",
    "Classification",
    "ContentExtractor",
    "ExtractedContent",
    "FeedItem",
    "IngestionResult",
    "SourceKind",
    "TranscriptSegment",
    "VideoMetadata",
    "ArticleExtractor",
    "classify",
    "canonical_url",
    "RateLimiter",
    "FeedReader",
    "VideoTranscriptExtractor",
]
