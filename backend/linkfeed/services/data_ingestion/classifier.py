"""
Source classification for submitted URLs.

An ordered, side-effect free predicate chain:

1. RSS/Atom feed (URL suffix heuristics, no content probing)
2. Video with a transcript (first matching video-id pattern)
3. Generic article (everything else)
"""

import re
from typing import Optional

from linkfeed.services.data_ingestion.base import Classification, SourceKind

DEFAULT_VIDEO_HOST = "www.youtube.com"

RSS_PATTERNS = [
    re.compile(r"\.xml$", re.IGNORECASE),
    re.compile(r"/feed/?$", re.IGNORECASE),
    re.compile(r"/rss/?$", re.IGNORECASE),
    re.compile(r"/atom/?$", re.IGNORECASE),
    re.compile(r"feed\.xml$", re.IGNORECASE),
    re.compile(r"rss\.xml$", re.IGNORECASE),
    re.compile(r"atom\.xml$", re.IGNORECASE),
]

# Order matters: the first pattern that matches wins
VIDEO_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/watch\?.*v=([^&\n?#]+)"),
    re.compile(r"youtube\.com/shorts/([0-9a-zA-Z]+)"),
]


def is_rss_url(url: str) -> bool:
    """Check whether a URL looks like an RSS/Atom feed."""
    return any(pattern.search(url) for pattern in RSS_PATTERNS)


def parse_video_id(url: str) -> Optional[str]:
    """Return the video id of a video-hosting URL, or None."""
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1) or None
    return None


def normalize_video_url(video_id: str, host: str = DEFAULT_VIDEO_HOST) -> str:
    """Canonical URL for a video, shared by every surface form."""
    return f"https://{host}/watch?v={video_id}"


def classify(url: str) -> Classification:
    """
    Decide which extraction strategy applies to a URL.

    Never raises; anything unrecognized is an article.
    """
    if is_rss_url(url):
        return Classification(kind=SourceKind.RSS_FEED)

    video_id = parse_video_id(url)
    if video_id:
        return Classification(kind=SourceKind.VIDEO_TRANSCRIPT, video_id=video_id)

    return Classification(kind=SourceKind.ARTICLE)


def canonical_url(url: str, classification: Classification, host: str = DEFAULT_VIDEO_HOST) -> str:
    """The form of a URL that deduplication keys on."""
    if classification.kind == SourceKind.VIDEO_TRANSCRIPT and classification.video_id:
        return normalize_video_url(classification.video_id, host)
    return url
