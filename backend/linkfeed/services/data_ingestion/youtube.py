"""
Video transcript extraction.

Transcript segments come from youtube-transcript-api; title and
description are read from the watch page's Open Graph tags.

The two fetches run concurrently. A transcript is essential, so its
failure aborts extraction; metadata is cosmetic, so its failure only
leaves title and description empty.
"""

import asyncio
import logging
from html import escape
from typing import Callable, Optional

import httpx
from bs4 import BeautifulSoup
from youtube_transcript_api import YouTubeTranscriptApi

from linkfeed.config import ExtractionSettings, get_settings
from linkfeed.core.errors import ExtractionFailed
from linkfeed.services.data_ingestion.base import (
    Classification,
    ContentExtractor,
    ExtractedContent,
    SourceKind,
    TranscriptSegment,
    VideoMetadata,
)
from linkfeed.services.data_ingestion.classifier import normalize_video_url, parse_video_id

logger = logging.getLogger(__name__)

TranscriptFetcher = Callable[[str, list[str]], list[TranscriptSegment]]


def fetch_transcript_segments(video_id: str, languages: list[str]) -> list[TranscriptSegment]:
    """Blocking transcript fetch, in original segment order."""
    fetched = YouTubeTranscriptApi().fetch(video_id, languages=languages)
    return [
        TranscriptSegment(text=snippet.text, start=snippet.start, duration=snippet.duration)
        for snippet in fetched
    ]


def render_transcript_html(description: str, segments: list[TranscriptSegment]) -> str:
    """Description followed by one paragraph per segment with its offset range."""
    paragraphs = "\n".join(
        f"<p>{segment.start:g} - {segment.end:g}: {escape(segment.text)}</p>"
        for segment in segments
    )
    return f"{escape(description)}\n\n{paragraphs}"


class VideoTranscriptExtractor(ContentExtractor):
    """Turns a video into ExtractedContent built from its transcript."""

    kind = SourceKind.VIDEO_TRANSCRIPT

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        transcript_fetcher: Optional[TranscriptFetcher] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings().extraction
        self._transcript_fetcher = transcript_fetcher or fetch_transcript_segments
        self._transport = transport

    async def extract(self, url: str, classification: Optional[Classification] = None) -> ExtractedContent:
        video_id = classification.video_id if classification else parse_video_id(url)
        if not video_id:
            raise ExtractionFailed(url, "no video id in URL")

        segments, metadata = await asyncio.gather(
            self._fetch_transcript(video_id),
            self._fetch_metadata(video_id),
        )

        return ExtractedContent(
            original_url=normalize_video_url(video_id, self.settings.video_host),
            title=metadata.title,
            html_content=render_transcript_html(metadata.description, segments),
            text_content="\n".join(segment.text for segment in segments),
        )

    async def _fetch_transcript(self, video_id: str) -> list[TranscriptSegment]:
        loop = asyncio.get_event_loop()
        try:
            segments = await loop.run_in_executor(
                None,
                lambda: self._transcript_fetcher(video_id, list(self.settings.transcript_languages)),
            )
        except Exception as e:
            raise ExtractionFailed(
                normalize_video_url(video_id, self.settings.video_host),
                f"transcript unavailable: {e}",
            ) from e

        if not segments:
            raise ExtractionFailed(
                normalize_video_url(video_id, self.settings.video_host),
                "transcript is empty",
            )
        return segments

    async def _fetch_metadata(self, video_id: str) -> VideoMetadata:
        url = normalize_video_url(video_id, self.settings.video_host)
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout_seconds,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url, headers={"User-Agent": self.settings.user_agent})
                response.raise_for_status()
            return self._parse_metadata(response.text)
        except Exception as e:
            logger.warning(f"Video metadata unavailable for {video_id}: {e}")
            return VideoMetadata()

    @staticmethod
    def _parse_metadata(html: str) -> VideoMetadata:
        soup = BeautifulSoup(html, "html.parser")

        def meta(*selectors: dict) -> str:
            for attrs in selectors:
                tag = soup.find("meta", attrs=attrs)
                if tag and tag.get("content"):
                    return tag["content"].strip()
            return ""

        title = meta({"property": "og:title"}, {"name": "title"})
        if not title and soup.title and soup.title.string:
            title = soup.title.string.strip()

        description = meta({"property": "og:description"}, {"name": "description"})
        return VideoMetadata(title=title, description=description)
