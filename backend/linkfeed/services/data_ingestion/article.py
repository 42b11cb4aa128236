"""
Generic web article extraction.

Fetches a page and isolates its readable main body with Mozilla's
readability algorithm (the same one behind Firefox Reader View).
"""

import asyncio
import logging
from typing import Optional

import httpx
from readability import Document

from linkfeed.config import ExtractionSettings, get_settings
from linkfeed.core.errors import ExtractionFailed
from linkfeed.services.data_ingestion.base import (
    Classification,
    ContentExtractor,
    ExtractedContent,
    SourceKind,
)
from linkfeed.services.data_ingestion.html import strip_html

logger = logging.getLogger(__name__)


class ArticleExtractor(ContentExtractor):
    """Turns an arbitrary web page into ExtractedContent."""

    kind = SourceKind.ARTICLE

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings().extraction
        self._transport = transport

    async def extract(self, url: str, classification: Optional[Classification] = None) -> ExtractedContent:
        html = await self._fetch(url)

        # readability is CPU bound, keep it off the event loop
        loop = asyncio.get_event_loop()
        try:
            title, body = await loop.run_in_executor(None, self._readable, html)
        except Exception as e:
            raise ExtractionFailed(url, f"readability failed: {e}") from e

        text = strip_html(body)
        if not text:
            raise ExtractionFailed(url, "no content body could be isolated")

        logger.debug(f"Extracted {len(text)} chars from {url}")
        return ExtractedContent(
            original_url=url,
            title=title or "",
            html_content=body,
            text_content=text,
        )

    async def _fetch(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout_seconds,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url, headers={"User-Agent": self.settings.user_agent})
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExtractionFailed(url, f"HTTP error: {e}") from e

        if not response.text.strip():
            raise ExtractionFailed(url, "empty response body")
        return response.text

    @staticmethod
    def _readable(html: str) -> tuple[str, str]:
        doc = Document(html)
        return doc.short_title(), doc.summary(html_partial=True)
