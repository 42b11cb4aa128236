"""
RSS/Atom feed fetching and parsing.

Turns a feed document into FeedItem records in document order. Items
without a usable link are kept (with link=None) so the batch driver
can report them as skipped.
"""

from typing import Optional
from urllib.parse import urlparse
from xml.etree import ElementTree
import logging

import httpx

from linkfeed.config import ExtractionSettings, get_settings
from linkfeed.core.errors import FeedFetchFailed
from linkfeed.services.data_ingestion.base import FeedItem
from linkfeed.services.data_ingestion.rate_limiter import get_rate_limiter

logger = logging.getLogger(__name__)

# XML namespaces for Atom and RSS 1.0 (RDF) feeds
ATOM_NS = "{http://www.w3.org/2005/Atom}"
RDF_NS = "{http://www.w3.org/1999/02/22-rdf-syntax-ns#}"
RSS1_NS = "{http://purl.org/rss/1.0/}"
DC_NS = "{http://purl.org/dc/elements/1.1/}"
CONTENT_NS = "{http://purl.org/rss/1.0/modules/content/}"


def feed_origin(feed_url: str) -> str:
    """scheme://host[:port] of a feed URL."""
    parsed = urlparse(feed_url)
    return f"{parsed.scheme}://{parsed.netloc}"


def absolutize_link(link: str, origin: str) -> str:
    """
    Best-effort absolute URL for a feed item link.

    Links already rooted at the feed origin, or carrying their own
    host, are kept (protocol-relative ones take the feed's scheme).
    Anything else is treated as a path on the feed origin.
    Parent-relative and query-only references are not resolved
    against the feed's own path.
    """
    link = link.strip()
    if link.startswith(origin):
        return link

    parsed = urlparse(link)
    if parsed.netloc:
        if parsed.scheme:
            return link
        return f"{urlparse(origin).scheme}:{link}"

    if not link.startswith("/"):
        link = "/" + link
    return origin + link


class FeedReader:
    """Fetches one RSS/Atom document and parses it into FeedItems."""

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings().extraction
        self.rate_limiter = get_rate_limiter()
        self._transport = transport

    async def fetch_items(self, feed_url: str) -> list[FeedItem]:
        """
        Fetch and parse a feed.

        Raises:
            FeedFetchFailed: if the document cannot be fetched or is not XML
        """
        await self.rate_limiter.wait_if_needed("rss")

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout_seconds,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(feed_url, headers={
                    "User-Agent": self.settings.user_agent,
                })
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise FeedFetchFailed(feed_url, f"HTTP error: {e}") from e

        items = self.parse(response.text, feed_url)
        logger.debug(f"Fetched {len(items)} items from {feed_url}")
        return items

    def parse(self, xml_content: str, feed_url: str = "") -> list[FeedItem]:
        """Parse an RSS 2.0, RSS 1.0 (RDF) or Atom document."""
        try:
            root = ElementTree.fromstring(xml_content.strip())
        except ElementTree.ParseError as e:
            raise FeedFetchFailed(feed_url, f"not a valid feed document: {e}") from e

        # Detect feed type
        if root.tag == f"{ATOM_NS}feed":
            return [self._parse_atom_entry(entry) for entry in root.findall(f"{ATOM_NS}entry")]
        if root.tag == f"{RDF_NS}RDF":
            # RSS 1.0 items are siblings of the channel, in the RSS 1.0 namespace
            return [self._parse_rss_item(item, RSS1_NS) for item in root.iter(f"{RSS1_NS}item")]
        return [self._parse_rss_item(item) for item in root.iter("item")]

    def _parse_rss_item(self, item: ElementTree.Element, ns: str = "") -> FeedItem:
        """Parse a single RSS item; ns is the element namespace (empty for RSS 2.0)."""
        title = (item.findtext(f"{ns}title") or "").strip() or None
        link = (item.findtext(f"{ns}link") or "").strip() or None

        # Prefer the full body over the teaser
        content = item.findtext(f"{CONTENT_NS}encoded") or item.findtext(f"{ns}description")
        content = content.strip() if content else None

        pub_date = item.findtext(f"{ns}pubDate") or item.findtext(f"{DC_NS}date")
        pub_date = pub_date.strip() if pub_date else None

        return FeedItem(link=link, title=title, pub_date=pub_date, content=content or None)

    def _parse_atom_entry(self, entry: ElementTree.Element) -> FeedItem:
        """Parse a single Atom entry."""
        title = (entry.findtext(f"{ATOM_NS}title") or "").strip() or None

        link = None
        for link_elem in entry.findall(f"{ATOM_NS}link"):
            if link_elem.get("rel", "alternate") == "alternate":
                link = link_elem.get("href")
                break
        if not link:
            link = entry.findtext(f"{ATOM_NS}id")
        link = link.strip() if link else None

        content_elem = entry.find(f"{ATOM_NS}content")
        if content_elem is None:
            content_elem = entry.find(f"{ATOM_NS}summary")
        content = self._element_html(content_elem)

        pub_date = entry.findtext(f"{ATOM_NS}published") or entry.findtext(f"{ATOM_NS}updated")
        pub_date = pub_date.strip() if pub_date else None

        return FeedItem(link=link, title=title, pub_date=pub_date, content=content or None)

    @staticmethod
    def _element_html(elem: Optional[ElementTree.Element]) -> str:
        """Inner markup of an element (handles inline xhtml content)."""
        if elem is None:
            return ""
        parts = [elem.text or ""]
        for child in elem:
            parts.append(ElementTree.tostring(child, encoding="unicode"))
        return "".join(parts).strip()
