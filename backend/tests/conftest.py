"""
Shared fixtures and test doubles for the ingestion tests.
"""

from types import SimpleNamespace
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from linkfeed.config import GenerationSettings, Settings
from linkfeed.core.errors import ExtractionFailed, PostAlreadyExists, SummaryFailed
from linkfeed.jobs.content_ingestion import ContentIngestionPipeline
from linkfeed.models.domain import FeedToPostRelationship, Post
from linkfeed.services.data_ingestion import rate_limiter
from linkfeed.services.data_ingestion.base import (
    Classification,
    ExtractedContent,
    FeedItem,
    SourceKind,
)
from linkfeed.services.derivation import DerivationStage
from linkfeed.services.embeddings import EmbeddingService
from linkfeed.services.post_repository import PostRepository


class FakePostRepository(PostRepository):
    """In-memory gateway with the same uniqueness guarantees as the database."""

    def __init__(self):
        self.posts: dict[str, Post] = {}
        self.links: dict[tuple[int, int], FeedToPostRelationship] = {}
        self.create_post_calls = 0
        self.fail_links = False

    async def get_post_by_original_url(self, original_url: str) -> Optional[Post]:
        return self.posts.get(original_url)

    async def create_post(self, original_url, text_content, html_content, title, generated_summary, embedding):
        self.create_post_calls += 1
        if original_url in self.posts:
            raise PostAlreadyExists(original_url)
        post = Post(
            post_id=len(self.posts) + 1,
            original_url=original_url,
            title=title,
            html_content=html_content,
            text_content=text_content,
            generated_summary=generated_summary,
            embedding=embedding,
        )
        self.posts[original_url] = post
        return post

    async def get_post_in_feed(self, feed_id: int, post_id: int):
        return self.links.get((feed_id, post_id))

    async def create_feed_to_post_relationship(self, feed_id: int, post_id: int, user_id: int):
        if self.fail_links:
            raise RuntimeError("link storage unavailable")
        key = (feed_id, post_id)
        if key not in self.links:
            self.links[key] = FeedToPostRelationship(feed_id=feed_id, post_id=post_id, user_id=user_id)
        return self.links[key]


class FakeExtractor:
    """Extractor double that records calls and fails for selected URLs."""

    def __init__(self, kind: SourceKind, failing_urls: tuple[str, ...] = ()):
        self.kind = kind
        self.failing_urls = set(failing_urls)
        self.calls: list[str] = []

    async def extract(self, url: str, classification: Optional[Classification] = None) -> ExtractedContent:
        self.calls.append(url)
        if url in self.failing_urls:
            raise ExtractionFailed(url, "page could not be parsed")
        return ExtractedContent(
            original_url=url,
            title=f"Title of {url}",
            html_content=f"<p>Body of {url}</p>",
            text_content=f"Body of {url}",
        )


class FakeFeedReader:
    def __init__(self, items: list[FeedItem]):
        self.items = items
        self.calls: list[str] = []

    async def fetch_items(self, feed_url: str) -> list[FeedItem]:
        self.calls.append(feed_url)
        return list(self.items)


class FakeSummarizer:
    """Summarizer double; bodies containing a failing marker exhaust their retries."""

    def __init__(self):
        self.calls: list[str] = []
        self.failing_markers: set[str] = set()

    async def summarize(self, content: str) -> str:
        self.calls.append(content)
        if any(marker in content for marker in self.failing_markers):
            raise SummaryFailed(7, RuntimeError("summary backend unavailable"))
        return f"Summary: {content[:40]}"


def anthropic_reply(text: str) -> SimpleNamespace:
    """Shape of an Anthropic messages.create response."""
    return SimpleNamespace(content=[SimpleNamespace(text=text)])


def fake_anthropic_client(side_effect) -> MagicMock:
    client = MagicMock()
    client.messages.create = AsyncMock(side_effect=side_effect)
    return client


@pytest.fixture(autouse=True)
def fresh_rate_limiter():
    """Give every test its own limiter with a generous generation budget."""
    rate_limiter._global_limiter = None
    limiter = rate_limiter.get_rate_limiter()
    limiter.set_limit("generation", 10_000, 60)
    limiter.set_limit("rss", 10_000, 1)
    yield limiter
    rate_limiter._global_limiter = None


@pytest.fixture
def generation_settings() -> GenerationSettings:
    return GenerationSettings(
        embedding_backend="hash",
        embedding_dimension=16,
        summary_max_attempts=7,
        summary_initial_backoff_seconds=10.0,
    )


@pytest.fixture
def repository() -> FakePostRepository:
    return FakePostRepository()


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def derivation(summarizer, generation_settings) -> DerivationStage:
    return DerivationStage(summarizer, EmbeddingService(generation_settings))


@pytest.fixture
def article_extractor() -> FakeExtractor:
    return FakeExtractor(SourceKind.ARTICLE)


@pytest.fixture
def video_extractor() -> FakeExtractor:
    return FakeExtractor(SourceKind.VIDEO_TRANSCRIPT)


@pytest.fixture
def feed_reader() -> FakeFeedReader:
    return FakeFeedReader([])


@pytest.fixture
def pipeline(repository, derivation, article_extractor, video_extractor, feed_reader) -> ContentIngestionPipeline:
    return ContentIngestionPipeline(
        repository=repository,
        derivation=derivation,
        article_extractor=article_extractor,
        video_extractor=video_extractor,
        feed_reader=feed_reader,
        settings=Settings(),
    )
