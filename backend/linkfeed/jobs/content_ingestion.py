"""
Content ingestion for a single submitted URL.

Pipeline stages:
1. Classify the URL (RSS feed, video transcript, generic article)
2. RSS feeds are handed to the batch driver and nothing else happens here
3. Canonicalize the URL (video URLs collapse to one form)
4. Deduplicate against stored posts by canonical URL
5. On a miss: extract, derive summary + embedding, store the post
6. Link the post into the requesting feed (failure is logged only)
"""
from typing import Optional, Union

import structlog

from linkfeed.config import Settings, get_settings
from linkfeed.jobs.rss_ingestion import RSSFeedIngestor
from linkfeed.jobs.steps import attach_to_feed, derive_and_store
from linkfeed.services.data_ingestion.article import ArticleExtractor
from linkfeed.services.data_ingestion.base import (
    BatchResult,
    ContentExtractor,
    IngestionResult,
    SourceKind,
)
from linkfeed.services.data_ingestion.classifier import canonical_url, classify
from linkfeed.services.data_ingestion.rss import FeedReader
from linkfeed.services.data_ingestion.youtube import VideoTranscriptExtractor
from linkfeed.services.derivation import DerivationStage
from linkfeed.services.embeddings import EmbeddingService
from linkfeed.services.post_repository import PostRepository
from linkfeed.services.summarization import SummarizationService

logger = structlog.get_logger(__name__)


class ContentIngestionPipeline:
    """Wires classifier, extractors, derivation and storage for one URL."""

    def __init__(
        self,
        repository: PostRepository,
        derivation: DerivationStage,
        article_extractor: ArticleExtractor,
        video_extractor: VideoTranscriptExtractor,
        feed_reader: FeedReader,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.repository = repository
        self.derivation = derivation
        self.extractors: dict[SourceKind, ContentExtractor] = {
            SourceKind.ARTICLE: article_extractor,
            SourceKind.VIDEO_TRANSCRIPT: video_extractor,
        }
        self.rss_ingestor = RSSFeedIngestor(repository, derivation, article_extractor, feed_reader)

    @classmethod
    def create(cls, repository: PostRepository, settings: Optional[Settings] = None) -> "ContentIngestionPipeline":
        """Build a pipeline with the default collaborators for these settings."""
        settings = settings or get_settings()
        derivation = DerivationStage(
            SummarizationService(settings.generation),
            EmbeddingService(settings.generation),
        )
        return cls(
            repository=repository,
            derivation=derivation,
            article_extractor=ArticleExtractor(settings.extraction),
            video_extractor=VideoTranscriptExtractor(settings.extraction),
            feed_reader=FeedReader(settings.extraction),
            settings=settings,
        )

    async def initialize(self):
        """Initialize the generation backends."""
        await self.derivation.summarizer.initialize()
        await self.derivation.embedder.initialize()

    async def ingest(self, url: str, feed_id: int, user_id: int) -> Union[IngestionResult, BatchResult]:
        """
        Ingest a submitted URL into a feed.

        Raises:
            ExtractionFailed: no usable content could be obtained
            DerivationFailed: summary or embedding generation failed
        """
        classification = classify(url)
        logger.info("URL classified", url=url, kind=classification.kind.value, video_id=classification.video_id)

        if classification.kind == SourceKind.RSS_FEED:
            return await self.rss_ingestor.ingest_feed(url, feed_id, user_id)

        url = canonical_url(url, classification, self.settings.extraction.video_host)

        created = False
        post = await self.repository.get_post_by_original_url(url)
        if post is None:
            logger.info("New content, extracting", url=url)
            extractor = self.extractors[classification.kind]
            content = await extractor.extract(url, classification)
            post, created = await derive_and_store(self.repository, self.derivation, content)
        else:
            logger.info("Content already stored", url=url, post_id=post.post_id)

        linked = await attach_to_feed(self.repository, feed_id, post.post_id, user_id)

        result = IngestionResult(
            original_url=post.original_url,
            post_id=post.post_id,
            created=created,
            linked=linked,
        )
        logger.info("Ingestion finished", result=str(result))
        return result
