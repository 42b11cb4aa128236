"""
Error taxonomy for the content ingestion pipeline.

Every failure a pipeline stage can report derives from IngestionError so
the task and batch boundaries can contain them uniformly.
"""
from typing import Optional


class IngestionError(Exception):
    """Base class for all ingestion failures."""


class ExtractionFailed(IngestionError):
    """No usable content could be obtained from a source."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Could not extract content from {url}: {reason}")


class FeedFetchFailed(ExtractionFailed):
    """The RSS/Atom document itself could not be fetched or parsed."""


class DerivationFailed(IngestionError):
    """Summary or embedding generation failed for a content body."""


class SummaryFailed(DerivationFailed):
    """Summary generation exhausted its retry budget."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Summary generation failed after {attempts} attempts: {last_error}")


class EmbeddingFailed(DerivationFailed):
    """The single embedding attempt failed."""

    def __init__(self, last_error: Optional[BaseException]):
        self.last_error = last_error
        super().__init__(f"Embedding generation failed: {last_error}")


class PostAlreadyExists(IngestionError):
    """A concurrent ingestion stored the same original URL first."""

    def __init__(self, original_url: str):
        self.original_url = original_url
        super().__init__(f"Post already exists for {original_url}")


class LinkAttachFailed(IngestionError):
    """The feed/post edge could not be created after the post was stored."""

    def __init__(self, feed_id: int, post_id: int, cause: Optional[BaseException] = None):
        self.feed_id = feed_id
        self.post_id = post_id
        self.cause = cause
        super().__init__(f"Could not link post {post_id} to feed {feed_id}: {cause}")
