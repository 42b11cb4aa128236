"""
Derivation stage: summary and embedding for one text body.

Both calls run concurrently and the stage only completes once both have
finished. A post is never stored with just one of the two.
"""
import asyncio
from dataclasses import dataclass

import structlog

from linkfeed.core.errors import DerivationFailed, EmbeddingFailed, SummaryFailed
from linkfeed.services.embeddings import EmbeddingService
from linkfeed.services.summarization import SummarizationService

logger = structlog.get_logger(__name__)


@dataclass
class Derivation:
    summary: str
    embedding: list[float]


class DerivationStage:
    """Runs summarization and embedding side by side."""

    def __init__(self, summarizer: SummarizationService, embedder: EmbeddingService):
        self.summarizer = summarizer
        self.embedder = embedder

    async def derive(self, text: str) -> Derivation:
        """
        Produce the summary and embedding for a text body.

        Raises:
            SummaryFailed: the summary ran out of attempts
            EmbeddingFailed: the embedding call failed
            DerivationFailed: the text is empty, or both branches failed
        """
        if not text or not text.strip():
            raise DerivationFailed("cannot derive from empty text")

        summary, embedding = await asyncio.gather(
            self.summarizer.summarize(text),
            self._embed(text),
            return_exceptions=True,
        )

        summary_error = summary if isinstance(summary, BaseException) else None
        embedding_error = embedding if isinstance(embedding, BaseException) else None

        for error in (summary_error, embedding_error):
            if isinstance(error, asyncio.CancelledError):
                raise error

        if summary_error and embedding_error:
            raise DerivationFailed(
                f"summary and embedding both failed: {summary_error}; {embedding_error}"
            ) from summary_error
        if summary_error:
            if isinstance(summary_error, DerivationFailed):
                raise summary_error
            raise SummaryFailed(0, summary_error) from summary_error
        if embedding_error:
            if isinstance(embedding_error, DerivationFailed):
                raise embedding_error
            raise EmbeddingFailed(embedding_error) from embedding_error

        logger.debug("Derived summary and embedding", summary_chars=len(summary), dimension=len(embedding))
        return Derivation(summary=summary, embedding=embedding)

    async def _embed(self, text: str) -> list[float]:
        vector = await self.embedder.embed_text(text)
        return [float(x) for x in vector]
