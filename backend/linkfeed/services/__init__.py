"""
Services layer - core business logic for Linkfeed.

1. Data ingestion (data_ingestion/):
   - Source classification and canonical URLs
   - Article and video transcript extraction
   - RSS/Atom feed reading

2. Summarization (summarization.py):
   - LLM summaries with bounded exponential-backoff retry

3. Embeddings (embeddings.py):
   - Vector for each post, single attempt

4. Derivation (derivation.py):
   - Summary and embedding generated concurrently

5. Post repository (post_repository.py):
   - Deduplication by canonical URL and idempotent feed links
"""

from linkfeed.services.derivation import Derivation, DerivationStage
from linkfeed.services.embeddings import EmbeddingService
from linkfeed.services.post_repository import PostRepository, SQLAlchemyPostRepository
from linkfeed.services.summarization import SummarizationService

__all__ = [
    "Derivation",
    "DerivationStage",
    "EmbeddingService",
    "PostRepository",
    "SQLAlchemyPostRepository",
    "SummarizationService",
]
