"""
Embedding service for post content.
The vectors are stored with each post and used for recommendations.
"""
import asyncio
import hashlib
from typing import Any, Optional, Protocol

import numpy as np
import structlog
from numpy.typing import NDArray

from linkfeed.config import GenerationSettings, get_settings
from linkfeed.core.errors import EmbeddingFailed
from linkfeed.services.data_ingestion.rate_limiter import get_rate_limiter

logger = structlog.get_logger(__name__)

Vector = NDArray[np.float32]


def unit_vector(values: Any) -> Vector:
    """Float32 copy of values scaled to length 1 (zero vectors stay zero)."""
    vector = np.asarray(values, dtype=np.float32)
    norm = float(np.linalg.norm(vector))
    return vector / norm if norm > 0 else vector


class Embedder(Protocol):
    dimension: int

    async def embed(self, text: str) -> Vector:
        ...


class HashEmbedder:
    """Deterministic pseudo-embeddings from the SHA-256 of the text."""

    def __init__(self, dimension: int):
        self.dimension = dimension

    async def embed(self, text: str) -> Vector:
        digest = np.frombuffer(hashlib.sha256(text.encode("utf-8")).digest(), dtype=np.uint8)
        centered = digest.astype(np.float32) - 127.5
        return unit_vector(np.resize(centered, self.dimension))


class OpenAIEmbedder:
    """text-embedding-3 vectors from the OpenAI API."""

    def __init__(self, client: Any, model: str, dimension: int):
        self.client = client
        self.model = model
        self.dimension = dimension
        self.rate_limiter = get_rate_limiter()

    async def embed(self, text: str) -> Vector:
        await self.rate_limiter.wait_if_needed("generation")
        response = await self.client.embeddings.create(model=self.model, input=text)
        return unit_vector(response.data[0].embedding)


class LocalEmbedder:
    """sentence-transformers model running on CPU."""

    def __init__(self, model: Any):
        self.model = model
        self.dimension = model.get_sentence_embedding_dimension()

    async def embed(self, text: str) -> Vector:
        loop = asyncio.get_event_loop()
        encoded = await loop.run_in_executor(
            None,
            lambda: self.model.encode(text, convert_to_numpy=True),
        )
        return unit_vector(encoded)


class EmbeddingService:
    """
    Computes the embedding stored with every post.

    The backend is chosen by GENERATION_EMBEDDING_BACKEND: "openai",
    "local" (sentence-transformers) or "hash" (development and tests).
    Calls are made exactly once; there is no retry.
    """

    def __init__(
        self,
        settings: Optional[GenerationSettings] = None,
        openai_client: Any = None,
    ):
        self.settings = settings or get_settings().generation
        self._embedder: Optional[Embedder] = None

        if self.settings.embedding_backend == "hash":
            self._embedder = HashEmbedder(self.settings.embedding_dimension)
        elif self.settings.embedding_backend == "openai" and openai_client is not None:
            self._embedder = self._openai_embedder(openai_client)

    @property
    def dimension(self) -> int:
        if self._embedder is not None:
            return self._embedder.dimension
        return self.settings.embedding_dimension

    def _openai_embedder(self, client: Any) -> OpenAIEmbedder:
        return OpenAIEmbedder(client, self.settings.openai_embedding_model, self.settings.embedding_dimension)

    async def initialize(self):
        """Create the backend client or load the local model (lazy loading)."""
        backend = self.settings.embedding_backend
        if self._embedder is None:
            if backend == "local":
                from sentence_transformers import SentenceTransformer

                # Model loading reads weights from disk
                loop = asyncio.get_event_loop()
                model = await loop.run_in_executor(
                    None,
                    lambda: SentenceTransformer(self.settings.local_embedding_model),
                )
                self._embedder = LocalEmbedder(model)
            elif self.settings.openai_api_key:
                from openai import AsyncOpenAI

                self._embedder = self._openai_embedder(AsyncOpenAI(api_key=self.settings.openai_api_key))
            else:
                logger.warning("OpenAI embeddings selected but no API key configured")

        logger.info("Embedding service initialized", backend=backend, dimension=self.dimension)

    async def embed_text(self, text: str) -> Vector:
        """
        Compute the normalized embedding of a text.

        Raises:
            EmbeddingFailed: if the backend call fails or is not configured
        """
        backend = self.settings.embedding_backend
        try:
            if self._embedder is None:
                raise RuntimeError(f"embedding backend '{backend}' is not initialized")
            return await self._embedder.embed(text)
        except Exception as e:
            logger.error("Embedding generation failed", backend=backend, error=str(e))
            raise EmbeddingFailed(e) from e
