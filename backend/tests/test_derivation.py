"""
Tests for summary/embedding derivation and the summary retry policy.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest
from pydantic import ValidationError

from linkfeed.config import GenerationSettings
from linkfeed.core.errors import DerivationFailed, EmbeddingFailed, SummaryFailed
from linkfeed.services.derivation import DerivationStage
from linkfeed.services.embeddings import EmbeddingService
from linkfeed.services.summarization import EmptySummary, SummarizationService

from conftest import anthropic_reply, fake_anthropic_client


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class TestSummaryRetry:
    """Tests for the bounded exponential backoff of summaries."""

    def test_first_attempt_succeeds(self, generation_settings):
        sleep = RecordingSleep()
        client = fake_anthropic_client([anthropic_reply("  A short summary.  ")])
        service = SummarizationService(generation_settings, anthropic_client=client, sleep=sleep)

        summary = asyncio.run(service.summarize("Some long article text"))

        assert summary == "A short summary."
        assert sleep.delays == []
        assert client.messages.create.await_count == 1

    def test_succeeds_on_last_attempt(self, generation_settings):
        """Test six failures followed by a success."""
        sleep = RecordingSleep()
        client = fake_anthropic_client([RuntimeError("overloaded")] * 6 + [anthropic_reply("Finally.")])
        service = SummarizationService(generation_settings, anthropic_client=client, sleep=sleep)

        summary = asyncio.run(service.summarize("text"))

        assert summary == "Finally."
        assert client.messages.create.await_count == 7
        assert sleep.delays == [10, 20, 40, 80, 160, 320]

    def test_gives_up_after_seven_attempts(self, generation_settings):
        """Test that the seventh failure is final and no eighth call is made."""
        sleep = RecordingSleep()
        client = fake_anthropic_client([RuntimeError(f"failure {i}") for i in range(1, 9)])
        service = SummarizationService(generation_settings, anthropic_client=client, sleep=sleep)

        with pytest.raises(SummaryFailed) as exc_info:
            asyncio.run(service.summarize("text"))

        assert client.messages.create.await_count == 7
        assert len(sleep.delays) == 6
        assert exc_info.value.attempts == 7
        assert str(exc_info.value.last_error) == "failure 7"

    def test_empty_answer_counts_as_failure(self, generation_settings):
        sleep = RecordingSleep()
        client = fake_anthropic_client([anthropic_reply(""), anthropic_reply("   "), anthropic_reply("Summary")])
        service = SummarizationService(generation_settings, anthropic_client=client, sleep=sleep)

        assert asyncio.run(service.summarize("text")) == "Summary"
        assert sleep.delays == [10, 20]

    def test_always_empty_fails(self, generation_settings):
        sleep = RecordingSleep()
        client = fake_anthropic_client([anthropic_reply("")] * 7)
        service = SummarizationService(generation_settings, anthropic_client=client, sleep=sleep)

        with pytest.raises(SummaryFailed) as exc_info:
            asyncio.run(service.summarize("text"))

        assert isinstance(exc_info.value.last_error, EmptySummary)

    def test_custom_schedule(self):
        settings = GenerationSettings(summary_max_attempts=3, summary_initial_backoff_seconds=1.5)
        sleep = RecordingSleep()
        client = fake_anthropic_client([RuntimeError("boom")] * 3)
        service = SummarizationService(settings, anthropic_client=client, sleep=sleep)

        with pytest.raises(SummaryFailed):
            asyncio.run(service.summarize("text"))

        assert sleep.delays == [1.5, 3.0]

    def test_openai_backend(self, generation_settings):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="From GPT."))]
        ))
        service = SummarizationService(generation_settings, openai_client=client, sleep=RecordingSleep())

        assert asyncio.run(service.summarize("text")) == "From GPT."

    def test_unconfigured_backend_fails_immediately(self, generation_settings):
        sleep = RecordingSleep()
        service = SummarizationService(generation_settings, sleep=sleep)

        with pytest.raises(SummaryFailed) as exc_info:
            asyncio.run(service.summarize("text"))

        assert exc_info.value.attempts == 0
        assert sleep.delays == []

    def test_invalid_settings(self):
        with pytest.raises(ValidationError):
            GenerationSettings(summary_max_attempts=0)
        with pytest.raises(ValidationError):
            GenerationSettings(summary_initial_backoff_seconds=-1)


class TestEmbeddings:
    """Tests for the embedding service."""

    def test_hash_backend_is_deterministic(self, generation_settings):
        service = EmbeddingService(generation_settings)

        first = asyncio.run(service.embed_text("hello"))
        second = asyncio.run(service.embed_text("hello"))

        assert first.shape == (16,)
        assert np.allclose(first, second)
        assert np.isclose(np.linalg.norm(first), 1.0)

    def test_openai_failure_is_not_retried(self):
        settings = GenerationSettings(embedding_backend="openai")
        client = MagicMock()
        client.embeddings.create = AsyncMock(side_effect=RuntimeError("rate limited"))
        service = EmbeddingService(settings, openai_client=client)

        with pytest.raises(EmbeddingFailed):
            asyncio.run(service.embed_text("hello"))

        assert client.embeddings.create.await_count == 1

    def test_openai_vector_is_normalized(self):
        settings = GenerationSettings(embedding_backend="openai")
        client = MagicMock()
        client.embeddings.create = AsyncMock(return_value=SimpleNamespace(
            data=[SimpleNamespace(embedding=[3.0, 4.0])]
        ))
        service = EmbeddingService(settings, openai_client=client)

        vector = asyncio.run(service.embed_text("hello"))

        assert np.allclose(vector, [0.6, 0.8])


class SlowSummarizer:
    """Summarizer that only finishes once embedding has started."""

    def __init__(self, embedding_started: asyncio.Event):
        self.embedding_started = embedding_started

    async def summarize(self, content):
        await asyncio.wait_for(self.embedding_started.wait(), timeout=1.0)
        await asyncio.sleep(0.01)
        return "slow summary"


class SignallingEmbedder:
    def __init__(self, embedding_started: asyncio.Event, error=None):
        self.embedding_started = embedding_started
        self.error = error

    async def embed_text(self, text):
        self.embedding_started.set()
        if self.error:
            raise self.error
        return np.array([0.5, 0.5], dtype=np.float32)


class FailingSummarizer:
    async def summarize(self, content):
        raise SummaryFailed(7, RuntimeError("down"))


class TestDerivationStage:
    """Tests for concurrent summary and embedding derivation."""

    def test_runs_both_concurrently(self):
        """Test that the summary waits on the embedding without deadlocking."""

        async def run():
            started = asyncio.Event()
            stage = DerivationStage(SlowSummarizer(started), SignallingEmbedder(started))
            return await stage.derive("body")

        derived = asyncio.run(run())

        assert derived.summary == "slow summary"
        assert derived.embedding == [0.5, 0.5]
        assert all(isinstance(x, float) for x in derived.embedding)

    def test_embedding_failure(self):
        async def run():
            started = asyncio.Event()
            stage = DerivationStage(
                SlowSummarizer(started),
                SignallingEmbedder(started, error=EmbeddingFailed(RuntimeError("quota"))),
            )
            return await stage.derive("body")

        with pytest.raises(EmbeddingFailed):
            asyncio.run(run())

    def test_summary_failure(self, generation_settings):
        stage = DerivationStage(FailingSummarizer(), EmbeddingService(generation_settings))

        with pytest.raises(SummaryFailed) as exc_info:
            asyncio.run(stage.derive("body"))

        assert exc_info.value.attempts == 7

    def test_both_fail(self):
        async def run():
            started = asyncio.Event()
            stage = DerivationStage(
                FailingSummarizer(),
                SignallingEmbedder(started, error=EmbeddingFailed(RuntimeError("quota"))),
            )
            return await stage.derive("body")

        with pytest.raises(DerivationFailed) as exc_info:
            asyncio.run(run())

        assert not isinstance(exc_info.value, (SummaryFailed, EmbeddingFailed))

    def test_empty_text(self, derivation, summarizer):
        with pytest.raises(DerivationFailed):
            asyncio.run(derivation.derive("   "))

        assert summarizer.calls == []
