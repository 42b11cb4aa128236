"""
Tests for background ingestion scheduling.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

from linkfeed.core.errors import ExtractionFailed
from linkfeed.jobs.queue import IngestionQueue
from linkfeed.services.data_ingestion.base import IngestionResult


def make_pipeline(side_effect) -> MagicMock:
    pipeline = MagicMock()
    pipeline.ingest = AsyncMock(side_effect=side_effect)
    return pipeline


class TestIngestionQueue:
    """Tests for fire-and-forget submission."""

    def test_submit_returns_immediately(self):
        async def run():
            release = asyncio.Event()

            async def ingest(url, feed_id, user_id):
                await release.wait()
                return IngestionResult(url, 1, True, True)

            queue = IngestionQueue(make_pipeline(ingest))
            task = queue.submit("https://ex.com/a.html", 1, 7)
            pending_before = queue.pending

            release.set()
            await queue.join()
            return task, pending_before, queue.pending

        task, pending_before, pending_after = asyncio.run(run())

        assert pending_before == 1
        assert pending_after == 0
        assert task.result().post_id == 1

    def test_failure_is_contained(self):
        """Test that a failed ingestion is logged, not raised."""

        async def run():
            queue = IngestionQueue(make_pipeline(ExtractionFailed("https://ex.com/x", "boom")))
            task = queue.submit("https://ex.com/x", 1, 7)
            await queue.join()
            return task

        task = asyncio.run(run())

        assert task.done()
        assert task.exception() is None
        assert task.result() is None

    def test_concurrency_is_bounded(self):
        async def run():
            running = 0
            peak = 0

            async def ingest(url, feed_id, user_id):
                nonlocal running, peak
                running += 1
                peak = max(peak, running)
                await asyncio.sleep(0.01)
                running -= 1

            queue = IngestionQueue(make_pipeline(ingest), max_concurrency=2)
            for n in range(6):
                queue.submit(f"https://ex.com/{n}.html", 1, 7)
            await queue.join()
            return peak

        assert asyncio.run(run()) == 2

    def test_shutdown_cancels_pending(self):
        async def run():
            async def ingest(url, feed_id, user_id):
                await asyncio.sleep(10)

            queue = IngestionQueue(make_pipeline(ingest))
            task = queue.submit("https://ex.com/slow.html", 1, 7)
            await asyncio.sleep(0)
            await queue.shutdown()
            return task, queue.pending

        task, pending = asyncio.run(run())

        assert task.cancelled()
        assert pending == 0
