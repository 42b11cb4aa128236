"""
Fire-and-forget scheduling of ingestions.

The web layer submits a URL and returns immediately. Each submission
runs as its own asyncio task; at most ingestion_max_concurrency of them
run at once, and the terminal state of every task is logged.
"""
import asyncio
from typing import Optional

import structlog

from linkfeed.jobs.content_ingestion import ContentIngestionPipeline

logger = structlog.get_logger(__name__)


class IngestionQueue:
    """Runs ingestions in the background with bounded concurrency."""

    def __init__(self, pipeline: ContentIngestionPipeline, max_concurrency: int = 4):
        self.pipeline = pipeline
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: set[asyncio.Task] = set()

    def submit(self, url: str, feed_id: int, user_id: int) -> asyncio.Task:
        """
        Schedule an ingestion and return its task.

        The caller may discard the handle; the queue keeps the task
        alive until it finishes.
        """
        task = asyncio.create_task(
            self._run(url, feed_id, user_id),
            name=f"ingest:{feed_id}:{url}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.info("Ingestion scheduled", url=url, feed_id=feed_id, user_id=user_id, pending=len(self._tasks))
        return task

    async def _run(self, url: str, feed_id: int, user_id: int) -> Optional[object]:
        async with self._semaphore:
            try:
                return await self.pipeline.ingest(url, feed_id, user_id)
            except Exception as e:
                logger.error(
                    "Ingestion failed",
                    url=url,
                    feed_id=feed_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return None

    def _on_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Ingestion cancelled", task=task.get_name())
            return
        result = task.result()
        if result is not None:
            logger.info("Ingestion succeeded", task=task.get_name(), result=str(result))

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def join(self):
        """Wait for every task scheduled so far."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self):
        """Cancel outstanding ingestions."""
        for task in list(self._tasks):
            task.cancel()
        await self.join()
        logger.info("Ingestion queue stopped")
