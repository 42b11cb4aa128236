"""
FastAPI routes for the Linkfeed API.

Only the ingestion trigger lives here: creating a feed and submitting a
URL into it. Submission schedules the ingestion and returns at once.
"""

import secrets
from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from linkfeed.jobs.queue import IngestionQueue
from linkfeed.models.database import Database, DBFeed, DBFeedMember
from linkfeed.models.domain import (
    ContentSubmission,
    FeedCreate,
    FeedCreated,
    SubmissionAccepted,
)

logger = structlog.get_logger(__name__)
router = APIRouter()

_database: Optional[Database] = None
_queue: Optional[IngestionQueue] = None


def set_database(database: Database):
    global _database
    _database = database


def set_queue(queue: IngestionQueue):
    global _queue
    _queue = queue


async def get_db_session() -> AsyncSession:
    """Dependency to get a database session."""
    if _database is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database not initialized")
    async with _database.async_session() as session:
        yield session


def get_queue() -> IngestionQueue:
    if _queue is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Ingestion not initialized")
    return _queue


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
QueueDep = Annotated[IngestionQueue, Depends(get_queue)]


# ============================================================================
# Feed Routes
# ============================================================================


@router.post("/feeds", response_model=FeedCreated, status_code=status.HTTP_201_CREATED)
async def create_feed(body: FeedCreate, session: SessionDep):
    """Create a feed owned by (and shared with) the requesting user."""
    feed = DBFeed(
        title=body.title,
        slug=secrets.token_urlsafe(8)[:10],
        owner_user_id=body.user_id,
    )
    feed.members.append(DBFeedMember(user_id=body.user_id))
    session.add(feed)
    await session.commit()
    await session.refresh(feed)

    logger.info("Feed created", feed_id=feed.id, owner=body.user_id)
    return FeedCreated(feed_id=feed.id, feed_slug=feed.slug)


@router.post(
    "/feeds/{feed_id}/url",
    response_model=SubmissionAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_content(
    feed_id: int,
    body: ContentSubmission,
    session: SessionDep,
    queue: QueueDep,
):
    """
    Add a URL (article, video or RSS feed) to a feed.

    The ingestion runs in the background; its outcome shows up as new
    posts in the feed or in the logs.
    """
    result = await session.execute(
        select(DBFeed).options(selectinload(DBFeed.members)).where(DBFeed.id == feed_id)
    )
    feed = result.scalar_one_or_none()
    if not feed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Feed not found")

    if body.user_id not in {member.user_id for member in feed.members}:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only feed members can add content",
        )

    queue.submit(body.url, feed_id, body.user_id)
    return SubmissionAccepted(url=body.url, feed_id=feed_id, pending_ingestions=queue.pending)
