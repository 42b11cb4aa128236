"""
Main FastAPI application for Linkfeed.
"""
import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from linkfeed.api.routes import router, set_database, set_queue
from linkfeed.config import get_settings
from linkfeed.jobs.content_ingestion import ContentIngestionPipeline
from linkfeed.jobs.queue import IngestionQueue
from linkfeed.models.database import Database
from linkfeed.services.post_repository import SQLAlchemyPostRepository


def configure_logging(level: str = "INFO"):
    """Configure structured logging."""
    logging.basicConfig(level=level.upper(), format="%(message)s")
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


configure_logging(get_settings().log_level)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    settings = get_settings()

    logger.info("Initializing database", url=settings.database_url)
    database = Database(settings.database_url)
    await database.create_tables()
    set_database(database)

    logger.info("Initializing ingestion pipeline")
    pipeline = ContentIngestionPipeline.create(
        SQLAlchemyPostRepository(database.async_session),
        settings,
    )
    await pipeline.initialize()

    queue = IngestionQueue(pipeline, max_concurrency=settings.ingestion_max_concurrency)
    set_queue(queue)

    yield

    # Shutdown
    logger.info("Shutting down", pending_ingestions=queue.pending)
    await queue.shutdown()
    await database.dispose()


app = FastAPI(
    title="Linkfeed",
    description="Shared feeds of articles, videos and RSS content.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "linkfeed",
        "version": "0.1.0",
    }


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "linkfeed.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
