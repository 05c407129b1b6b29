"""
Celery task that drains the caption queue on a schedule.
The API exposes the same drain on demand (POST /api/captions/process-queue).
"""
import asyncio
import logging
import time

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.ai.factory import get_caption_provider
from app.config import settings
from app.services.caption_worker import process_pending_captions
from app.workers.celery_app import celery_app, PROCESS_CAPTION_QUEUE

logger = logging.getLogger(__name__)


async def _process_caption_queue_async(limit: int, concurrency: int) -> dict:
    """
    One batch with an engine owned by this run.

    asyncio.run() gives every task a fresh event loop, so pooled
    connections cannot outlive it.
    """
    engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_factory() as db:
            batch = await process_pending_captions(
                db,
                get_caption_provider(),
                limit=limit,
                concurrency=concurrency
            )
            return batch.to_dict()
    finally:
        await engine.dispose()


@celery_app.task(name=PROCESS_CAPTION_QUEUE)
def process_caption_queue_task(limit: int = 10, concurrency: int = 3) -> dict:
    """
    Drain up to `limit` processing captions with `concurrency` workers.

    Per-caption failures are part of the returned result; only
    infrastructure errors (database, configuration) fail the task.
    """
    start_time = time.time()
    result = asyncio.run(_process_caption_queue_async(limit, concurrency))
    if result["processed"]:
        logger.info(
            f"Caption queue drained: {result['succeeded']} succeeded, {result['failed']} failed",
            extra={
                "event": "caption_queue_drained",
                "duration_ms": round((time.time() - start_time) * 1000, 2),
                **{key: result[key] for key in ("processed", "succeeded", "failed")},
            }
        )
    return result
