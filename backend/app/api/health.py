"""
Health check endpoint.
Reports database and Redis (Celery broker) connectivity; 503 when either is down.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.database import get_db
from app.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


async def check_redis(url: str) -> str:
    client = aioredis.from_url(url)
    try:
        await client.ping()
        return "connected"
    finally:
        await client.aclose()


@router.get("")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.
    No authentication: used by load balancers and the worker's supervisor.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "redis": "unknown"
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Health check: database unreachable: {e}")
        health_status["database"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    try:
        health_status["redis"] = await check_redis(settings.redis_url)
    except (RedisError, OSError) as e:
        logger.error(f"Health check: redis unreachable: {e}")
        health_status["redis"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
