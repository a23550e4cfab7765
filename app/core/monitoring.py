"""Health checks and monitoring endpoints"""
import asyncio
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from redis.exceptions import RedisError

from app.config.database import get_db
from app.config.redis import ping_broker_host

logger = logging.getLogger(__name__)

health_router = APIRouter()


def _ping_database(db: Session) -> None:
    db.execute(text("SELECT 1"))


@health_router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "booking-engine"}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Health of the database and of the Redis broker host"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "redis": "unknown",
        "overall": "unknown"
    }

    try:
        # Session I/O blocks, keep it off the event loop
        await asyncio.to_thread(_ping_database, db)
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "unhealthy"

    try:
        await ping_broker_host()
        checks["redis"] = "healthy"
    except (RedisError, OSError) as e:
        logger.error(f"Redis health check failed: {e}")
        checks["redis"] = "unhealthy"

    if all(status == "healthy" for status in checks.values() if status != "unknown"):
        checks["overall"] = "healthy"
    else:
        checks["overall"] = "degraded"

    return checks
