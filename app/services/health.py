"""Health and info reports for the /actuator endpoints."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from app.config import settings

logger = logging.getLogger(__name__)

HealthCheck = Callable[[], Awaitable[dict]]

BUILD_TIMESTAMP = datetime.now(timezone.utc).isoformat()


class HealthService:
    def __init__(self, check_database: HealthCheck, check_redis: HealthCheck, started_at: float):
        self._check_database = check_database
        self._check_redis = check_redis
        self._started_at = started_at

    def _base(self, status: str) -> dict:
        return {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - self._started_at, 3),
            "environment": settings.environment,
        }

    async def get_basic_health(self) -> dict:
        return self._base("UP")

    async def get_detailed_health(self) -> dict:
        try:
            db, redis = await asyncio.gather(self._check_database(), self._check_redis())
        except Exception as e:
            logger.error("Error checking detailed health: %s", e)
            report = self._base("DOWN")
            report["checks"] = {
                "database": {"status": "UNKNOWN", "message": "Failed to check database health"},
                "redis": {"status": "UNKNOWN", "message": "Failed to check Redis health"},
            }
            return report

        # Redis only counts when it is enabled
        healthy = db["connected"] and (redis["connected"] or not settings.cache_enabled)

        report = self._base("UP" if healthy else "DOWN")
        report["checks"] = {
            "database": {"status": "UP" if db["connected"] else "DOWN", "message": db.get("message")},
            "redis": {"status": "UP" if redis["connected"] else "DOWN", "message": redis.get("message")},
        }
        return report

    async def get_readiness_health(self) -> dict:
        return await self.get_detailed_health()

    async def get_info(self) -> dict:
        return {
            "app": {
                "name": settings.app_name,
                "version": settings.app_version,
                "environment": settings.environment,
            },
            "build": {"timestamp": BUILD_TIMESTAMP},
        }
