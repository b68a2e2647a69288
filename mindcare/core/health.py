"""Health check service for monitoring application dependencies."""

import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from redis import Redis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from mindcare.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Readiness fails only when one of these is down; others merely degrade
CRITICAL_COMPONENTS = frozenset({"database"})


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""

    name: str
    status: HealthStatus
    message: str | None = None
    latency_ms: float | None = None


@dataclass
class HealthCheckResult:
    """Overall health check result."""

    status: HealthStatus
    components: list[ComponentHealth]
    version: str = "0.1.0"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "status": self.status.value,
            "version": self.version,
            "components": {
                c.name: {
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": c.latency_ms,
                }
                for c in self.components
            },
        }


def summarize(components: list[ComponentHealth]) -> HealthStatus:
    """Fold component statuses into one overall status."""
    if all(c.status == HealthStatus.HEALTHY for c in components):
        return HealthStatus.HEALTHY
    if any(
        c.status == HealthStatus.UNHEALTHY and c.name in CRITICAL_COMPONENTS
        for c in components
    ):
        return HealthStatus.UNHEALTHY
    return HealthStatus.DEGRADED


class HealthCheckService:
    """Service for checking health of the database and Redis."""

    def __init__(
        self,
        db_session: AsyncSession | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.db_session = db_session
        self.settings = settings or get_settings()

    async def check_database(self) -> ComponentHealth:
        """Run ``SELECT 1`` against the store."""
        if self.db_session is None:
            return ComponentHealth(
                name="database",
                status=HealthStatus.UNHEALTHY,
                message="No database session available",
            )

        start = time.perf_counter()
        try:
            result = await self.db_session.execute(text("SELECT 1"))
            result.scalar()
        except Exception as e:
            logger.warning("Database health check failed: %s", e)
            return ComponentHealth(
                name="database",
                status=HealthStatus.UNHEALTHY,
                message=str(e),
            )
        return ComponentHealth(
            name="database",
            status=HealthStatus.HEALTHY,
            message="Connected",
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
        )

    async def check_redis(self) -> ComponentHealth:
        """Ping the Redis instance backing the chat rate limiter."""
        start = time.perf_counter()
        try:
            redis_client: Redis = Redis.from_url(  # type: ignore[type-arg]
                str(self.settings.redis_url),
                socket_timeout=5,
            )
            redis_client.ping()
            redis_client.close()
        except Exception as e:
            logger.warning("Redis health check failed: %s", e)
            return ComponentHealth(
                name="redis",
                status=HealthStatus.UNHEALTHY,
                message=str(e),
            )
        return ComponentHealth(
            name="redis",
            status=HealthStatus.HEALTHY,
            message="Connected",
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
        )

    async def check_all(self) -> HealthCheckResult:
        """Check all dependencies and return overall health."""
        components = [
            await self.check_database(),
            await self.check_redis(),
        ]
        return HealthCheckResult(status=summarize(components), components=components)

    async def check_readiness(self) -> HealthCheckResult:
        """Check if the application is ready to serve traffic."""
        return await self.check_all()
