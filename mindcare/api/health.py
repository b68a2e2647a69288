"""Unauthenticated health endpoints, mounted at the application root."""

from typing import Any

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse

from mindcare.core.config import get_settings
from mindcare.core.database import DbSession
from mindcare.core.health import HealthCheckService, HealthStatus

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check() -> dict[str, str]:
    """Process is up."""
    return {"status": "healthy"}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check(db_session: DbSession) -> Response:
    """503 while the database is unreachable; Redis only degrades."""
    service = HealthCheckService(db_session=db_session, settings=get_settings())
    result = await service.check_readiness()
    status_code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if result.status == HealthStatus.UNHEALTHY
        else status.HTTP_200_OK
    )
    return JSONResponse(content=result.to_dict(), status_code=status_code)


@router.get("/detailed")
async def detailed_health_check(db_session: DbSession) -> dict[str, Any]:
    """Per-component status for the database and Redis."""
    service = HealthCheckService(db_session=db_session, settings=get_settings())
    result = await service.check_all()
    return result.to_dict()
