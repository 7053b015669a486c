"""Health check endpoints for container orchestration."""

from typing import Any

from fastapi import APIRouter, Response, status
from fastapi.responses import JSONResponse

from whatif.database import check_database_connection

router = APIRouter(tags=["Health"])


def _db_status_response(ok_status: str, failed_status: str, connected: bool) -> Response:
    if connected:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": ok_status, "database": "connected"},
        )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": failed_status, "database": "disconnected"},
    )


@router.get("/health", response_model=None)
async def health_check() -> Response:
    """
    Health check with clinical store status.

    Returns 200 {"status": "healthy"} when the store is reachable,
    503 {"status": "degraded"} otherwise.
    """
    return _db_status_response("healthy", "degraded", await check_database_connection())


@router.get("/health/live")
async def liveness_probe() -> dict[str, Any]:
    """Liveness probe; never checks external dependencies."""
    return {"status": "alive"}


@router.get("/health/ready", response_model=None)
async def readiness_probe() -> Response:
    """Readiness probe; the service cannot forecast without the clinical store."""
    return _db_status_response("ready", "not_ready", await check_database_connection())
