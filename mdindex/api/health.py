"""Health check endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Response, status

from mdindex.dependencies import get_health_service
from mdindex.models.health import HealthCheckResponse

if TYPE_CHECKING:
    from mdindex.services.health import HealthCheckService

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """
    Liveness check.

    Returns 200 while the process is serving. No authentication required.
    """
    return {"status": "ok"}


@router.get("/health/ready", response_model=HealthCheckResponse)
async def health_ready(
    response: Response,
    health_service: HealthCheckService = Depends(get_health_service),
) -> HealthCheckResponse:
    """
    Readiness check.

    Checks entry roots and index loading. No authentication required.

    Returns:
        - 200 if system is healthy or degraded
        - 503 if system is unhealthy
    """
    health_check = await health_service.check_health()

    if not health_check.is_ready():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_check
