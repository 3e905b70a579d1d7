from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from mdindex.config import settings  # This is a dynamic proxy
from mdindex.services.container import get_container

if TYPE_CHECKING:
    from mdindex.services.health import HealthCheckService
    from mdindex.services.md_index import MdIndex

security = HTTPBearer()


async def verify_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> None:
    """
    Verify the bearer token matches the configured auth.token.

    Uses the dynamic settings proxy, so a token changed in config.yaml
    takes effect without a restart.
    """
    if credentials.credentials != settings.auth_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
        )


async def get_md_index() -> MdIndex:
    """Get the index, synced with the current configuration."""
    md_index = get_container().md_index
    md_index.update_config(settings.md_search)
    md_index.update_name_filters(settings.name_filters())
    md_index.cache_ttl_seconds = settings.cache_ttl_seconds
    return md_index


async def get_health_service() -> HealthCheckService:
    """Get health check service via dependency injection."""
    container = get_container()
    return container.health_service
