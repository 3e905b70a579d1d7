"""
Service dependency container.

Holds the services created in the FastAPI lifespan so routers can reach
them through Depends() instead of module-level globals.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mdindex.services.health import HealthCheckService
    from mdindex.services.md_index import MdIndex


class ServiceContainer:
    """Container for all application services."""

    def __init__(
        self,
        md_index: MdIndex,
        health_service: HealthCheckService,
    ) -> None:
        self.md_index = md_index
        self.health_service = health_service


_container: ServiceContainer | None = None


def init_container(
    md_index: MdIndex,
    health_service: HealthCheckService,
) -> None:
    """Initialize service container (called once in FastAPI lifespan).

    Args:
        md_index: MdIndex serving item queries
        health_service: HealthCheckService for readiness checks
    """
    global _container

    _container = ServiceContainer(
        md_index=md_index,
        health_service=health_service,
    )


def get_container() -> ServiceContainer:
    """Get service container (use via FastAPI Depends).

    Raises:
        RuntimeError: If container not initialized (lifespan not running)
    """
    if _container is None:
        msg = "Service container not initialized - application lifespan may not be running"
        raise RuntimeError(msg)
    return _container
