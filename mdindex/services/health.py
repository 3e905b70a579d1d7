"""Health check service."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from mdindex.exceptions import IndexLoadError
from mdindex.models.health import HealthCheckResponse, HealthStatus, ServiceHealth
from mdindex.services.entry_loader import validate_directory

if TYPE_CHECKING:
    from mdindex.services.md_index import MdIndex

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000


class HealthCheckService:
    """Service for checking system health."""

    def __init__(
        self,
        md_index: MdIndex,
        version: str = "unknown",
    ) -> None:
        """
        Initialize health check service.

        Args:
            md_index: Index whose entry roots and loading are checked
            version: Application version string
        """
        self.md_index = md_index
        self.version = version

    async def check_entry_roots(self) -> ServiceHealth:
        """
        Check that every configured entry root is a readable directory.

        Missing or uninspectable roots only mean an entry contributes no
        items, so they degrade rather than fail the service.
        """
        start = time.monotonic()
        entries = self.md_index.entries
        unavailable: list[str] = []

        for entry in entries:
            try:
                root = await asyncio.to_thread(validate_directory, entry.path)
            except IndexLoadError as e:
                logger.warning(
                    "Entry root health check failed",
                    extra={"source_id": entry.source_id, **e.context},
                )
                unavailable.append(entry.path)
                continue
            if root is None:
                unavailable.append(entry.path)

        if unavailable:
            return ServiceHealth(
                name="entries",
                status=HealthStatus.DEGRADED,
                message=f"{len(unavailable)} of {len(entries)} entry roots unavailable",
                response_time_ms=_elapsed_ms(start),
                details={"unavailable": unavailable},
            )

        return ServiceHealth(
            name="entries",
            status=HealthStatus.HEALTHY,
            message="All entry roots accessible",
            response_time_ms=_elapsed_ms(start),
            details={"entries": len(entries)},
        )

    async def check_index_health(self) -> ServiceHealth:
        """Check that the index loads (served from cache when fresh)."""
        start = time.monotonic()

        try:
            items = await self.md_index.load_all()
        except Exception as e:
            logger.exception("Index health check failed")
            return ServiceHealth(
                name="index",
                status=HealthStatus.UNHEALTHY,
                message=f"Index load failed: {e}",
            )

        return ServiceHealth(
            name="index",
            status=HealthStatus.HEALTHY,
            message="Index loaded",
            response_time_ms=_elapsed_ms(start),
            details={"items": len(items)},
        )

    async def check_health(self) -> HealthCheckResponse:
        """
        Perform complete health check.

        Returns:
            HealthCheckResponse with overall status and service details
        """
        roots_health, index_health = await asyncio.gather(
            self.check_entry_roots(),
            self.check_index_health(),
        )

        services = [roots_health, index_health]

        if any(s.status == HealthStatus.UNHEALTHY for s in services):
            overall_status = HealthStatus.UNHEALTHY
        elif any(s.status == HealthStatus.DEGRADED for s in services):
            overall_status = HealthStatus.DEGRADED
        else:
            overall_status = HealthStatus.HEALTHY

        return HealthCheckResponse(
            status=overall_status,
            version=self.version,
            services=services,
        )
