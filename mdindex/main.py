import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mdindex.api import config, health, index
from mdindex.config import settings
from mdindex.logging_config import configure_json_logging
from mdindex.middleware.request_id import RequestIDMiddleware
from mdindex.services.container import init_container
from mdindex.services.health import HealthCheckService
from mdindex.services.md_index import MdIndex
from mdindex.version import get_version

configure_json_logging(log_level=settings.log_level, use_json=settings.log_json)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup and shutdown."""
    logger.info("Starting mdindex server...")

    md_index = MdIndex(
        entries=settings.md_search,
        cache_ttl_seconds=settings.cache_ttl_seconds,
        name_filters=settings.name_filters(),
    )

    health_service = HealthCheckService(
        md_index=md_index,
        version=get_version(),
    )

    init_container(
        md_index=md_index,
        health_service=health_service,
    )

    logger.info(
        "mdindex server ready",
        extra={
            "entry_count": len(md_index.entries),
            "cache_ttl_seconds": md_index.cache_ttl_seconds,
        },
    )

    yield

    md_index.invalidate_cache()
    logger.info("mdindex server shutting down")


app = FastAPI(
    title="mdindex",
    description="Markdown entry index for /command and @mention completion",
    version=get_version(),
    lifespan=lifespan,
)

# Added first so the CORS middleware below stays outermost
app.add_middleware(RequestIDMiddleware)

if settings.cors_enabled:
    allowed_origins = settings.cors_allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=settings.cors_allowed_methods,
        allow_headers=settings.cors_allowed_headers,
        max_age=3600,
    )
    logger.info("CORS configured", extra={"origins": allowed_origins})
else:
    logger.warning("CORS is disabled - cross-origin requests will be blocked")

app.include_router(health.router)
app.include_router(index.router)
app.include_router(config.router)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(
        "mdindex.main:app",
        host="0.0.0.0",  # noqa: S104
        port=8000,
        log_config=None,
    )
