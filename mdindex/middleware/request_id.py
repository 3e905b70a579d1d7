"""
Request ID middleware.

Every request runs with a request ID in context so index loads and queries
triggered by it can be correlated in the logs. The ID is echoed back in the
`X-Request-ID` response header.
"""

from __future__ import annotations

import logging
import re
import time
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from mdindex.utils.request_context import (
    clear_request_id,
    generate_request_id,
    set_request_id,
)

if TYPE_CHECKING:
    from fastapi import Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied IDs end up in log lines
_VALID_REQUEST_ID = re.compile(r"[A-Za-z0-9._-]{1,128}")


def _request_id_from(request: Request) -> str:
    # Check if request already has ID (from client)
    candidate = request.headers.get(REQUEST_ID_HEADER)
    if candidate and _VALID_REQUEST_ID.fullmatch(candidate):
        return candidate
    # Missing or malformed: generate new ID
    return generate_request_id()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to track request IDs across async contexts."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        """Process request with its request ID set in context."""
        request_id = _request_id_from(request)

        # Set in context
        set_request_id(request_id)

        # Skip logging for health check endpoints to reduce noise
        should_log = not request.url.path.startswith("/health")
        start_time = time.monotonic()

        # Log request start
        if should_log:
            logger.info(
                "Request started",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                },
            )

        try:
            # Process request
            response = await call_next(request)

            # Add request ID to response headers
            response.headers[REQUEST_ID_HEADER] = request_id

            # Log request completion
            if should_log:
                logger.info(
                    "Request completed",
                    extra={
                        "status_code": response.status_code,
                        "duration_ms": int((time.monotonic() - start_time) * 1000),
                    },
                )

            return response
        finally:
            # Clear request ID from context
            clear_request_id()
