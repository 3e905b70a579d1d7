"""
Request context management using ContextVars.

The request ID set by the middleware is visible to every coroutine the
request awaits, including index rebuilds, so their log records carry it.
"""

from __future__ import annotations

import contextvars
import uuid

request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id",
    default=None,
)


def get_request_id() -> str | None:
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def generate_request_id() -> str:
    """New random request ID (UUID4)."""
    return str(uuid.uuid4())


def clear_request_id() -> None:
    request_id_var.set(None)
