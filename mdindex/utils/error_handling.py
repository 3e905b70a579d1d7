"""
Error handling utilities.

Provides a logging decorator and the error body used by API responses.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from mdindex.exceptions import MdIndexError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def log_errors(operation_name: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to log errors with context.

    Logs the exception with the operation name, function name and error
    type, then re-raises it. Works for both sync and async functions.

    Args:
        operation_name: Name of the operation for logging context

    Example:
        @log_errors("config_reload")
        async def reload_config() -> ReloadResponse:
            ...
    """

    def _log(func: Callable[..., Any], e: Exception) -> None:
        extra: dict[str, object] = {
            "operation": operation_name,
            "error_type": type(e).__name__,
            "function": func.__name__,
        }
        if isinstance(e, MdIndexError):
            extra.update(e.context)
        logger.exception(f"Error in {operation_name}", extra=extra)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                _log(func, e)
                raise

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _log(func, e)
                raise

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper

    return decorator


def format_exception_for_response(e: Exception) -> dict[str, object]:
    """
    Format exception for API error response.

    Example:
        try:
            items = await md_index.get_items(item_type)
        except IndexLoadError as e:
            raise HTTPException(
                status_code=500,
                detail=format_exception_for_response(e)
            )

    Returns:
        {"error": <exception class>, "message": <str(e)>, "context": {...}}
        ("context" only for MdIndexError with context)
    """
    error_dict: dict[str, object] = {
        "error": type(e).__name__,
        "message": str(e),
    }

    if isinstance(e, MdIndexError) and e.context:
        error_dict["context"] = e.context

    return error_dict
