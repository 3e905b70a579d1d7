"""
Custom exception classes with context for the Markdown entry index.

All exceptions inherit from MdIndexError base class and support
attaching contextual information for better debugging and logging.
"""

from __future__ import annotations


class MdIndexError(Exception):
    """
    Base exception for the Markdown entry index.

    All custom exceptions should inherit from this class to enable
    consistent error handling across the application.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary with additional context for logging/debugging
    """

    def __init__(self, message: str, context: dict[str, object] | None = None):
        """
        Initialize exception with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dictionary with contextual information
                    (operation name, file paths, error details, etc.)
        """
        super().__init__(message)
        self.context = context or {}


class ConfigurationError(MdIndexError):
    """
    Configuration error.

    Raised when configuration loading, validation, or parsing fails.

    Example:
        raise ConfigurationError(
            "Missing required configuration key",
            context={
                "key": "auth.token",
                "config_file": "/app/config.yaml"
            }
        )
    """


class IndexLoadError(MdIndexError):
    """
    An entry root could not be inspected.

    Raised for a reason other than the root being missing. The full reload
    logs it and skips that entry. Missing roots and unreadable files never
    raise; they contribute zero items instead.

    Example:
        raise IndexLoadError(
            "Failed to inspect entry root",
            context={
                "source_id": "~/.claude/commands:*.md",
                "path": "/home/user/.claude/commands",
                "error_type": "PermissionError"
            }
        )
    """
