from __future__ import annotations

import logging
import os
import re
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mdindex.models.entry import Entry, EntryType, NameFilter

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def expand_env_vars(config_str: str) -> str:
    """
    Expand environment variables in the format ${VAR_NAME} within a YAML string.
    Skips expansion in YAML comments (lines starting with #).

    Args:
        config_str: YAML configuration string potentially containing ${VAR_NAME} placeholders

    Returns:
        YAML string with all ${VAR_NAME} placeholders expanded to environment variable values

    Raises:
        KeyError: If a referenced environment variable is not set
    """
    def replace_var(match: re.Match[str]) -> str:
        var_name = match.group(1)
        try:
            return os.environ[var_name]
        except KeyError:
            msg = f"Environment variable '{var_name}' referenced in config.yaml but not set"
            raise KeyError(msg) from None

    lines = []
    for line in config_str.split("\n"):
        if line.lstrip().startswith("#"):
            lines.append(line)
        else:
            lines.append(re.sub(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}", replace_var, line))

    return "\n".join(lines)


def _get_cors_origins_from_base_url(base_url: str | None, environment: str) -> list[str]:
    """
    Derive CORS allowed origins from base_url.

    In development the usual localhost origins are allowed as well.
    """
    origins: list[str] = []

    if base_url:
        origins.append(base_url.rstrip("/"))

    if environment == "development":
        for origin in (
            "http://localhost:3000",
            "http://localhost:8000",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:8000",
        ):
            if origin not in origins:
                origins.append(origin)

    return origins


def _section(config_dict: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = config_dict.get(key)
    return value if isinstance(value, dict) else None


def flatten_config(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Flatten the nested config.yaml structure to Settings field names.

    Example config.yaml:
        auth:
          token: ${MDINDEX_AUTH_TOKEN}
        logging:
          level: INFO
          json: true
        index:
          cache_ttl_seconds: 5
        mdSearch:
          - name: "{basename}"
            type: command
            path: ~/.claude/commands
            pattern: "*.md"
        slashCommands:
          disable: ["internal-*"]
        mentions:
          enable: ["agent-*"]
    """
    flat_config: dict[str, Any] = {}

    auth = _section(config_dict, "auth")
    if auth is not None:
        flat_config["auth_token"] = auth.get("token")

    logging_section = _section(config_dict, "logging")
    if logging_section is not None:
        flat_config["log_level"] = logging_section.get("level", "INFO")
        flat_config["log_json"] = logging_section.get("json", True)

    index = _section(config_dict, "index")
    if index is not None and "cache_ttl_seconds" in index:
        flat_config["cache_ttl_seconds"] = index["cache_ttl_seconds"]

    # Empty or missing mdSearch falls back to the built-in entries
    if config_dict.get("mdSearch"):
        flat_config["md_search"] = config_dict["mdSearch"]

    if "slashCommands" in config_dict:
        flat_config["command_filter"] = config_dict["slashCommands"]
    if "mentions" in config_dict:
        flat_config["mention_filter"] = config_dict["mentions"]

    if "base_url" in config_dict:
        flat_config["base_url"] = config_dict.get("base_url")

    environment = config_dict.get("environment", "development")
    flat_config["environment"] = environment

    cors = _section(config_dict, "cors")
    if cors is not None:
        flat_config["cors_enabled"] = cors.get("enabled", True)
        if "allowed_origins" in cors:
            flat_config["cors_allowed_origins"] = cors["allowed_origins"]
        if "allowed_methods" in cors:
            flat_config["cors_allowed_methods"] = cors["allowed_methods"]
        if "allowed_headers" in cors:
            flat_config["cors_allowed_headers"] = cors["allowed_headers"]
    else:
        flat_config["cors_enabled"] = True

    if "cors_allowed_origins" not in flat_config:
        flat_config["cors_allowed_origins"] = _get_cors_origins_from_base_url(
            flat_config.get("base_url"), environment
        )

    return flat_config


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=None,
        case_sensitive=False,
    )

    # Security
    auth_token: str  # Required
    environment: str = "development"  # development or production
    base_url: str | None = None

    # CORS configuration (auto-derived from base_url unless overridden)
    cors_enabled: bool = True
    cors_allowed_origins: list[str] = Field(default=[])
    cors_allowed_methods: list[str] = Field(default=["GET", "POST", "OPTIONS"])
    cors_allowed_headers: list[str] = Field(default=["Authorization", "Content-Type"])

    # Observability
    log_level: str = "INFO"
    log_json: bool = True

    # Index
    cache_ttl_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Lifetime of a loaded index snapshot",
    )
    md_search: list[Entry] = Field(
        default_factory=list,
        description="Configured entries (empty selects the built-in defaults)",
    )
    command_filter: NameFilter | None = Field(
        default=None,
        description="Enable/disable policy for /command names",
    )
    mention_filter: NameFilter | None = Field(
        default=None,
        description="Enable/disable policy for @mention names",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: object) -> object:
        """Normalize the level name and reject unknown levels."""
        if isinstance(v, str):
            v = v.strip().upper()
            if v not in _LOG_LEVELS:
                msg = f"logging.level must be one of {', '.join(_LOG_LEVELS)}"
                raise ValueError(msg)
        return v

    def name_filters(self) -> dict[EntryType, NameFilter]:
        """Per-type name policy for the index."""
        filters: dict[EntryType, NameFilter] = {}
        if self.command_filter is not None:
            filters[EntryType.COMMAND] = self.command_filter
        if self.mention_filter is not None:
            filters[EntryType.MENTION] = self.mention_filter
        return filters

    def validate_cors_config(self) -> None:
        """Validate CORS configuration for security.

        Ensures:
        - All production origins use HTTPS
        - At least one origin is configured if CORS is enabled in production
        """
        if not self.cors_enabled:
            return

        if self.environment == "production":
            if not self.cors_allowed_origins:
                msg = (
                    "Production environment has no CORS origins configured.\n"
                    "Set base_url in config.yaml (e.g., base_url: https://app.example.com)\n"
                    "CORS origins are automatically derived from base_url."
                )
                raise ValueError(msg)

            for origin in self.cors_allowed_origins:
                if not origin.startswith("https://"):
                    msg = f"CORS origin must be HTTPS in production: {origin}"
                    raise ValueError(msg)


# Initialize global config manager for dynamic reloading
from mdindex.services.config_manager import ConfigManager  # noqa: E402


class _SettingsProxy:
    """
    Proxy to Settings that enables dynamic reloading.

    This allows the module-level `settings` object to check for file changes
    on every attribute access and reload if necessary, while maintaining
    compatibility with existing code that accesses settings directly.
    """

    def __init__(self, config_manager: ConfigManager):
        object.__setattr__(self, "_config_manager", config_manager)

    def __getattr__(self, name: str) -> object:
        """Get attribute from current settings, reloading if necessary."""
        config_manager = object.__getattribute__(self, "_config_manager")
        current_settings = config_manager.get_settings()
        return getattr(current_settings, name)

    def __setattr__(self, name: str, value: object) -> None:
        """Prevent attribute assignment on proxy."""
        if name == "_config_manager":
            object.__setattr__(self, name, value)
        else:
            msg = "Settings are read-only; use ConfigManager.reload() to reload from disk"
            raise AttributeError(msg)


_config_manager = ConfigManager()
settings = _SettingsProxy(_config_manager)  # type: ignore[assignment]


def get_config_manager() -> ConfigManager:
    """Get the global ConfigManager instance for explicit reloads."""
    return _config_manager
