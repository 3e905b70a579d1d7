"""
Dynamic configuration manager with file modification detection and graceful fallback.

config.yaml is re-read lazily when its mtime changes. A reload that fails
(missing file, bad YAML, unset variable, validation error) keeps the last
valid settings; only the very first load raises.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable  # noqa: TC003
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeAlias

import yaml
from pydantic import ValidationError

from mdindex.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Avoid circular import: mdindex.config builds its module-level manager on import
if TYPE_CHECKING:
    from mdindex.config import Settings as SettingsType
else:
    SettingsType: TypeAlias = Any

DEFAULT_CONFIG_PATH = "/app/config.yaml"

_settings_cls: type[SettingsType] | None = None
_expand_env_vars: Callable[[str], str] | None = None
_flatten_config: Callable[[dict[str, Any]], dict[str, Any]] | None = None


def _ensure_imports() -> None:
    """Import Settings and helpers from mdindex.config on first use."""
    global _settings_cls, _expand_env_vars, _flatten_config
    if _settings_cls is None or _expand_env_vars is None or _flatten_config is None:
        from mdindex.config import Settings  # noqa: I001
        from mdindex.config import expand_env_vars, flatten_config

        _settings_cls = Settings
        _expand_env_vars = expand_env_vars
        _flatten_config = flatten_config


class ConfigManager:
    """
    Manages application configuration with dynamic reloading.

    Features:
    - Tracks file modification time to detect changes
    - Lazy reloads config before accessing values
    - Maintains fallback config if reload fails
    - Logs all reload events
    """

    def __init__(self, config_path: str | None = None):
        """
        Initialize ConfigManager.

        Args:
            config_path: Path to config.yaml. If None, uses CONFIG_PATH env var or /app/config.yaml

        Raises:
            ConfigurationError: If the initial configuration cannot be loaded
        """
        _ensure_imports()

        if config_path is None:
            config_path = os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)

        self.config_path = Path(config_path)
        self._current_settings: SettingsType | None = None
        self._last_mtime: float | None = None

        self._load_config()

    def _read_config(self) -> tuple[str, float]:
        """Read file contents, then mtime, so the mtime matches what was read."""
        try:
            config_str = self.config_path.read_text()
            current_mtime = self.config_path.stat().st_mtime
        except FileNotFoundError as e:
            msg = (
                f"Configuration file not found at {self.config_path}\n"
                f"Use CONFIG_PATH environment variable to override location."
            )
            raise ConfigurationError(msg, context={"path": str(self.config_path)}) from e
        except OSError as e:
            msg = f"Failed to read config file: {e}"
            raise ConfigurationError(
                msg,
                context={"path": str(self.config_path), "error_type": type(e).__name__},
            ) from e
        return config_str, current_mtime

    def _build_settings(self, config_str: str) -> SettingsType:
        _ensure_imports()
        if _expand_env_vars is None or _flatten_config is None or _settings_cls is None:
            msg = "Settings class not initialized"
            raise RuntimeError(msg)

        # Expand environment variables
        try:
            expanded_config = _expand_env_vars(config_str)
        except KeyError as e:
            msg = f"Error expanding environment variables in config.yaml: {e}"
            raise ConfigurationError(msg, context={"path": str(self.config_path)}) from None

        # Parse YAML
        try:
            config_dict = yaml.safe_load(expanded_config)
        except yaml.YAMLError as e:
            msg = f"Invalid YAML in config.yaml: {e}"
            raise ConfigurationError(msg, context={"path": str(self.config_path)}) from None

        if not isinstance(config_dict, dict):
            msg = "config.yaml must contain a YAML mapping/dictionary at root level"
            raise ConfigurationError(msg, context={"path": str(self.config_path)})

        # Flatten nested YAML structure and validate
        try:
            new_settings = _settings_cls(**_flatten_config(config_dict))
            new_settings.validate_cors_config()
        except ValidationError as e:
            msg = f"Configuration validation error: {e}"
            raise ConfigurationError(
                msg,
                context={"path": str(self.config_path), "validation_errors": len(e.errors())},
            ) from e
        except ValueError as e:
            msg = f"Configuration validation error: {e}"
            raise ConfigurationError(msg, context={"path": str(self.config_path)}) from e

        return new_settings

    def _load_config(self, force: bool = False) -> None:
        """
        Load configuration from YAML file.

        Sets both _current_settings and _last_mtime on success. On error the
        existing config is kept and a warning is logged; if there is no
        existing config the error is raised.
        """
        try:
            # Read file first; mtime is taken after the read so it matches the contents
            config_str, current_mtime = self._read_config()

            # Skip reload if mtime unchanged (file hasn't been modified)
            if not force and self._last_mtime is not None and current_mtime == self._last_mtime:
                logger.debug(
                    "Config file unchanged, skipping reload", extra={"path": str(self.config_path)}
                )
                return

            new_settings = self._build_settings(config_str)
        except ConfigurationError as e:
            if self._current_settings is None:
                raise
            # Keep serving the last valid config
            logger.warning(
                "Config reload failed, keeping last valid configuration",
                extra={"reason": str(e), **e.context},
            )
            return

        # All validation passed - update config and mtime together
        self._current_settings = new_settings
        self._last_mtime = current_mtime

        logger.info(
            "Configuration loaded successfully",
            extra={
                "path": str(self.config_path),
                "mtime": current_mtime,
            },
        )

    def _config_file_changed(self) -> bool:
        """
        Check if config file has been modified or created since last load.

        A deleted file is not a change: the last valid config stays in use.
        """
        try:
            current_mtime = self.config_path.stat().st_mtime
        except FileNotFoundError:
            # Deleted at runtime: keep using last valid config, don't reload
            if self._last_mtime is not None:
                logger.warning("Config file was deleted", extra={"path": str(self.config_path)})
            return False
        except OSError:
            # If we can't stat the file, don't try to reload
            return False

        # Only reload if mtime actually changed
        return current_mtime != self._last_mtime

    def get_settings(self) -> SettingsType:
        """
        Get current settings, reloading if config file has changed.

        Returns:
            Current Settings instance (last valid one if a reload failed)
        """
        if self._config_file_changed():
            logger.info("Config file modified, reloading", extra={"path": str(self.config_path)})
            self._load_config()

        if self._current_settings is None:
            msg = "No valid configuration available"
            raise RuntimeError(msg)

        return self._current_settings

    def reload(self) -> None:
        """
        Force immediate reload of configuration.

        Maintains last valid config if reload fails.
        """
        logger.info("Forcing config reload", extra={"path": str(self.config_path)})
        self._load_config(force=True)
