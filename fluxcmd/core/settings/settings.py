"""Settings and configuration loading.

Values come from (highest first): keyword arguments, ``FLUX_*`` environment
variables, a ``.env`` file, then defaults. ``load_settings`` overlays a YAML
or JSON file on top of the environment.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fluxcmd.core.errors.errors import ConfigurationError

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class FluxSettings(BaseSettings):
    """Runtime settings for the command orchestration core."""

    log_level: str = Field(default="INFO", validation_alias=AliasChoices("FLUX_LOG_LEVEL", "log_level"))
    default_workflow_mode: str = Field(
        default="agile", validation_alias=AliasChoices("FLUX_WORKFLOW_MODE", "default_workflow_mode")
    )
    default_session_id: str = Field(
        default="default", validation_alias=AliasChoices("FLUX_SESSION_ID", "default_session_id")
    )

    # Execution
    tool_timeout_seconds: float = Field(
        default=30.0, validation_alias=AliasChoices("FLUX_TOOL_TIMEOUT", "tool_timeout_seconds")
    )
    batch_max_operations: int = Field(
        default=50, validation_alias=AliasChoices("FLUX_BATCH_MAX_OPERATIONS", "batch_max_operations")
    )

    # Action log
    action_log_cap: int = Field(default=1000, validation_alias=AliasChoices("FLUX_ACTION_LOG_CAP", "action_log_cap"))
    action_log_path: Optional[Path] = Field(
        default=None, validation_alias=AliasChoices("FLUX_ACTION_LOG_PATH", "action_log_path")
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"Log level must be one of: {VALID_LOG_LEVELS}")
        return v.upper()

    @field_validator("default_workflow_mode")
    @classmethod
    def validate_workflow_mode(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("tool_timeout_seconds", "batch_max_operations", "action_log_cap")
    @classmethod
    def validate_positive(cls, v: Any) -> Any:
        if v <= 0:
            raise ValueError("Value must be positive")
        return v


def _read_config_file(config_file: Path) -> dict[str, Any]:
    with open(config_file, "r", encoding="utf-8") as f:
        if config_file.suffix.lower() in [".yml", ".yaml"]:
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {config_file} must contain a mapping")
    # Accept both a flat file and one nested under a "flux" section
    section = data.get("flux")
    return section if isinstance(section, dict) else data


def load_settings(config_file: Optional[Path] = None, **overrides: Any) -> FluxSettings:
    """Build settings from the environment, an optional file and overrides.

    Args:
        config_file: Optional YAML or JSON file
        **overrides: Explicit values that win over every other source

    Returns:
        Validated settings

    Raises:
        ConfigurationError: If the file cannot be read or values are invalid
    """
    file_values: dict[str, Any] = {}
    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_file}")
        try:
            file_values = _read_config_file(config_file)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load configuration from {config_file}", cause=e) from e

    try:
        settings = FluxSettings(**{**file_values, **overrides})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", cause=e) from e

    logger.debug(f"Loaded settings (workflow={settings.default_workflow_mode}, log_level={settings.log_level})")
    return settings


_settings: Optional[FluxSettings] = None


def get_settings() -> FluxSettings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
