"""Core building blocks: strict models, errors, registry base, settings."""

from fluxcmd.core.errors.errors import (
    ConfigurationError,
    DuplicateToolError,
    FluxError,
    StoreError,
    ToolDefinitionError,
)
from fluxcmd.core.models import StrictBaseModel

__all__ = [
    "StrictBaseModel",
    "FluxError",
    "StoreError",
    "ConfigurationError",
    "DuplicateToolError",
    "ToolDefinitionError",
]
