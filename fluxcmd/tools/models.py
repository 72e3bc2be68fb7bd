"""Core models for the tool system.

Every tool receives a validated ``ToolParameters`` instance and answers with a
``ToolResult``. Expected failures (bad input, missing entities) are returned
as failed results carrying an ``ErrorKind``; only faults raise.
"""

from __future__ import annotations

import json
import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fluxcmd.core.models import StrictBaseModel

if TYPE_CHECKING:
    from fluxcmd.workflows.models import WorkflowConfig

# Marks a parameter that carries a workflow column
COLUMN_PARAMETER_MARKER = "x-workflow-column"


class ErrorKind(str, Enum):
    """Why a tool call failed."""

    UNKNOWN_TOOL = "unknown_tool"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PRECONDITION = "precondition"
    UPSTREAM = "upstream"
    TIMEOUT = "timeout"
    UNEXPECTED = "unexpected"


class ToolError(StrictBaseModel):
    """Structured failure details."""

    kind: ErrorKind = Field(description="Failure category")
    alternatives: List[str] = Field(default_factory=list, description="Valid values the caller could use instead")


class InverseCommand(StrictBaseModel):
    """A tool call that compensates a mutating call."""

    tool_name: str = Field(description="Tool to run on undo")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Arguments for the compensating call")
    description: str = Field(description="What the undo will do, for humans")


class ToolResult(StrictBaseModel):
    """Uniform outcome of every tool call."""

    success: bool = Field(description="Whether the call achieved its goal")
    message: str = Field(description="Human-readable outcome, always present")
    data: Optional[Any] = Field(default=None, description="Structured payload for programmatic follow-up")
    error: Optional[ToolError] = Field(default=None, description="Failure details when success is False")
    inverse: Optional[InverseCommand] = Field(default=None, description="Compensating call for undo")
    changed: bool = Field(default=True, description="False when a successful call left every record as it was")

    @classmethod
    def ok(cls, message: str, data: Any = None, inverse: Optional[InverseCommand] = None) -> "ToolResult":
        return cls(success=True, message=message, data=data, inverse=inverse)

    @classmethod
    def unchanged(cls, message: str, data: Any = None) -> "ToolResult":
        """Build a successful result for a call that wrote nothing."""
        return cls(success=True, message=message, data=data, changed=False)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        alternatives: Optional[List[str]] = None,
        data: Any = None,
    ) -> "ToolResult":
        """Build a failed result; ``message`` must name the failed precondition."""
        return cls(
            success=False,
            message=message,
            data=data,
            error=ToolError(kind=kind, alternatives=list(alternatives or [])),
        )

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    def to_wire(self) -> Dict[str, Any]:
        """Return the ``{success, message, data?}`` shape callers bind to."""
        wire: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            wire["data"] = self.data
        return wire


class ToolCall(StrictBaseModel):
    """A request to run one tool.

    ``arguments`` may arrive as a JSON object string from function-calling
    models; the engine decodes it and reports malformed JSON as a validation
    failure.
    """

    id: str = Field(default_factory=lambda: f"call_{uuid.uuid4().hex[:12]}", description="Correlation token")
    function: str = Field(description="Tool name")
    arguments: Union[Dict[str, Any], str] = Field(default_factory=dict, description="Raw arguments")

    @field_validator("id", mode="before")
    @classmethod
    def _generate_missing_id(cls, v: Any) -> Any:
        if v is None or v == "":
            return f"call_{uuid.uuid4().hex[:12]}"
        return v

    def decoded_arguments(self) -> Dict[str, Any]:
        """Return the arguments as a mapping.

        Raises:
            ValueError: If a string payload is not a JSON object
        """
        if isinstance(self.arguments, dict):
            return self.arguments
        text = self.arguments.strip()
        if not text:
            return {}
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"arguments are not valid JSON ({e.msg} at position {e.pos})") from e
        if not isinstance(decoded, dict):
            raise ValueError("arguments must be a JSON object")
        return decoded

    def to_wire(self) -> Dict[str, Any]:
        return {"id": self.id, "function": self.function, "arguments": self.decoded_arguments()}


class ToolParameters(BaseModel):
    """Base class for all tool parameters.

    Validation is lax so that model output such as ``"3"`` or ``"true"`` is
    coerced, but unknown fields are rejected.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)


def column_field(description: str, default: Any = ..., **kwargs: Any) -> Any:
    """Declare a parameter that holds a workflow column (status)."""
    return Field(default, description=description, json_schema_extra={COLUMN_PARAMETER_MARKER: True}, **kwargs)


class ToolMetadata(StrictBaseModel):
    """Immutable identity and behaviour of a registered tool."""

    name: str = Field(description="Catalog-unique tool name")
    description: str = Field(description="Description used for discovery")
    category: str = Field(default="general", description="Tool category for organization")
    parameter_type: type[ToolParameters] = Field(description="Parameter model the arguments are validated against")
    mutating: bool = Field(default=False, description="Whether the tool changes store state")
    requires_confirmation: bool = Field(default=False, description="Whether the tool needs explicit confirmation")
    max_execution_time: Optional[float] = Field(default=None, description="Timeout in seconds")

    def column_parameters(self) -> List[str]:
        """Names of parameters that carry a workflow column."""
        names = []
        for field_name, info in self.parameter_type.model_fields.items():
            extra = info.json_schema_extra
            if isinstance(extra, dict) and extra.get(COLUMN_PARAMETER_MARKER):
                names.append(field_name)
        return names

    def describe(self, workflow: Optional["WorkflowConfig"] = None) -> str:
        """Description, listing the workflow's columns when the tool takes a status."""
        if workflow is None or not self.column_parameters():
            return self.description
        return f"{self.description} Valid columns for the {workflow.name} workflow: {workflow.describe_columns()}."
