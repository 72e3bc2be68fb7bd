"""Export tool definitions in the function-calling format.

The output shape is bound to by external model APIs, so the field names
(``name``, ``description``, ``parameters``, ``properties``, ``required``,
``enum``) must not change.
"""

import logging
from typing import Any, Dict, List, Optional

from fluxcmd.tools.models import ToolMetadata, ToolParameters
from fluxcmd.tools.registry import ToolRegistry
from fluxcmd.workflows.models import WorkflowConfig

logger = logging.getLogger(__name__)

_JSON_TYPES = {"string": "string", "integer": "number", "number": "number", "boolean": "boolean"}


def _property_schema(prop: Dict[str, Any]) -> Dict[str, Any]:
    # Optional[X] is rendered by pydantic as anyOf [X, null]
    variants = prop.get("anyOf")
    if variants:
        non_null = [v for v in variants if v.get("type") != "null"]
        base = dict(non_null[0]) if non_null else {}
    else:
        base = prop

    schema: Dict[str, Any] = {
        "type": _JSON_TYPES.get(base.get("type", "string"), "string"),
        "description": prop.get("description", base.get("description", "")),
    }
    if "enum" in base:
        schema["enum"] = list(base["enum"])
    elif "const" in base:
        schema["enum"] = [base["const"]]
    return schema


def parameters_schema(parameter_type: type[ToolParameters]) -> Dict[str, Any]:
    """Flatten a parameter model into ``{type, properties, required}``."""
    model_schema = parameter_type.model_json_schema()
    properties = {
        field_name: _property_schema(prop) for field_name, prop in model_schema.get("properties", {}).items()
    }
    return {
        "type": "object",
        "properties": properties,
        "required": list(model_schema.get("required", [])),
    }


def tool_definition(metadata: ToolMetadata, workflow: Optional[WorkflowConfig] = None) -> Dict[str, Any]:
    return {
        "name": metadata.name,
        "description": metadata.describe(workflow),
        "parameters": parameters_schema(metadata.parameter_type),
    }


def export_tool_definitions(
    registry: ToolRegistry, workflow: Optional[WorkflowConfig] = None
) -> List[Dict[str, Any]]:
    """Export every registered tool, in registration order.

    Args:
        registry: Registry to export
        workflow: Active workflow; tools taking a status get its columns
            appended to their description

    Returns:
        One function-calling definition per tool
    """
    definitions = [tool_definition(entry.metadata, workflow) for entry in registry.entries()]
    logger.debug(f"Exported {len(definitions)} tool definitions")
    return definitions
