"""Tool registry.

A name-keyed map from tool name to its body and metadata. Names are unique:
registering a name twice fails immediately instead of shadowing the first
definition.
"""

import builtins
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fluxcmd.core.errors.errors import DuplicateToolError
from fluxcmd.core.registry.registry import BaseRegistry
from fluxcmd.tools.models import ToolMetadata, ToolParameters, ToolResult

logger = logging.getLogger(__name__)

ToolBody = Callable[[ToolParameters, Any], Awaitable[ToolResult]]


class ToolNotFoundError(KeyError):
    """Raised when a requested tool is not in the registry."""


class ToolRegistryEntry:
    """Registry entry for a tool.

    Plain class rather than a model because the body is an arbitrary callable.
    """

    def __init__(self, name: str, body: ToolBody, metadata: ToolMetadata):
        self.name = name
        self.body = body
        self.metadata = metadata

    @property
    def category(self) -> str:
        return self.metadata.category


class ToolRegistry(BaseRegistry[ToolRegistryEntry]):
    """Registry of tool definitions keyed by name."""

    def __init__(self) -> None:
        self._tools: Dict[str, ToolRegistryEntry] = {}

    def register(self, name: str, obj: ToolRegistryEntry, **metadata: Any) -> None:
        """Register a tool entry.

        Raises:
            DuplicateToolError: If ``name`` is already registered
        """
        if name in self._tools:
            raise DuplicateToolError(name)
        if obj.name != name:
            raise ValueError(f"Entry name '{obj.name}' does not match registration name '{name}'")
        self._tools[name] = obj
        logger.info(f"Registered tool: {name} (category: {obj.category})")

    def add(self, body: ToolBody, metadata: ToolMetadata) -> ToolRegistryEntry:
        """Wrap ``body`` in an entry and register it under ``metadata.name``."""
        entry = ToolRegistryEntry(metadata.name, body, metadata)
        self.register(metadata.name, entry)
        return entry

    def get(self, name: str) -> ToolRegistryEntry:
        """Get a tool entry by name.

        Raises:
            ToolNotFoundError: If the tool is not registered
        """
        if name not in self._tools:
            raise ToolNotFoundError(f"Tool not found: {name}")
        return self._tools[name]

    def get_metadata(self, name: str) -> ToolMetadata:
        return self.get(name).metadata

    def contains(self, name: str) -> bool:
        return name in self._tools

    def list(self, filter_criteria: Optional[Dict[str, Any]] = None) -> builtins.list[str]:
        """List registered tool names.

        Args:
            filter_criteria: Optional filters, e.g. ``{"category": "tasks"}`` or
                ``{"mutating": True}``
        """
        if not filter_criteria:
            return builtins.list(self._tools.keys())

        results = []
        for name, entry in self._tools.items():
            match = True
            if "category" in filter_criteria and entry.category != filter_criteria["category"]:
                match = False
            if "mutating" in filter_criteria and entry.metadata.mutating != filter_criteria["mutating"]:
                match = False
            if match:
                results.append(name)
        return results

    def list_by_category(self, category: str) -> builtins.list[str]:
        return self.list({"category": category})

    def get_categories(self) -> builtins.list[str]:
        """Categories in first-registration order."""
        seen: Dict[str, None] = {}
        for entry in self._tools.values():
            seen.setdefault(entry.category, None)
        return builtins.list(seen)

    def entries(self) -> List[ToolRegistryEntry]:
        return builtins.list(self._tools.values())

    def clear(self) -> None:
        self._tools.clear()
        logger.info("Cleared all tool registrations")

    def remove(self, name: str) -> bool:
        if name in self._tools:
            del self._tools[name]
            logger.info(f"Removed tool: {name}")
            return True
        return False

    def __len__(self) -> int:
        return len(self._tools)


# Process-wide registry populated by the @tool decorator
tool_registry = ToolRegistry()
