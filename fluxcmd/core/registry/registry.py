"""Base registry interface for fluxcmd registries.

Defines the abstract base class shared by the tool registry, establishing a
common interface for registration and retrieval.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class BaseRegistry(ABC, Generic[T]):
    """Abstract base class for all registry types."""

    @abstractmethod
    def register(self, name: str, obj: T, **metadata: Any) -> None:
        """Register an object with the registry.

        Args:
            name: Unique name for the object
            obj: The object to register
            **metadata: Additional metadata about the object

        Raises:
            DuplicateToolError: If the name is already registered
        """

    @abstractmethod
    def get(self, name: str) -> T:
        """Get an object by name.

        Raises:
            KeyError: If the object doesn't exist
        """

    @abstractmethod
    def contains(self, name: str) -> bool:
        """Check if an object exists in the registry."""

    @abstractmethod
    def list(self, filter_criteria: Optional[Dict[str, Any]] = None) -> List[str]:
        """List registered names matching criteria."""

    @abstractmethod
    def clear(self) -> None:
        """Clear all registrations from the registry."""

    @abstractmethod
    def remove(self, name: str) -> bool:
        """Remove a registration.

        Returns:
            True if removed, False if not found
        """
