"""Batch execution, undo and the action log."""

from fluxcmd.batch.action_log import (
    ActionLog,
    ActionLogBackend,
    ActionLogEntry,
    InMemoryActionLogBackend,
    JsonFileActionLogBackend,
)
from fluxcmd.batch.orchestrator import BatchOperation, CommandOrchestrator, parse_operations

__all__ = [
    "ActionLog",
    "ActionLogBackend",
    "ActionLogEntry",
    "InMemoryActionLogBackend",
    "JsonFileActionLogBackend",
    "BatchOperation",
    "CommandOrchestrator",
    "parse_operations",
]
