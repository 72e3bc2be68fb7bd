"""Session-scoped log of executed mutating actions.

The log is append only and bounded: once a session holds ``cap`` entries the
oldest ones are evicted. It is best effort and makes no durability promise,
so backends may lose entries on crash.
"""

import asyncio
import json
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable

from pydantic import Field, ValidationError

from fluxcmd.core.errors.errors import StoreError
from fluxcmd.core.models import StrictBaseModel
from fluxcmd.tools.models import InverseCommand, ToolResult

logger = logging.getLogger(__name__)

DEFAULT_ACTION_LOG_CAP = 1000


class ActionLogEntry(StrictBaseModel):
    """One executed action. Never mutated after it is appended."""

    id: str = Field(default_factory=lambda: f"act_{uuid.uuid4().hex[:12]}", description="Entry id")
    session_id: str = Field(description="Session the action ran in")
    action_type: str = Field(description="Tool name")
    input_params: Dict[str, Any] = Field(default_factory=dict, description="Arguments as submitted")
    result: Dict[str, Any] = Field(description="Wire form of the result")
    success: bool = Field(description="Whether the action succeeded")
    timestamp: datetime = Field(description="When the action finished")
    inverse: Optional[InverseCommand] = Field(default=None, description="Compensating call, when one exists")


@runtime_checkable
class ActionLogBackend(Protocol):
    """Storage for action log entries, partitioned by session."""

    async def append(self, entry: ActionLogEntry) -> None: ...

    async def read(self, session_id: str) -> List[ActionLogEntry]:
        """Entries of a session, oldest first."""
        ...

    async def trim(self, session_id: str, keep: int) -> int:
        """Drop all but the newest ``keep`` entries; return how many were dropped."""
        ...

    async def pop(self, session_id: str) -> Optional[ActionLogEntry]:
        """Remove and return the newest entry."""
        ...

    async def clear(self, session_id: str) -> None: ...


class InMemoryActionLogBackend:
    """Process-local backend; the default."""

    def __init__(self):
        self._entries: Dict[str, List[ActionLogEntry]] = {}
        self._lock = asyncio.Lock()

    async def append(self, entry: ActionLogEntry) -> None:
        async with self._lock:
            self._entries.setdefault(entry.session_id, []).append(entry)

    async def read(self, session_id: str) -> List[ActionLogEntry]:
        async with self._lock:
            return list(self._entries.get(session_id, []))

    async def trim(self, session_id: str, keep: int) -> int:
        async with self._lock:
            entries = self._entries.get(session_id, [])
            dropped = max(0, len(entries) - keep)
            if dropped:
                self._entries[session_id] = entries[dropped:]
            return dropped

    async def pop(self, session_id: str) -> Optional[ActionLogEntry]:
        async with self._lock:
            entries = self._entries.get(session_id)
            return entries.pop() if entries else None

    async def clear(self, session_id: str) -> None:
        async with self._lock:
            self._entries.pop(session_id, None)


class JsonFileActionLogBackend:
    """Keeps every session's entries in one JSON file.

    The whole file is rewritten on each change, which suits the small,
    capped logs this is meant for.

    Args:
        path: File to read and write; created on first append
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _load(self) -> Dict[str, List[ActionLogEntry]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            return {
                session: [ActionLogEntry.model_validate(item, strict=False) for item in items]
                for session, items in raw.items()
            }
        except (OSError, json.JSONDecodeError, ValidationError, AttributeError) as e:
            raise StoreError(f"Cannot read action log {self.path}: {e}", operation="read_action_log", cause=e) from e

    def _save(self, sessions: Dict[str, List[ActionLogEntry]]) -> None:
        payload = {session: [e.model_dump(mode="json") for e in items] for session, items in sessions.items() if items}
        try:
            os.makedirs(self.path.parent, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreError(f"Cannot write action log {self.path}: {e}", operation="write_action_log", cause=e) from e
        logger.debug(f"Action log saved to {self.path}")

    async def append(self, entry: ActionLogEntry) -> None:
        async with self._lock:
            sessions = self._load()
            sessions.setdefault(entry.session_id, []).append(entry)
            self._save(sessions)

    async def read(self, session_id: str) -> List[ActionLogEntry]:
        async with self._lock:
            return self._load().get(session_id, [])

    async def trim(self, session_id: str, keep: int) -> int:
        async with self._lock:
            sessions = self._load()
            entries = sessions.get(session_id, [])
            dropped = max(0, len(entries) - keep)
            if dropped:
                sessions[session_id] = entries[dropped:]
                self._save(sessions)
            return dropped

    async def pop(self, session_id: str) -> Optional[ActionLogEntry]:
        async with self._lock:
            sessions = self._load()
            entries = sessions.get(session_id)
            if not entries:
                return None
            entry = entries.pop()
            self._save(sessions)
            return entry

    async def clear(self, session_id: str) -> None:
        async with self._lock:
            sessions = self._load()
            if sessions.pop(session_id, None) is not None:
                self._save(sessions)


class ActionLog:
    """Bounded, per-session action log over a backend.

    Args:
        backend: Entry storage (defaults to in memory)
        cap: Maximum entries kept per session
    """

    def __init__(self, backend: Optional[ActionLogBackend] = None, cap: int = DEFAULT_ACTION_LOG_CAP):
        if cap < 1:
            raise ValueError("Action log cap must be at least 1")
        self.backend = backend if backend is not None else InMemoryActionLogBackend()
        self.cap = cap

    async def append(self, entry: ActionLogEntry) -> None:
        await self.backend.append(entry)
        dropped = await self.backend.trim(entry.session_id, self.cap)
        if dropped:
            logger.debug(f"Evicted {dropped} old action(s) from session '{entry.session_id}'")

    async def record(
        self,
        session_id: str,
        action_type: str,
        input_params: Dict[str, Any],
        result: ToolResult,
        timestamp: datetime,
    ) -> ActionLogEntry:
        """Build an entry from a tool result and append it."""
        entry = ActionLogEntry(
            session_id=session_id,
            action_type=action_type,
            input_params=dict(input_params),
            result=result.to_wire(),
            success=result.success,
            timestamp=timestamp,
            inverse=result.inverse if result.success else None,
        )
        await self.append(entry)
        return entry

    async def entries(self, session_id: str) -> List[ActionLogEntry]:
        """All entries of a session, oldest first."""
        return await self.backend.read(session_id)

    async def peek(self, session_id: str) -> Optional[ActionLogEntry]:
        entries = await self.backend.read(session_id)
        return entries[-1] if entries else None

    async def pop(self, session_id: str) -> Optional[ActionLogEntry]:
        return await self.backend.pop(session_id)

    async def clear(self, session_id: str) -> None:
        await self.backend.clear(session_id)
