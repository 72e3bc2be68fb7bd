"""Alias tables that map free-text spellings to canonical values.

Every table is a total function: input that is not in the table resolves to
the table's documented default instead of failing. The page table is the one
exception: unknown page names are handed back unchanged so the caller can
reject them against ``VALID_PAGES``.
"""

import re
from typing import Callable, Dict, FrozenSet, Literal, Mapping, Optional, Tuple, cast

Priority = Literal["low", "medium", "high", "urgent"]
Severity = Literal["low", "medium", "high", "critical"]
Theme = Literal["light", "dark", "system"]

PRIORITY_LEVELS: Tuple[Priority, ...] = ("low", "medium", "high", "urgent")
SEVERITY_LEVELS: Tuple[Severity, ...] = ("low", "medium", "high", "critical")
THEMES: Tuple[Theme, ...] = ("light", "dark", "system")

DEFAULT_PRIORITY: Priority = "medium"
DEFAULT_SEVERITY: Severity = "medium"
DEFAULT_THEME: Theme = "system"

VALID_PAGES: Tuple[str, ...] = (
    "dashboard",
    "board",
    "sprints",
    "inbox",
    "documents",
    "assets",
    "analytics",
    "service-desk",
    "automation",
    "integrations",
    "import",
    "ai",
    "appearance",
    "settings",
    "editor",
    "terminal",
)

_SEPARATORS = re.compile(r"[\s\-_./]+")


def compact_key(raw: str) -> str:
    """Lower-case and drop every separator: ``"P-1 "`` -> ``"p1"``."""
    return _SEPARATORS.sub("", raw.strip().lower())


def dashed_key(raw: str) -> str:
    """Lower-case and collapse separators to dashes: ``"Service Desk"`` -> ``"service-desk"``."""
    return _SEPARATORS.sub("-", raw.strip().lower()).strip("-")


class AliasTable:
    """Many-to-one map from normalized spellings to a canonical value."""

    def __init__(
        self,
        name: str,
        aliases: Mapping[str, str],
        canonical: Tuple[str, ...],
        default: Optional[str],
        key_func: Callable[[str], str] = compact_key,
    ):
        unknown = {v for v in aliases.values() if v not in canonical}
        if unknown:
            raise ValueError(f"Alias table '{name}' maps to non-canonical values: {sorted(unknown)}")
        if default is not None and default not in canonical:
            raise ValueError(f"Alias table '{name}' default '{default}' is not canonical")

        self.name = name
        self.canonical: Tuple[str, ...] = canonical
        self.default = default
        self._key = key_func
        # Canonical values always resolve to themselves
        table: Dict[str, str] = {key_func(v): v for v in canonical}
        table.update({key_func(k): v for k, v in aliases.items()})
        self._table = table

    @property
    def keys(self) -> FrozenSet[str]:
        return frozenset(self._table)

    def lookup(self, raw: object) -> Optional[str]:
        """Return the canonical value for ``raw`` or None when unknown."""
        if raw is None:
            return None
        return self._table.get(self._key(str(raw)))

    def resolve(self, raw: object) -> str:
        """Return the canonical value for ``raw``, falling back to the default."""
        value = self.lookup(raw)
        if value is not None:
            return value
        if self.default is None:
            return "" if raw is None else str(raw)
        return self.default


PRIORITY_TABLE = AliasTable(
    "priority",
    {
        # urgent
        "critical": "urgent",
        "crit": "urgent",
        "blocker": "urgent",
        "blocking": "urgent",
        "showstopper": "urgent",
        "asap": "urgent",
        "emergency": "urgent",
        "immediate": "urgent",
        "highest": "urgent",
        "very high": "urgent",
        "top": "urgent",
        "p0": "urgent",
        "p1": "urgent",
        # high
        "important": "high",
        "major": "high",
        "hi": "high",
        "p2": "high",
        # medium
        "normal": "medium",
        "med": "medium",
        "mid": "medium",
        "moderate": "medium",
        "standard": "medium",
        "default": "medium",
        "p3": "medium",
        # low
        "minor": "low",
        "trivial": "low",
        "lowest": "low",
        "lo": "low",
        "nice to have": "low",
        "someday": "low",
        "p4": "low",
        "p5": "low",
    },
    PRIORITY_LEVELS,
    DEFAULT_PRIORITY,
)

SEVERITY_TABLE = AliasTable(
    "severity",
    {
        # critical
        "crit": "critical",
        "sev0": "critical",
        "sev1": "critical",
        "s1": "critical",
        "p0": "critical",
        "p1": "critical",
        "outage": "critical",
        "major outage": "critical",
        "down": "critical",
        "emergency": "critical",
        "blocker": "critical",
        "urgent": "critical",
        # high
        "sev2": "high",
        "s2": "high",
        "p2": "high",
        "major": "high",
        "severe": "high",
        "important": "high",
        # medium
        "sev3": "medium",
        "s3": "medium",
        "p3": "medium",
        "moderate": "medium",
        "normal": "medium",
        "med": "medium",
        # low
        "sev4": "low",
        "s4": "low",
        "p4": "low",
        "minor": "low",
        "trivial": "low",
        "cosmetic": "low",
    },
    SEVERITY_LEVELS,
    DEFAULT_SEVERITY,
)

THEME_TABLE = AliasTable(
    "theme",
    {
        "light mode": "light",
        "day": "light",
        "day mode": "light",
        "bright": "light",
        "white": "light",
        "dark mode": "dark",
        "night": "dark",
        "night mode": "dark",
        "dim": "dark",
        "black": "dark",
        "auto": "system",
        "automatic": "system",
        "default": "system",
        "os": "system",
        "match system": "system",
    },
    THEMES,
    DEFAULT_THEME,
)

PAGE_TABLE = AliasTable(
    "page",
    {
        "home": "dashboard",
        "overview": "dashboard",
        "main": "dashboard",
        "kanban": "board",
        "task board": "board",
        "tasks": "board",
        "sprint": "sprints",
        "sprint board": "sprints",
        "mail": "inbox",
        "email": "inbox",
        "emails": "inbox",
        "messages": "inbox",
        "docs": "documents",
        "document": "documents",
        "files": "assets",
        "file": "assets",
        "asset": "assets",
        "reports": "analytics",
        "report": "analytics",
        "metrics": "analytics",
        "stats": "analytics",
        "servicedesk": "service-desk",
        "help desk": "service-desk",
        "helpdesk": "service-desk",
        "itsm": "service-desk",
        "incidents": "service-desk",
        "tickets": "service-desk",
        "automations": "automation",
        "rules": "automation",
        "integration": "integrations",
        "connections": "integrations",
        "apps": "integrations",
        "importer": "import",
        "migrate": "import",
        "assistant": "ai",
        "chat": "ai",
        "theme": "appearance",
        "themes": "appearance",
        "preferences": "settings",
        "setting": "settings",
        "config": "settings",
        "configuration": "settings",
        "edit": "editor",
        "notes": "editor",
        "console": "terminal",
        "command line": "terminal",
        "cli": "terminal",
    },
    VALID_PAGES,
    None,
    key_func=dashed_key,
)


def normalize_priority(raw: object) -> Priority:
    """Map free text to a priority level; unknown input gives ``medium``."""
    return cast(Priority, PRIORITY_TABLE.resolve(raw))


def normalize_severity(raw: object) -> Severity:
    """Map free text to a severity level; unknown input gives ``medium``."""
    return cast(Severity, SEVERITY_TABLE.resolve(raw))


def normalize_theme(raw: object) -> Theme:
    """Map free text to a theme; unknown input gives ``system``."""
    return cast(Theme, THEME_TABLE.resolve(raw))


def normalize_page(raw: str) -> str:
    """Map a page alias to its page id.

    Input that is neither an alias nor a page id is returned unchanged;
    check it with ``is_valid_page`` before navigating.
    """
    value = PAGE_TABLE.lookup(raw)
    return value if value is not None else raw


def is_valid_page(page: str) -> bool:
    return page in VALID_PAGES
