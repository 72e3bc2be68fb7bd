"""Entity and workflow column resolution.

Lookups run against snapshots the caller already fetched from the store, so
everything here is synchronous. Matching is substring based: the first entity
in iteration order whose display text contains the fragment wins. The other
matches are returned as candidates so callers can point out the ambiguity.
"""

import difflib
import logging
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar, Union

from fluxcmd.normalizers.aliases import compact_key
from fluxcmd.resolution.models import ColumnMatch, ColumnRejection, EntityMatch, NotFound
from fluxcmd.store.models import User
from fluxcmd.workflows.models import WorkflowConfig

logger = logging.getLogger(__name__)

E = TypeVar("E")

MAX_SUGGESTIONS = 5
SUGGESTION_CUTOFF = 0.5

SELF_REFERENCES = frozenset({"me", "my", "myself"})

# Common ways of naming a status, keyed by compact form
STATUS_SYNONYMS = {
    "complete": "done",
    "completed": "done",
    "finished": "done",
    "finish": "done",
    "wip": "inprogress",
    "doing": "inprogress",
    "started": "inprogress",
    "working": "inprogress",
    "ongoing": "inprogress",
    "open": "todo",
    "pending": "todo",
    "notstarted": "todo",
    "review": "codereview",
    "inreview": "codereview",
    "pr": "codereview",
    "qa": "testing",
    "test": "testing",
    "intesting": "testing",
}

TextKey = Callable[[E], Union[str, Sequence[str]]]


def _texts(entity: E, key: TextKey) -> List[str]:
    value = key(entity)
    if isinstance(value, str):
        return [value]
    return [v for v in value if v]


def _similarity(fragment: str, text: str) -> float:
    text = text.lower()
    best = difflib.SequenceMatcher(None, fragment, text).ratio()
    for word in text.split():
        best = max(best, difflib.SequenceMatcher(None, fragment, word).ratio())
    return best


def suggest(fragment: str, texts: Iterable[str], limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Return up to ``limit`` texts closest to ``fragment``, best first."""
    needle = fragment.strip().lower()
    if not needle:
        return []
    scored = []
    seen = set()
    for text in texts:
        if text in seen:
            continue
        seen.add(text)
        score = _similarity(needle, text)
        if score >= SUGGESTION_CUTOFF:
            scored.append((score, text))
    # Stable sort keeps iteration order among equal scores
    scored.sort(key=lambda item: item[0], reverse=True)
    return [text for _, text in scored[:limit]]


def find_entity(
    fragment: Optional[str],
    entities: Sequence[E],
    key: TextKey,
    label: str = "entity",
    id_of: Callable[[E], str] = lambda e: getattr(e, "id"),
) -> Union[EntityMatch[E], NotFound]:
    """Find an entity by id or by a case-insensitive substring of its text.

    Args:
        fragment: Free text supplied by the caller
        entities: Snapshot to search, in the order matches should be preferred
        key: Display text of an entity (a string or several strings)
        label: Entity kind used in messages ("task", "user", ...)
        id_of: Extracts the entity id

    Returns:
        ``EntityMatch`` with the first match and the remaining matches as
        candidates, or ``NotFound`` with nearby suggestions
    """
    raw = (fragment or "").strip()
    if not raw:
        return NotFound(fragment=raw, entity_label=label, detail=f"No {label} was specified")

    for entity in entities:
        if id_of(entity) == raw:
            return EntityMatch(entity=entity)

    needle = raw.lower()
    matches = [e for e in entities if any(needle in t.lower() for t in _texts(e, key))]
    if matches:
        if len(matches) > 1:
            logger.debug(f"'{raw}' matched {len(matches)} {label}s, using the first")
        return EntityMatch(entity=matches[0], candidates=matches[1:])

    pool = [t for e in entities for t in _texts(e, key)]
    return NotFound(fragment=raw, entity_label=label, suggestions=suggest(raw, pool))


def resolve_user(
    fragment: Optional[str], users: Sequence[User], current_user_id: Optional[str]
) -> Union[EntityMatch[User], NotFound]:
    """Resolve a user by name or email, with ``me``/``my``/``myself`` meaning the caller."""
    raw = (fragment or "").strip()
    if raw.lower() in SELF_REFERENCES:
        if current_user_id is None:
            return NotFound(fragment=raw, entity_label="user", detail="No current user is set for this session")
        for user in users:
            if user.id == current_user_id:
                return EntityMatch(entity=user)
        return NotFound(
            fragment=raw, entity_label="user", detail=f"Current user '{current_user_id}' does not exist"
        )
    return find_entity(raw, users, key=lambda u: (u.name, u.email), label="user")


def resolve_column(raw: Optional[str], workflow: WorkflowConfig) -> Union[ColumnMatch, ColumnRejection]:
    """Validate a free-text status against the workflow's columns.

    Tried in order: exact id, case-insensitive id, case-insensitive title,
    alias-normalized id, alias-normalized title, and finally a category name
    such as "done" picking the first column of that category.
    """
    text = "" if raw is None else str(raw)
    columns = workflow.columns

    for column in columns:
        if column.id == text:
            return ColumnMatch(column_id=column.id, column=column, matched_by="id")

    folded = text.strip().lower()
    if folded:
        for column in columns:
            if column.id.lower() == folded:
                return ColumnMatch(column_id=column.id, column=column, matched_by="id_casefold")
        for column in columns:
            if column.title.lower() == folded:
                return ColumnMatch(column_id=column.id, column=column, matched_by="title_casefold")

        compact = compact_key(text)
        aliased = STATUS_SYNONYMS.get(compact, compact)
        for column in columns:
            if compact_key(column.id) in (compact, aliased):
                return ColumnMatch(column_id=column.id, column=column, matched_by="id_alias")
        for column in columns:
            if compact_key(column.title) in (compact, aliased):
                return ColumnMatch(column_id=column.id, column=column, matched_by="title_alias")
        for column in columns:
            if column.category in (compact, aliased):
                return ColumnMatch(column_id=column.id, column=column, matched_by="category")

    return ColumnRejection(
        raw=text, workflow_name=workflow.name, valid_columns=[c.label() for c in columns]
    )
