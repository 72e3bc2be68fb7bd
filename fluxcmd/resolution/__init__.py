"""Entity and workflow column resolution."""

from fluxcmd.resolution.models import ColumnMatch, ColumnRejection, EntityMatch, NotFound
from fluxcmd.resolution.resolver import (
    SELF_REFERENCES,
    STATUS_SYNONYMS,
    find_entity,
    resolve_column,
    resolve_user,
    suggest,
)

__all__ = [
    "EntityMatch",
    "NotFound",
    "ColumnMatch",
    "ColumnRejection",
    "find_entity",
    "resolve_user",
    "resolve_column",
    "suggest",
    "SELF_REFERENCES",
    "STATUS_SYNONYMS",
]
