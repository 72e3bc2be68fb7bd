"""Resolution outcomes.

Resolvers never raise: a lookup either yields a match or a rejection value
whose ``message`` is ready to hand back to the caller.
"""

from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import Field

from fluxcmd.core.models import StrictBaseModel
from fluxcmd.workflows.models import WorkflowColumn

E = TypeVar("E")


class EntityMatch(StrictBaseModel, Generic[E]):
    """A resolved entity plus any other entities the fragment also matched."""

    entity: E
    candidates: List[E] = Field(default_factory=list, description="Other matches, in iteration order")

    @property
    def is_ambiguous(self) -> bool:
        return bool(self.candidates)


class NotFound(StrictBaseModel):
    """No entity matched the fragment."""

    fragment: str
    entity_label: str = "entity"
    suggestions: List[str] = Field(default_factory=list, description="Closest display texts")
    detail: Optional[str] = None

    @property
    def message(self) -> str:
        text = self.detail or f"No {self.entity_label} found matching '{self.fragment}'"
        if self.suggestions:
            text += ". Did you mean: " + ", ".join(f"'{s}'" for s in self.suggestions) + "?"
        return text


ColumnStep = Literal["id", "id_casefold", "title_casefold", "id_alias", "title_alias", "category"]


class ColumnMatch(StrictBaseModel):
    column_id: str
    column: WorkflowColumn
    matched_by: ColumnStep


class ColumnRejection(StrictBaseModel):
    """A status string that is not a column of the active workflow."""

    raw: str
    workflow_name: str
    valid_columns: List[str] = Field(description="Every column as 'Title (id)'")

    @property
    def message(self) -> str:
        return (
            f"Invalid status '{self.raw}' for the {self.workflow_name} workflow. "
            f"Valid columns: {', '.join(self.valid_columns)}"
        )

