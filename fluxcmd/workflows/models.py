"""Workflow schema models."""

from typing import List, Literal, Optional

from pydantic import Field, model_validator

from fluxcmd.core.models import StrictBaseModel

ColumnCategory = Literal["backlog", "active", "review", "done"]


class WorkflowColumn(StrictBaseModel):
    """One valid status within a workflow."""

    id: str = Field(description="Canonical, stable column id")
    title: str = Field(description="Display title")
    category: ColumnCategory = Field(description="Coarse bucket shared across workflows")

    def label(self) -> str:
        """Human-readable ``title (id)`` pair used in error messages."""
        return f"{self.title} ({self.id})"


class WorkflowConfig(StrictBaseModel):
    """A named workflow mode and its ordered columns."""

    id: str = Field(description="Workflow mode identifier")
    name: str = Field(description="Display name")
    description: str = Field(default="", description="Short description")
    columns: List[WorkflowColumn] = Field(description="Ordered list of valid status columns")

    @model_validator(mode="after")
    def _unique_column_ids(self) -> "WorkflowConfig":
        ids = [c.id for c in self.columns]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Workflow '{self.id}' has duplicate column ids: {duplicates}")
        if not self.columns:
            raise ValueError(f"Workflow '{self.id}' must define at least one column")
        return self

    def column_ids(self) -> List[str]:
        return [c.id for c in self.columns]

    def get_column(self, column_id: str) -> Optional[WorkflowColumn]:
        return next((c for c in self.columns if c.id == column_id), None)

    def columns_in(self, category: ColumnCategory) -> List[WorkflowColumn]:
        return [c for c in self.columns if c.category == category]

    def done_column_ids(self) -> List[str]:
        return [c.id for c in self.columns_in("done")]

    def active_columns(self) -> List[WorkflowColumn]:
        return [c for c in self.columns if c.category != "done"]

    def initial_column(self) -> WorkflowColumn:
        return self.columns[0]

    def describe_columns(self) -> str:
        """Comma-separated ``title (id)`` list of every column."""
        return ", ".join(c.label() for c in self.columns)
