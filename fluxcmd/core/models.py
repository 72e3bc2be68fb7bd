"""Strict Pydantic base models shared by every fluxcmd model.

Value objects (tool results, workflow columns, log entries, entities) are
frozen. Mutation happens by building a new instance with ``model_copy``.
"""

from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """Base model with strict validation.

    - strict=True: no type coercion, inputs must match exact types
    - extra="forbid": unknown fields are rejected
    - validate_assignment=True: assignments are validated
    - frozen=True: immutable by default
    """

    model_config = ConfigDict(
        strict=True,
        extra="forbid",
        validate_assignment=True,
        frozen=True,
        validate_default=True,
        use_enum_values=False,
        arbitrary_types_allowed=False,
    )


__all__ = [
    "StrictBaseModel",
]
