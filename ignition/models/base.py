"""
Base models for Ignition.

Every persisted model serializes with camelCase keys so that project files
stay compatible with ignition-project.json as committed to GitHub.
"""

from datetime import datetime
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ignition.utils import utc_now


class Actor(str, Enum):
    """Who performed an action."""

    USER = "User"
    AI = "AI"
    SYSTEM = "System"
    AUTOMATION = "Automation"


class IgnitionModel(BaseModel):
    """Base for all file-backed models.

    Accepts both camelCase (file) and snake_case (Python) keys and keeps
    unknown keys so that imported files round-trip unchanged.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_dict(self) -> dict:
        """Dump to a JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AuditableItem(IgnitionModel):
    """
    Base model for every tracked entity.

    Subclasses set ``item_type`` to the short type name used by the CLI and
    the managers (requirement, test, risk, ci, asset).
    """

    item_type: ClassVar[str] = "item"

    id: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    created_by: Actor = Actor.USER
    updated_by: Actor = Actor.USER

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Ids must be non-empty and free of surrounding whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("Id cannot be empty")
        return v

    @property
    def label(self) -> str:
        """Human-readable label used in summaries and listings."""
        return getattr(self, "description", "") or self.id
