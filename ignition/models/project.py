"""
Project model for Ignition.

ProjectData is the whole persisted state: entities, documents, link maps,
asset usage and the audit log. It is the shape of ignition-project.json.
"""

import json
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from ignition.constants import DEFAULT_PROJECT_NAME
from ignition.exceptions import ValidationError
from ignition.utils import utc_now

from .audit import AuditLogEntry
from .base import AuditableItem, IgnitionModel
from .entities import (
    ConfigurationItem,
    ProcessAsset,
    Requirement,
    Risk,
    TestCase,
)


class DocumentSection(IgnitionModel):
    """A (possibly nested) section of a project document."""

    id: str
    title: str
    description: str = ""
    maturity_level: Optional[int] = None
    cmmi_pa_ids: Optional[List[str]] = None
    children: List["DocumentSection"] = Field(default_factory=list)

    def walk(self) -> Iterator["DocumentSection"]:
        """Yield this section and all descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()


class Document(IgnitionModel):
    id: str
    title: str
    content: List[DocumentSection] = Field(default_factory=list)

    def sections(self) -> Iterator[DocumentSection]:
        for section in self.content:
            yield from section.walk()

    def find_section(self, section_id: str) -> Optional[DocumentSection]:
        for section in self.sections():
            if section.id == section_id:
                return section
        return None


class RequirementLinks(IgnitionModel):
    tests: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    cis: List[str] = Field(default_factory=list)
    issues: List[int] = Field(default_factory=list)


class AssetLinks(IgnitionModel):
    requirements: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    cis: List[str] = Field(default_factory=list)


class GeneratedItem(IgnitionModel):
    type: str
    id: str
    created_at: datetime = Field(default_factory=utc_now)


class AssetUsage(IgnitionModel):
    usage_count: int = 0
    last_used: datetime = Field(default_factory=utc_now)
    generated_items: List[GeneratedItem] = Field(default_factory=list)


class ProjectData(IgnitionModel):
    """
    Complete project state.

    Entity lists keep insertion order. Link maps are denormalized join
    tables keyed by entity id (or GitHub issue number).
    """

    project_name: str = DEFAULT_PROJECT_NAME
    documents: Dict[str, Document] = Field(default_factory=dict)
    requirements: List[Requirement] = Field(default_factory=list)
    test_cases: List[TestCase] = Field(default_factory=list)
    risks: List[Risk] = Field(default_factory=list)
    configuration_items: List[ConfigurationItem] = Field(default_factory=list)
    process_assets: List[ProcessAsset] = Field(default_factory=list)
    links: Dict[str, RequirementLinks] = Field(default_factory=dict)
    risk_ci_links: Dict[str, List[str]] = Field(default_factory=dict)
    issue_ci_links: Dict[int, List[str]] = Field(default_factory=dict)
    issue_risk_links: Dict[int, List[str]] = Field(default_factory=dict)
    asset_links: Dict[str, AssetLinks] = Field(default_factory=dict)
    asset_usage: Dict[str, AssetUsage] = Field(default_factory=dict)
    audit_log: List[AuditLogEntry] = Field(default_factory=list)

    def collection(self, item_type: str) -> List[AuditableItem]:
        """Return the entity list that holds items of the given type."""
        collections = {
            "requirement": self.requirements,
            "test": self.test_cases,
            "risk": self.risks,
            "ci": self.configuration_items,
            "asset": self.process_assets,
        }
        try:
            return collections[item_type]
        except KeyError:
            raise ValidationError(f"Unknown item type '{item_type}'.")

    def all_items(self) -> Iterator[AuditableItem]:
        yield from self.requirements
        yield from self.test_cases
        yield from self.risks
        yield from self.configuration_items
        yield from self.process_assets

    def find_item(self, item_id: str) -> Optional[AuditableItem]:
        """Find an entity of any type by id."""
        for item in self.all_items():
            if item.id == item_id:
                return item
        return None

    def to_json(self) -> str:
        """Serialize to pretty-printed JSON (indent 2)."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str, require_requirements: bool = True) -> "ProjectData":
        """
        Parse and validate a project file.

        Args:
            text: JSON text of an ignition-project.json file.
            require_requirements: Reject data with no ``requirements`` key.

        Raises:
            ValidationError: If the text is not valid project data.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Project file is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise ValidationError("Project file must contain a JSON object.")
        if require_requirements and "requirements" not in data:
            raise ValidationError("Invalid project file: missing 'requirements'.")
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid project file: {e}")


DocumentSection.model_rebuild()
