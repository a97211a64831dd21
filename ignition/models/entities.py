"""
Tracked entities: requirements, test cases, risks, configuration items
and process assets.
"""

from enum import Enum
from typing import ClassVar, List, Optional

from pydantic import Field, field_validator

from .base import AuditableItem, IgnitionModel


class RequirementStatus(str, Enum):
    PROPOSED = "Proposed"
    ACTIVE = "Active"
    IMPLEMENTED = "Implemented"
    VERIFIED = "Verified"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TestStatus(str, Enum):
    __test__ = False

    NOT_RUN = "Not Run"
    PASSED = "Passed"
    FAILED = "Failed"


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class RiskStatus(str, Enum):
    OPEN = "Open"
    MITIGATED = "Mitigated"
    CLOSED = "Closed"


class CIType(str, Enum):
    SOFTWARE_COMPONENT = "Software Component"
    DOCUMENT = "Document"
    TOOL = "Tool"
    HARDWARE = "Hardware"
    ARCHITECTURAL_PRODUCT = "Architectural Product"
    SERVICE = "Service"
    DATABASE = "Database"
    API = "API"
    INFRASTRUCTURE = "Infrastructure"


class CIStatus(str, Enum):
    BASELINE = "Baseline"
    IN_DEVELOPMENT = "In Development"
    DEPRECATED = "Deprecated"
    PLANNED = "Planned"
    RETIRED = "Retired"


class AssetType(str, Enum):
    REQUIREMENT_ARCHETYPE = "Requirement Archetype"
    SOLUTION_BLUEPRINT = "Solution Blueprint"
    RISK_PLAYBOOK = "Risk Playbook"
    TEST_STRATEGY = "Test Strategy"


class Requirement(AuditableItem):
    """A project requirement."""

    item_type: ClassVar[str] = "requirement"

    description: str
    status: RequirementStatus = RequirementStatus.PROPOSED
    priority: Priority = Priority.MEDIUM

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Description cannot be empty")
        return v


class TestCase(AuditableItem):
    """A test case, optionally carrying a Gherkin script."""

    __test__ = False
    item_type: ClassVar[str] = "test"

    description: str
    status: TestStatus = TestStatus.NOT_RUN
    gherkin: Optional[str] = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Description cannot be empty")
        return v


class Risk(AuditableItem):
    """A project risk rated by probability and impact."""

    item_type: ClassVar[str] = "risk"

    description: str
    probability: RiskLevel = RiskLevel.MEDIUM
    impact: RiskLevel = RiskLevel.MEDIUM
    status: RiskStatus = RiskStatus.OPEN

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Description cannot be empty")
        return v


class QualityAttributes(IgnitionModel):
    """Architecture quality ratings, each on a 1-5 scale."""

    performance: Optional[int] = Field(default=None, ge=1, le=5)
    reliability: Optional[int] = Field(default=None, ge=1, le=5)
    security: Optional[int] = Field(default=None, ge=1, le=5)
    maintainability: Optional[int] = Field(default=None, ge=1, le=5)
    scalability: Optional[int] = Field(default=None, ge=1, le=5)


class ConfigurationItem(AuditableItem):
    """A configuration item under change control."""

    item_type: ClassVar[str] = "ci"

    name: str
    type: CIType = CIType.SOFTWARE_COMPONENT
    version: str = "1.0.0"
    status: CIStatus = CIStatus.PLANNED
    dependencies: Optional[List[str]] = None
    design_patterns: Optional[List[str]] = None
    key_interfaces: Optional[List[str]] = None
    architectural_layer: Optional[str] = None
    technology_stack: Optional[List[str]] = None
    deployment_model: Optional[str] = None
    security_classification: Optional[str] = None
    quality_attributes: Optional[QualityAttributes] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v

    @property
    def label(self) -> str:
        return self.name


class ProcessAsset(AuditableItem):
    """A reusable template (archetype, blueprint, playbook or strategy)."""

    item_type: ClassVar[str] = "asset"

    type: AssetType
    name: str
    description: str = ""
    content: str = ""
    tags: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v

    @property
    def label(self) -> str:
        return self.name


ITEM_MODELS = {
    "requirement": Requirement,
    "test": TestCase,
    "risk": Risk,
    "ci": ConfigurationItem,
    "asset": ProcessAsset,
}
