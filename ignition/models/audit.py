"""
Audit log models.

AuditLogFile is the shape of audit-log.json as mirrored to GitHub.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from ignition.constants import AUDIT_LOG_DESCRIPTION, AUDIT_LOG_VERSION
from ignition.utils import utc_now

from .base import Actor, IgnitionModel


class AuditLogEntry(IgnitionModel):
    """One immutable record of an action."""

    id: str
    timestamp: datetime = Field(default_factory=utc_now)
    actor: Actor = Actor.USER
    event_type: str
    summary: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AuditLogMetadata(IgnitionModel):
    created: datetime = Field(default_factory=utc_now)
    version: str = AUDIT_LOG_VERSION
    project_name: Optional[str] = None
    description: str = AUDIT_LOG_DESCRIPTION
    last_updated: Optional[datetime] = None
    total_entries: Optional[int] = None


class AuditLogFile(IgnitionModel):
    audit_log: List[AuditLogEntry] = Field(default_factory=list)
    metadata: AuditLogMetadata = Field(default_factory=AuditLogMetadata)
