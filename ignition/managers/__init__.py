"""
Managers for Ignition.

This package contains focused manager classes that handle specific aspects of Ignition functionality:
- ItemManager: CRUD operations for entities
- LinkManager: Link maps and referential integrity
- MetricsTracker: Dashboard coverage and health metrics
- StorageManager: Persistence to the .ignition/ folder
- EventBus: Event-driven architecture for decoupled communication
- AuditRecorder / AuditMirror / AuditMirrorListener: Audit trail
- SyncManager: GitHub sync workflows (import from ignition.managers.sync_manager)
"""

from ignition.managers.events import (
    Event,
    EventBus,
    EventListener,
    EventType,
    ItemEvent,
)
from ignition.managers.storage_manager import StorageManager
from ignition.managers.link_manager import LinkManager
from ignition.managers.item_manager import ItemManager
from ignition.managers.metrics_tracker import DashboardMetrics, MetricsTracker
from ignition.managers.audit_manager import (
    AuditMirror,
    AuditMirrorListener,
    AuditRecorder,
    create_audit_entry,
)

__all__ = [
    "AuditMirror",
    "AuditMirrorListener",
    "AuditRecorder",
    "DashboardMetrics",
    "Event",
    "EventBus",
    "EventListener",
    "EventType",
    "ItemEvent",
    "ItemManager",
    "LinkManager",
    "MetricsTracker",
    "StorageManager",
    "create_audit_entry",
]
