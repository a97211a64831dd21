"""
Event system for Ignition.

Allows decoupled communication between components via events and listeners.
Every mutation publishes an event; the audit recorder and the GitHub audit
mirror are listeners.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ignition.models.base import Actor
from ignition.utils import utc_now

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of events in Ignition."""
    ITEM_CREATED = "item.created"
    ITEM_UPDATED = "item.updated"
    ITEM_DELETED = "item.deleted"
    LINKS_UPDATED = "links.updated"
    ASSET_USED = "asset.used"
    DOCUMENT_UPDATED = "document.updated"
    PROJECT_UPDATED = "project.updated"
    PROJECT_RESET = "project.reset"
    PROJECT_EXPORTED = "project.exported"
    PROJECT_IMPORTED = "project.imported"
    GITHUB_LOADED = "github.loaded"
    GITHUB_SAVED = "github.saved"
    PR_ANALYZED = "github.pr_analyzed"
    PR_COMMENTED = "github.pr_commented"
    REPO_SCAFFOLDED = "github.repo_scaffolded"
    WORKFLOW_GENERATED = "github.workflow_generated"
    AUDIT_RECORDED = "audit.recorded"


@dataclass
class Event:
    """Base event class."""
    type: EventType
    summary: str = ""
    actor: Actor = Actor.USER
    timestamp: datetime = field(default_factory=utc_now)
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ItemEvent(Event):
    """Event for entity-related actions."""
    item_id: str = ""
    item_type: str = ""


class EventListener(ABC):
    """Base class for event listeners."""

    @abstractmethod
    def handle(self, event: Event) -> None:
        """Handle an event.

        Args:
            event: The event to handle.
        """
        pass

    @property
    @abstractmethod
    def subscribed_events(self) -> List[EventType]:
        """Return list of event types this listener subscribes to."""
        pass


class EventBus:
    """
    Event bus for publishing and subscribing to events.

    One bus is created per IgnitionCore and passed to the managers that
    publish on it.
    """

    def __init__(self) -> None:
        self._listeners: Dict[EventType, List[EventListener]] = {}

    def subscribe(self, listener: EventListener) -> None:
        """Subscribe a listener to events.

        Args:
            listener: The listener to subscribe.
        """
        for event_type in listener.subscribed_events:
            self._listeners.setdefault(event_type, []).append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        """Unsubscribe a listener from all events.

        Args:
            listener: The listener to unsubscribe.
        """
        for listeners in self._listeners.values():
            if listener in listeners:
                listeners.remove(listener)

    def publish(self, event: Event) -> None:
        """Publish an event to all subscribed listeners.

        A failing listener is logged and does not stop the others.

        Args:
            event: The event to publish.
        """
        for listener in list(self._listeners.get(event.type, [])):
            try:
                listener.handle(event)
            except Exception:
                logger.warning(
                    "Listener %s failed on %s",
                    listener.__class__.__name__,
                    event.type.value,
                    exc_info=True,
                )

    def listeners_for(self, event_type: EventType) -> List[EventListener]:
        return list(self._listeners.get(event_type, []))

    def clear(self) -> None:
        """Clear all listeners (useful for testing)."""
        self._listeners.clear()


def all_event_types(exclude: Optional[List[EventType]] = None) -> List[EventType]:
    """Every event type, minus the excluded ones."""
    excluded = set(exclude or [])
    return [event_type for event_type in EventType if event_type not in excluded]
