"""
ItemManager for CRUD operations on Ignition entities.

Handles adding, updating, deleting and listing requirements, test cases,
risks, configuration items and process assets.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ignition.constants import ITEM_ID_PREFIXES
from ignition.exceptions import DuplicateError, NotFoundError, ValidationError
from ignition.managers.events import EventBus, EventType, ItemEvent
from ignition.managers.link_manager import LinkManager
from ignition.models.base import Actor, AuditableItem
from ignition.models.entities import ITEM_MODELS
from ignition.models.project import AssetLinks, AssetUsage, ProjectData
from ignition.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

ITEM_TYPE_NAMES = {
    "requirement": "requirement",
    "test": "test case",
    "risk": "risk",
    "ci": "configuration item",
    "asset": "process asset",
}

_PROTECTED_FIELDS = {"id", "created_at", "created_by", "updated_at", "updated_by"}


def _first_error(e: PydanticValidationError) -> str:
    error = e.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


class ItemManager:
    """
    Manages CRUD operations for all Ignition entities.

    Handles:
    - Adding new entities with generated or caller-supplied ids
    - Updating existing entities (timestamps and actor stamping)
    - Deleting entities, sweeping their links through LinkManager
    - Lookup and filtered listing
    """

    def __init__(self, project: ProjectData, links: LinkManager, event_bus: EventBus) -> None:
        """
        Initialize ItemManager.

        Args:
            project: ProjectData instance containing all entities.
            links: LinkManager used to keep link maps consistent on delete.
            event_bus: Bus on which item events are published.
        """
        self.project = project
        self.links = links
        self.event_bus = event_bus

    def _model_for(self, item_type: str):
        try:
            return ITEM_MODELS[item_type]
        except KeyError:
            raise ValidationError(
                f"Invalid item type '{item_type}'. "
                f"Must be one of: {', '.join(ITEM_MODELS)}."
            )

    def _generate_unique_id(self, item_type: str) -> str:
        prefix = ITEM_ID_PREFIXES[item_type]
        while True:
            candidate = generate_id(prefix)
            if self.project.find_item(candidate) is None:
                return candidate

    def _publish(self, event_type: EventType, item: AuditableItem, summary: str,
                 actor: Actor, details: Dict[str, Any]) -> None:
        self.event_bus.publish(ItemEvent(
            type=event_type,
            item_id=item.id,
            item_type=item.item_type,
            summary=summary,
            actor=actor,
            details=details,
        ))

    def get_item(self, item_id: str, item_type: Optional[str] = None) -> AuditableItem:
        """
        Get an entity by id.

        Args:
            item_id: Id of the entity.
            item_type: Restrict the lookup to one type.

        Raises:
            NotFoundError: If no entity has the id.
        """
        if item_type:
            self._model_for(item_type)
            for item in self.project.collection(item_type):
                if item.id == item_id:
                    return item
            raise NotFoundError(
                f"{ITEM_TYPE_NAMES[item_type].capitalize()} '{item_id}' not found."
            )
        item = self.project.find_item(item_id)
        if item is None:
            raise NotFoundError(f"Item '{item_id}' not found.")
        return item

    def list_items(self, item_type: str, status: Optional[str] = None) -> List[AuditableItem]:
        """List entities of a type, optionally filtered by status."""
        self._model_for(item_type)
        items = list(self.project.collection(item_type))
        if status:
            wanted = status.lower()
            items = [
                item for item in items
                if str(getattr(getattr(item, "status", None), "value", "")).lower() == wanted
            ]
        return items

    def add_item(self, item_type: str, fields: Dict[str, Any], actor: Actor = Actor.USER) -> AuditableItem:
        """
        Create a new entity.

        Args:
            item_type: One of requirement, test, risk, ci, asset.
            fields: Field values (snake_case or camelCase keys). An ``id``
                key is honoured; otherwise an id is generated.
            actor: Who is creating the entity.

        Returns:
            The created entity, with createdAt == updatedAt.

        Raises:
            ValidationError: If the fields are invalid.
            DuplicateError: If the id is already in use.
        """
        model_cls = self._model_for(item_type)
        data = {k: v for k, v in fields.items() if v is not None}
        item_id = data.pop("id", None)
        if item_id is not None:
            item_id = str(item_id).strip()
            if not item_id:
                raise ValidationError("Id cannot be empty.")
            if self.project.find_item(item_id) is not None:
                raise DuplicateError(f"An item with id '{item_id}' already exists.")
        else:
            item_id = self._generate_unique_id(item_type)

        now = utc_now()
        data.update({
            "id": item_id,
            "created_at": now,
            "updated_at": now,
            "created_by": actor,
            "updated_by": actor,
        })
        try:
            item = model_cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {ITEM_TYPE_NAMES[item_type]}: {_first_error(e)}")

        self.project.collection(item_type).append(item)
        if item_type == "asset":
            self.project.asset_links.setdefault(item.id, AssetLinks())
            self.project.asset_usage.setdefault(item.id, AssetUsage(last_used=now))

        logger.debug("Created %s %s", item_type, item.id)
        self._publish(
            EventType.ITEM_CREATED,
            item,
            f'Created {ITEM_TYPE_NAMES[item_type]} {item.id}: "{item.label}"',
            actor,
            {"payload": item.to_dict()},
        )
        return item

    def update_item(self, item_id: str, changes: Dict[str, Any], actor: Actor = Actor.USER) -> AuditableItem:
        """
        Update fields of an existing entity.

        Ids and creation stamps cannot be changed.

        Raises:
            NotFoundError: If the entity does not exist.
            ValidationError: If no changes are given or a value is invalid.
        """
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            raise ValidationError("No updates provided.")
        protected = _PROTECTED_FIELDS.intersection(changes)
        if protected:
            raise ValidationError(f"Cannot change {', '.join(sorted(protected))}.")

        item = self.get_item(item_id)
        collection = self.project.collection(item.item_type)
        index = next(i for i, existing in enumerate(collection) if existing.id == item_id)

        before = item.to_dict()
        data = item.model_dump()
        data.update(changes)
        data["updated_at"] = utc_now()
        data["updated_by"] = actor
        try:
            updated = type(item).model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {ITEM_TYPE_NAMES[item.item_type]}: {_first_error(e)}"
            )

        collection[index] = updated
        self._publish(
            EventType.ITEM_UPDATED,
            updated,
            f'Updated {ITEM_TYPE_NAMES[item.item_type]} {updated.id}: "{updated.label}"',
            actor,
            {"before": before, "after": updated.to_dict()},
        )
        return updated

    def delete_item(self, item_id: str, actor: Actor = Actor.USER) -> AuditableItem:
        """
        Delete an entity and every link that references it.

        Raises:
            NotFoundError: If the entity does not exist.
        """
        item = self.get_item(item_id)
        collection = self.project.collection(item.item_type)
        collection[:] = [existing for existing in collection if existing.id != item_id]
        removed_links = self.links.remove_entity(item_id)

        self._publish(
            EventType.ITEM_DELETED,
            item,
            f'Deleted {ITEM_TYPE_NAMES[item.item_type]} {item.id}: "{item.label}"',
            actor,
            {"payload": item.to_dict(), "removedLinks": removed_links},
        )
        return item
