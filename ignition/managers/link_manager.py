"""
Link management for Ignition.

Owns every link map in ProjectData (requirement links, risk/CI links,
issue links, asset links and asset usage) and keeps them consistent:
links may only point at existing entities, and deleting an entity sweeps
its id out of every map.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from ignition.exceptions import NotFoundError, ValidationError
from ignition.managers.events import EventBus, EventType, ItemEvent
from ignition.models.base import Actor
from ignition.models.project import (
    AssetLinks,
    AssetUsage,
    GeneratedItem,
    ProjectData,
    RequirementLinks,
)
from ignition.utils import utc_now

logger = logging.getLogger(__name__)


def _dedupe(values: Iterable) -> list:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


class LinkManager:
    """
    Manages the denormalized link maps of a project.

    Args:
        project: The ProjectData whose maps are managed.
        event_bus: Bus on which LINKS_UPDATED and ASSET_USED are published.
    """

    def __init__(self, project: ProjectData, event_bus: EventBus):
        self.project = project
        self.event_bus = event_bus

    # =========================================================================
    # Validation helpers
    # =========================================================================

    def _require(self, item_type: str, item_id: str) -> None:
        """Raise NotFoundError unless an entity of item_type has this id."""
        for item in self.project.collection(item_type):
            if item.id == item_id:
                return
        raise NotFoundError(f"{item_type.capitalize()} '{item_id}' not found.")

    def _require_all(self, item_type: str, item_ids: Optional[Iterable[str]]) -> List[str]:
        ids = _dedupe(item_ids or [])
        for item_id in ids:
            self._require(item_type, item_id)
        return ids

    def _publish(self, item_id: str, item_type: str, summary: str, details: dict, actor: Actor) -> None:
        self.event_bus.publish(ItemEvent(
            type=EventType.LINKS_UPDATED,
            item_id=item_id,
            item_type=item_type,
            summary=summary,
            actor=actor,
            details=details,
        ))

    def get_requirement_links(self, requirement_id: str) -> RequirementLinks:
        """Return the link row for a requirement (empty if it has none)."""
        self._require("requirement", requirement_id)
        return self.project.links.get(requirement_id, RequirementLinks())

    # =========================================================================
    # Link operations
    # =========================================================================

    def set_requirement_links(
        self,
        requirement_id: str,
        tests: Optional[List[str]] = None,
        cis: Optional[List[str]] = None,
        issues: Optional[List[int]] = None,
        actor: Actor = Actor.USER,
    ) -> RequirementLinks:
        """
        Replace the tests, CIs and issues linked to a requirement.

        Lists passed as None are left unchanged. Risk links are managed
        from the risk side (see set_risk_links).

        Raises:
            NotFoundError: If the requirement or any linked id does not exist.
        """
        self._require("requirement", requirement_id)
        row = self.project.links.setdefault(requirement_id, RequirementLinks())
        before = row.model_dump()
        if tests is not None:
            row.tests = self._require_all("test", tests)
        if cis is not None:
            row.cis = self._require_all("ci", cis)
        if issues is not None:
            if any(number <= 0 for number in issues):
                raise ValidationError("Issue numbers must be positive.")
            row.issues = _dedupe(issues)

        self._publish(
            requirement_id,
            "requirement",
            f"Updated links for requirement {requirement_id}",
            {"before": before, "after": row.model_dump()},
            actor,
        )
        return row

    def set_risk_links(
        self,
        risk_id: str,
        requirements: Optional[List[str]] = None,
        cis: Optional[List[str]] = None,
        actor: Actor = Actor.USER,
    ) -> Tuple[List[str], List[str]]:
        """
        Replace the requirements and CIs linked to a risk.

        The risk is removed from every requirement row and added back to
        the listed ones, so links[*].risks always mirrors this call.

        Returns:
            Tuple of (linked requirement ids, linked CI ids).
        """
        self._require("risk", risk_id)
        if requirements is not None:
            requirement_ids = self._require_all("requirement", requirements)
            for req_id, row in self.project.links.items():
                if risk_id in row.risks and req_id not in requirement_ids:
                    row.risks = [r for r in row.risks if r != risk_id]
            for req_id in requirement_ids:
                row = self.project.links.setdefault(req_id, RequirementLinks())
                if risk_id not in row.risks:
                    row.risks.append(risk_id)
        if cis is not None:
            ci_ids = self._require_all("ci", cis)
            if ci_ids:
                self.project.risk_ci_links[risk_id] = ci_ids
            else:
                self.project.risk_ci_links.pop(risk_id, None)

        linked_requirements = [
            req_id for req_id, row in self.project.links.items() if risk_id in row.risks
        ]
        linked_cis = list(self.project.risk_ci_links.get(risk_id, []))
        self._publish(
            risk_id,
            "risk",
            f"Updated links for risk {risk_id}",
            {"requirements": linked_requirements, "cis": linked_cis},
            actor,
        )
        return linked_requirements, linked_cis

    def set_issue_links(
        self,
        issue_number: int,
        requirements: Optional[List[str]] = None,
        cis: Optional[List[str]] = None,
        risks: Optional[List[str]] = None,
        actor: Actor = Actor.USER,
    ) -> Dict[str, list]:
        """
        Replace the requirements, CIs and risks linked to a GitHub issue.

        Issues are not stored as entities; the issue number is the key.
        """
        if issue_number <= 0:
            raise ValidationError("Issue numbers must be positive.")

        if requirements is not None:
            requirement_ids = self._require_all("requirement", requirements)
            for req_id, row in self.project.links.items():
                if issue_number in row.issues and req_id not in requirement_ids:
                    row.issues = [n for n in row.issues if n != issue_number]
            for req_id in requirement_ids:
                row = self.project.links.setdefault(req_id, RequirementLinks())
                if issue_number not in row.issues:
                    row.issues.append(issue_number)
        if cis is not None:
            ci_ids = self._require_all("ci", cis)
            if ci_ids:
                self.project.issue_ci_links[issue_number] = ci_ids
            else:
                self.project.issue_ci_links.pop(issue_number, None)
        if risks is not None:
            risk_ids = self._require_all("risk", risks)
            if risk_ids:
                self.project.issue_risk_links[issue_number] = risk_ids
            else:
                self.project.issue_risk_links.pop(issue_number, None)

        linked = {
            "requirements": [
                req_id for req_id, row in self.project.links.items()
                if issue_number in row.issues
            ],
            "cis": list(self.project.issue_ci_links.get(issue_number, [])),
            "risks": list(self.project.issue_risk_links.get(issue_number, [])),
        }
        self._publish(
            str(issue_number),
            "issue",
            f"Updated links for issue #{issue_number}",
            {"issueNumber": issue_number, **linked},
            actor,
        )
        return linked

    def set_asset_links(
        self,
        asset_id: str,
        requirements: Optional[List[str]] = None,
        risks: Optional[List[str]] = None,
        cis: Optional[List[str]] = None,
        actor: Actor = Actor.USER,
    ) -> AssetLinks:
        """Replace the entities a process asset is linked to."""
        self._require("asset", asset_id)
        row = self.project.asset_links.setdefault(asset_id, AssetLinks())
        if requirements is not None:
            row.requirements = self._require_all("requirement", requirements)
        if risks is not None:
            row.risks = self._require_all("risk", risks)
        if cis is not None:
            row.cis = self._require_all("ci", cis)

        self._publish(
            asset_id,
            "asset",
            f"Updated links for process asset {asset_id}",
            {"after": row.model_dump()},
            actor,
        )
        return row

    def record_asset_usage(
        self,
        asset_id: str,
        generated_type: str,
        generated_id: str,
        actor: Actor = Actor.USER,
    ) -> AssetUsage:
        """
        Record that an entity was generated from a process asset.

        Increments the usage counter and appends to the generated items.
        The generated entity must exist.
        """
        self._require("asset", asset_id)
        self._require(generated_type, generated_id)

        now = utc_now()
        usage = self.project.asset_usage.setdefault(asset_id, AssetUsage(last_used=now))
        usage.usage_count += 1
        usage.last_used = now
        usage.generated_items.append(
            GeneratedItem(type=generated_type, id=generated_id, created_at=now)
        )

        self.event_bus.publish(ItemEvent(
            type=EventType.ASSET_USED,
            item_id=asset_id,
            item_type="asset",
            summary=f"Used process asset {asset_id} to create {generated_type} {generated_id}",
            actor=actor,
            details={
                "assetId": asset_id,
                "generatedItemType": generated_type,
                "generatedItemId": generated_id,
                "usageCount": usage.usage_count,
            },
        ))
        return usage

    # =========================================================================
    # Referential integrity
    # =========================================================================

    def remove_entity(self, entity_id: str) -> int:
        """
        Remove every reference to an entity from every link map.

        Ids are unique across entity types, so all maps are swept
        regardless of the entity's type.

        Returns:
            Number of references removed.
        """
        removed = 0

        if self.project.links.pop(entity_id, None) is not None:
            removed += 1
        for row in self.project.links.values():
            for attr in ("tests", "risks", "cis"):
                values = getattr(row, attr)
                if entity_id in values:
                    removed += values.count(entity_id)
                    setattr(row, attr, [v for v in values if v != entity_id])

        if self.project.risk_ci_links.pop(entity_id, None) is not None:
            removed += 1
        for link_map in (
            self.project.risk_ci_links,
            self.project.issue_ci_links,
            self.project.issue_risk_links,
        ):
            for key in list(link_map):
                values = link_map[key]
                if entity_id in values:
                    removed += values.count(entity_id)
                    link_map[key] = [v for v in values if v != entity_id]

        if self.project.asset_links.pop(entity_id, None) is not None:
            removed += 1
        for row in self.project.asset_links.values():
            for attr in ("requirements", "risks", "cis"):
                values = getattr(row, attr)
                if entity_id in values:
                    removed += values.count(entity_id)
                    setattr(row, attr, [v for v in values if v != entity_id])

        if self.project.asset_usage.pop(entity_id, None) is not None:
            removed += 1

        if removed:
            logger.debug("Removed %d references to %s", removed, entity_id)
        return removed

    def dangling_references(self) -> List[Tuple[str, str, str]]:
        """
        List link-map references to entities that do not exist.

        Returns:
            Tuples of (map name, key, missing id).
        """
        ids = {
            item_type: {item.id for item in self.project.collection(item_type)}
            for item_type in ("requirement", "test", "risk", "ci", "asset")
        }
        dangling = []

        for req_id, row in self.project.links.items():
            if req_id not in ids["requirement"]:
                dangling.append(("links", req_id, req_id))
            for attr, item_type in (("tests", "test"), ("risks", "risk"), ("cis", "ci")):
                for value in getattr(row, attr):
                    if value not in ids[item_type]:
                        dangling.append(("links", req_id, value))

        for risk_id, ci_ids in self.project.risk_ci_links.items():
            if risk_id not in ids["risk"]:
                dangling.append(("riskCiLinks", risk_id, risk_id))
            dangling.extend(
                ("riskCiLinks", risk_id, ci) for ci in ci_ids if ci not in ids["ci"]
            )
        for number, ci_ids in self.project.issue_ci_links.items():
            dangling.extend(
                ("issueCiLinks", str(number), ci) for ci in ci_ids if ci not in ids["ci"]
            )
        for number, risk_ids in self.project.issue_risk_links.items():
            dangling.extend(
                ("issueRiskLinks", str(number), r) for r in risk_ids if r not in ids["risk"]
            )

        for asset_id, row in self.project.asset_links.items():
            if asset_id not in ids["asset"]:
                dangling.append(("assetLinks", asset_id, asset_id))
            for attr, item_type in (("requirements", "requirement"), ("risks", "risk"), ("cis", "ci")):
                for value in getattr(row, attr):
                    if value not in ids[item_type]:
                        dangling.append(("assetLinks", asset_id, value))
        for asset_id in self.project.asset_usage:
            if asset_id not in ids["asset"]:
                dangling.append(("assetUsage", asset_id, asset_id))

        return dangling
