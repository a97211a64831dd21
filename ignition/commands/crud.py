"""
Unified CRUD commands for Ignition using IgnitionCore.

Handles requirements, test cases, risks, configuration items and process
assets through a single interface selected with -t/--type.
"""
from typing import Any, Dict, Optional

import click

from ignition.commands.common import echo_json, fail
from ignition.core import IgnitionCore
from ignition.exceptions import IgnitionError
from ignition.managers.item_manager import ITEM_TYPE_NAMES
from ignition.models.entities import (
    AssetType,
    CIStatus,
    CIType,
    Priority,
    RequirementStatus,
    RiskLevel,
    RiskStatus,
    TestStatus,
)

ITEM_TYPES = list(ITEM_TYPE_NAMES)

_STATUS_CHOICES = sorted(
    {s.value for enum in (RequirementStatus, TestStatus, RiskStatus, CIStatus) for s in enum}
)


@click.group()
def crud():
    """Manage requirements, test cases, risks, configuration items and process assets."""
    pass


def _item_options(func):
    """Options shared by add and edit."""
    options = [
        click.option("-d", "--description", help="Description."),
        click.option("-n", "--name", help="Name (configuration items and process assets)."),
        click.option("-s", "--status", type=click.Choice(_STATUS_CHOICES), help="Status."),
        click.option("-p", "--priority", type=click.Choice([p.value for p in Priority]),
                     help="Requirement priority."),
        click.option("--probability", type=click.Choice([r.value for r in RiskLevel]),
                     help="Risk probability."),
        click.option("--impact", type=click.Choice([r.value for r in RiskLevel]),
                     help="Risk impact."),
        click.option("--gherkin", help="Gherkin script for a test case."),
        click.option("--ci-type", type=click.Choice([c.value for c in CIType]),
                     help="Configuration item type."),
        click.option("--version", "ci_version", help="Configuration item version."),
        click.option("--asset-type", type=click.Choice([a.value for a in AssetType]),
                     help="Process asset type."),
        click.option("--content", help="Process asset content."),
        click.option("--tags", help="Comma-separated process asset tags."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _collect_fields(item_type: Optional[str], **opts: Any) -> Dict[str, Any]:
    """Map command options onto model fields."""
    fields: Dict[str, Any] = {
        "description": opts.get("description"),
        "name": opts.get("name"),
        "status": opts.get("status"),
        "priority": opts.get("priority"),
        "probability": opts.get("probability"),
        "impact": opts.get("impact"),
        "gherkin": opts.get("gherkin"),
        "version": opts.get("ci_version"),
        "content": opts.get("content"),
    }
    if opts.get("tags") is not None:
        fields["tags"] = [t.strip() for t in opts["tags"].split(",") if t.strip()]
    if item_type == "ci" or (item_type is None and opts.get("ci_type")):
        fields["type"] = opts.get("ci_type")
    if item_type == "asset" or (item_type is None and opts.get("asset_type")):
        fields["type"] = opts.get("asset_type")
    return {k: v for k, v in fields.items() if v is not None}


def _display_item(item) -> None:
    """Display item details in human-readable format."""
    data = item.to_dict()
    click.echo(f"{ITEM_TYPE_NAMES[item.item_type].capitalize()} {item.id}")
    for key, value in data.items():
        if key == "id":
            continue
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        click.echo(f"  {key}: {value}")


@crud.command(name="add")
@click.option("-t", "--type", "item_type", type=click.Choice(ITEM_TYPES), required=True,
              help="Type of item to add.")
@click.option("--id", "item_id", help="Id to use instead of a generated one.")
@_item_options
def add(item_type: str, item_id: Optional[str], **opts):
    """Add a new item."""
    fields = _collect_fields(item_type, **opts)
    if item_id:
        fields["id"] = item_id
    with IgnitionCore() as core:
        try:
            item = core.add_item(item_type, fields)
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Created {ITEM_TYPE_NAMES[item_type]} {item.id}: {item.label}")


@crud.command(name="show")
@click.argument("item_id")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
def show(item_id: str, json_output: bool):
    """Show details for an item."""
    with IgnitionCore() as core:
        try:
            item = core.get_item(item_id)
        except IgnitionError as e:
            raise fail(e)
        if json_output:
            echo_json(item.to_dict())
            return
        _display_item(item)
        if item.item_type == "requirement":
            links = core.project.links.get(item.id)
            if links:
                click.echo(f"  tests: {', '.join(links.tests) or '-'}")
                click.echo(f"  cis: {', '.join(links.cis) or '-'}")
                click.echo(f"  risks: {', '.join(links.risks) or '-'}")
                click.echo(f"  issues: {', '.join(f'#{n}' for n in links.issues) or '-'}")


@crud.command(name="edit")
@click.argument("item_id")
@_item_options
def edit(item_id: str, **opts):
    """Edit an existing item."""
    with IgnitionCore() as core:
        try:
            existing = core.get_item(item_id)
            changes = _collect_fields(existing.item_type, **opts)
            item = core.update_item(item_id, changes)
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Updated {ITEM_TYPE_NAMES[item.item_type]} {item.id}.")


@crud.command(name="delete")
@click.argument("item_id")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
def delete(item_id: str, yes: bool):
    """Delete an item and every link that references it."""
    with IgnitionCore() as core:
        try:
            item = core.get_item(item_id)
            if not yes:
                click.confirm(
                    f"Delete {ITEM_TYPE_NAMES[item.item_type]} {item.id} ({item.label})?",
                    abort=True,
                )
            core.delete_item(item_id)
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Deleted {ITEM_TYPE_NAMES[item.item_type]} {item.id}.")


@crud.command(name="list")
@click.option("-t", "--type", "item_type", type=click.Choice(ITEM_TYPES), required=True,
              help="Type of item to list.")
@click.option("-s", "--status", help="Only items with this status.")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
def list_items(item_type: str, status: Optional[str], json_output: bool):
    """List items of one type."""
    with IgnitionCore() as core:
        try:
            items = core.list_items(item_type, status)
        except IgnitionError as e:
            raise fail(e)
    if json_output:
        echo_json([item.to_dict() for item in items])
        return
    if not items:
        click.echo(f"No {ITEM_TYPE_NAMES[item_type]}s found.")
        return
    for item in items:
        status_value = getattr(getattr(item, "status", None), "value", "")
        suffix = f" [{status_value}]" if status_value else ""
        click.echo(f"{item.id}{suffix} {item.label}")
