"""
Audit commands for Ignition.

View the local audit trail and mirror it to audit-log.json on GitHub.
"""
from typing import Optional

import click

from ignition.commands.common import echo_json, fail
from ignition.core import IgnitionCore
from ignition.exceptions import IgnitionError
from ignition.models.base import Actor
from ignition.utils import format_timestamp


@click.group()
def audit():
    """View and synchronize the audit log."""
    pass


@audit.command(name="list")
@click.option("-e", "--event", "event_type", help="Only entries with this event type.")
@click.option("-a", "--actor", type=click.Choice([a.value for a in Actor], case_sensitive=False),
              help="Only entries by this actor.")
@click.option("-l", "--limit", type=int, default=20, show_default=True,
              help="Maximum number of entries.")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
def list_entries(event_type: Optional[str], actor: Optional[str], limit: int, json_output: bool):
    """List audit entries, newest first."""
    with IgnitionCore() as core:
        entries = core.audit_entries(event_type, actor, limit)
    if json_output:
        echo_json([entry.to_dict() for entry in entries])
        return
    if not entries:
        click.echo("No audit entries.")
        return
    for entry in entries:
        click.echo(
            f"{format_timestamp(entry.timestamp)} [{entry.actor.value}] "
            f"{entry.event_type}: {entry.summary}"
        )


@audit.command(name="pull")
def pull():
    """Merge the GitHub audit log into the local one."""
    with IgnitionCore() as core:
        try:
            added = core.audit_pull()
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Pulled {added} new audit entries.")


@audit.command(name="push")
def push():
    """Merge the local audit log into audit-log.json on GitHub."""
    with IgnitionCore() as core:
        try:
            result = core.audit_push()
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Pushed audit log to {result.path} ({result.commit_sha[:7]}).")


@audit.command(name="init")
def init_log():
    """Create audit-log.json on GitHub if it does not exist."""
    with IgnitionCore() as core:
        try:
            result = core.audit_init()
        except IgnitionError as e:
            raise fail(e)
    if result is None:
        click.echo("Audit log already exists.")
    else:
        click.echo(f"Created {result.path} ({result.commit_sha[:7]}).")
