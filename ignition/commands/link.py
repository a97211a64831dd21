"""
Link commands for Ignition.

Each command replaces the given link lists. An omitted option leaves that
list unchanged; an empty value ("") clears it.
"""
from typing import Optional

import click

from ignition.commands.common import echo_json, fail, parse_id_list, parse_issue_list
from ignition.core import IgnitionCore
from ignition.exceptions import IgnitionError

GENERATED_TYPES = ["requirement", "test", "risk", "ci"]


@click.group()
def link():
    """Link requirements, tests, risks, configuration items, issues and assets."""
    pass


def _fmt(values) -> str:
    return ", ".join(str(v) for v in values) or "-"


@link.command(name="req")
@click.argument("requirement_id")
@click.option("--tests", help="Comma-separated test case ids.")
@click.option("--cis", help="Comma-separated configuration item ids.")
@click.option("--issues", help="Comma-separated GitHub issue numbers.")
def link_req(requirement_id: str, tests: Optional[str], cis: Optional[str], issues: Optional[str]):
    """Set the tests, configuration items and issues of a requirement."""
    with IgnitionCore() as core:
        try:
            row = core.link_requirement(
                requirement_id, parse_id_list(tests), parse_id_list(cis), parse_issue_list(issues)
            )
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Updated links for {requirement_id}")
    click.echo(f"  tests: {_fmt(row.tests)}")
    click.echo(f"  cis: {_fmt(row.cis)}")
    click.echo(f"  issues: {_fmt('#' + str(n) for n in row.issues)}")


@link.command(name="risk")
@click.argument("risk_id")
@click.option("--requirements", help="Comma-separated requirement ids.")
@click.option("--cis", help="Comma-separated configuration item ids.")
def link_risk(risk_id: str, requirements: Optional[str], cis: Optional[str]):
    """Set the requirements and configuration items a risk affects."""
    with IgnitionCore() as core:
        try:
            reqs, linked_cis = core.link_risk(risk_id, parse_id_list(requirements), parse_id_list(cis))
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Updated links for {risk_id}")
    click.echo(f"  requirements: {_fmt(reqs)}")
    click.echo(f"  cis: {_fmt(linked_cis)}")


@link.command(name="issue")
@click.argument("issue_number", type=int)
@click.option("--requirements", help="Comma-separated requirement ids.")
@click.option("--cis", help="Comma-separated configuration item ids.")
@click.option("--risks", help="Comma-separated risk ids.")
def link_issue(issue_number: int, requirements: Optional[str], cis: Optional[str],
               risks: Optional[str]):
    """Set the requirements, configuration items and risks of a GitHub issue."""
    with IgnitionCore() as core:
        try:
            linked = core.link_issue(
                issue_number, parse_id_list(requirements), parse_id_list(cis), parse_id_list(risks)
            )
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Updated links for issue #{issue_number}")
    for kind, ids in linked.items():
        click.echo(f"  {kind}: {_fmt(ids)}")


@link.command(name="asset")
@click.argument("asset_id")
@click.option("--requirements", help="Comma-separated requirement ids.")
@click.option("--risks", help="Comma-separated risk ids.")
@click.option("--cis", help="Comma-separated configuration item ids.")
def link_asset(asset_id: str, requirements: Optional[str], risks: Optional[str], cis: Optional[str]):
    """Set the entities a process asset applies to."""
    with IgnitionCore() as core:
        try:
            row = core.link_asset(
                asset_id, parse_id_list(requirements), parse_id_list(risks), parse_id_list(cis)
            )
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Updated links for {asset_id}")
    click.echo(f"  requirements: {_fmt(row.requirements)}")
    click.echo(f"  risks: {_fmt(row.risks)}")
    click.echo(f"  cis: {_fmt(row.cis)}")


@link.command(name="use-asset")
@click.argument("asset_id")
@click.argument("generated_id")
@click.option("-t", "--type", "generated_type", type=click.Choice(GENERATED_TYPES),
              required=True, help="Type of the generated item.")
def use_asset(asset_id: str, generated_id: str, generated_type: str):
    """Record that a process asset was used to generate an item."""
    with IgnitionCore() as core:
        try:
            core.use_asset(asset_id, generated_type, generated_id)
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Recorded use of {asset_id} for {generated_type} {generated_id}")


@link.command(name="show")
@click.argument("requirement_id")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
def show_links(requirement_id: str, json_output: bool):
    """Show the links of a requirement."""
    with IgnitionCore() as core:
        try:
            row = core.requirement_links(requirement_id)
        except IgnitionError as e:
            raise fail(e)
    if json_output:
        echo_json(row.to_dict())
        return
    click.echo(f"Links for {requirement_id}")
    click.echo(f"  tests: {_fmt(row.tests)}")
    click.echo(f"  cis: {_fmt(row.cis)}")
    click.echo(f"  risks: {_fmt(row.risks)}")
    click.echo(f"  issues: {_fmt('#' + str(n) for n in row.issues)}")
