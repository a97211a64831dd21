"""
Status command for Ignition.

Displays the dashboard metrics and, optionally, the traceability matrix.
"""

import click

from ignition.commands.common import echo_json
from ignition.constants import STATUS_HEADER_WIDTH
from ignition.core import IgnitionCore
from ignition.models.entities import RiskLevel


def display_heat_map(heat_map) -> None:
    """Display risk counts by probability (rows) and impact (columns)."""
    levels = [level.value for level in RiskLevel]
    click.echo("\nRisk heat map (probability x impact):")
    click.echo("  " + " " * 8 + "".join(f"{lvl:>8}" for lvl in levels))
    for probability in reversed(levels):
        row = heat_map.get(probability, {})
        click.echo(f"  {probability:<8}" + "".join(f"{row.get(i, 0):>8}" for i in levels))


def display_traceability(rows) -> None:
    click.echo("\nTraceability matrix:")
    if not rows:
        click.echo("  No requirements.")
        return
    for row in rows:
        click.echo(f"  {row.requirement_id} [{row.status}] {row.description}")
        click.echo(f"    tests: {', '.join(row.tests) or '-'}")
        click.echo(f"    cis: {', '.join(row.cis) or '-'}")
        click.echo(f"    risks: {', '.join(row.risks) or '-'}")
        click.echo(f"    issues: {', '.join(f'#{n}' for n in row.issues) or '-'}")


def display_dangling(dangling) -> None:
    if not dangling:
        click.echo("\nAll links point to existing items.")
        return
    click.echo(f"\n{len(dangling)} dangling link(s):")
    for map_name, key, missing in dangling:
        click.echo(f"  {map_name}[{key}] -> {missing}")


@click.command()
@click.option("--rtm", is_flag=True, help="Include the requirements traceability matrix.")
@click.option("--check", is_flag=True, help="Also report links to items that no longer exist.")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
def status(rtm: bool, check: bool, json_output: bool):
    """Display project health, coverage and risk metrics."""
    with IgnitionCore() as core:
        metrics = core.metrics()
        rows = core.traceability() if rtm else []
        dangling = core.dangling_references() if check else []
        project_name = core.project.project_name

    if json_output:
        data = {"project": project_name, "metrics": metrics.model_dump()}
        if rtm:
            data["traceability"] = [row.model_dump() for row in rows]
        if check:
            data["danglingReferences"] = [list(ref) for ref in dangling]
        echo_json(data)
        return

    click.echo("=" * STATUS_HEADER_WIDTH)
    click.echo(f"Project: {project_name}")
    click.echo("=" * STATUS_HEADER_WIDTH)
    click.echo(f"Project health:          {metrics.project_health}%")
    click.echo(f"Document completeness:   {metrics.doc_completeness}%")
    click.echo(f"Requirement test cover:  {metrics.req_test_coverage}%")
    click.echo(f"Requirement CI cover:    {metrics.req_ci_coverage}%")
    click.echo(f"Test pass rate:          {metrics.test_pass_rate}%")
    click.echo(f"Open risks:              {metrics.open_risks}")
    click.echo("-" * STATUS_HEADER_WIDTH)
    click.echo(
        f"Requirements: {metrics.total_requirements}  Tests: {metrics.total_test_cases}  "
        f"Risks: {metrics.total_risks}  CIs: {metrics.total_configuration_items}  "
        f"Assets: {metrics.total_process_assets}  Audit entries: {metrics.total_audit_entries}"
    )
    display_heat_map(metrics.risk_heat_map)
    if rtm:
        display_traceability(rows)
    if check:
        display_dangling(dangling)
