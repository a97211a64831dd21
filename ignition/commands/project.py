"""
Project commands for Ignition.
"""
from pathlib import Path

import click

from ignition.commands.common import fail
from ignition.core import IgnitionCore
from ignition.exceptions import IgnitionError


@click.group()
def project():
    """Rename, export, import or reset the project."""
    pass


@project.command(name="rename")
@click.argument("name")
def rename(name: str):
    """Rename the project."""
    with IgnitionCore() as core:
        try:
            core.rename_project(name)
        except IgnitionError as e:
            raise fail(e)
    click.echo(f'Project renamed to "{name.strip()}".')


@project.command(name="export")
@click.argument("destination", type=click.Path(dir_okay=False, path_type=Path))
def export(destination: Path):
    """Write the project to a JSON file."""
    with IgnitionCore() as core:
        try:
            path = core.export_project(destination)
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Exported project to {path}.")


@project.command(name="import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
def import_(source: Path, yes: bool):
    """Replace the local project with a JSON file."""
    if not yes:
        click.confirm("This replaces the local project. Continue?", abort=True)
    with IgnitionCore() as core:
        try:
            data = core.import_project(source)
        except IgnitionError as e:
            raise fail(e)
    click.echo(f'Imported "{data.project_name}" ({len(data.requirements)} requirements).')


@project.command(name="reset")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
def reset(yes: bool):
    """Discard the local project and start over."""
    if not yes:
        click.confirm("This discards every local item and link. Continue?", abort=True)
    with IgnitionCore() as core:
        core.reset_project()
    click.echo("Project reset.")
