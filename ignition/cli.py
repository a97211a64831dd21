"""
Command-line interface for Ignition.

Uses IgnitionCore and the .ignition/ working copy for every command.
"""
import logging

import click

from ignition.commands.ai import ai
from ignition.commands.audit import audit
from ignition.commands.config import config
from ignition.commands.crud import crud
from ignition.commands.github import github
from ignition.commands.init import init
from ignition.commands.link import link
from ignition.commands.project import project
from ignition.commands.status import status


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose):
    """Requirements, risks, tests and CI tracking backed by a GitHub repository."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


cli.add_command(init)
cli.add_command(crud)
cli.add_command(link)
cli.add_command(status)
cli.add_command(audit)
cli.add_command(github)
cli.add_command(ai)
cli.add_command(project)
cli.add_command(config)


if __name__ == '__main__':
    cli()
