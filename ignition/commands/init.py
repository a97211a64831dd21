"""
Init command for Ignition.

Creates the .ignition/ working copy and records the GitHub repository settings.
"""
from typing import Optional

import click

from ignition.commands.common import fail
from ignition.constants import DEFAULT_PROJECT_FILE_PATH
from ignition.core import IgnitionCore
from ignition.exceptions import IgnitionError
from ignition.github.settings import is_safe_path, parse_repo_url


@click.command()
@click.option("-n", "--name", help="Project name.")
@click.option("--repo-url", help="GitHub repository URL, e.g. https://github.com/owner/repo.")
@click.option("--file-path", default=DEFAULT_PROJECT_FILE_PATH, show_default=True,
              help="Path of the project file in the repository.")
@click.option("--force", is_flag=True, help="Re-initialize an existing working copy.")
def init(name: Optional[str], repo_url: Optional[str], file_path: str, force: bool):
    """Initializes a new Ignition project."""
    if repo_url and parse_repo_url(repo_url) is None:
        raise click.BadParameter(
            "Expected https://github.com/<owner>/<repo>.", param_hint="--repo-url"
        )
    if not is_safe_path(file_path):
        raise click.BadParameter("Path must be relative and inside the repository.",
                                 param_hint="--file-path")

    with IgnitionCore() as core:
        if core.storage.is_initialized() and not force:
            raise click.ClickException(
                f"Ignition is already initialized in {core.storage.ignition_dir}. "
                "Use --force to re-initialize."
            )
        core.config.repo_url = repo_url or core.config.repo_url
        core.config.file_path = file_path
        try:
            core.storage.save_config(core.config)
            if name:
                core.rename_project(name)
            else:
                core.save()
        except IgnitionError as e:
            raise fail(e)
        click.echo(f"Ignition project initialized in {core.storage.ignition_dir.resolve()}")
        if not core.config.repo_url:
            click.echo("No repository configured. Run 'ignition config set repo_url <url>' to add one.")
