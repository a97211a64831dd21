"""
Config command group for Ignition.

Commands for viewing and editing .ignition/config.json.
"""
import click
from pydantic import ValidationError

from ignition.core import IgnitionCore
from ignition.exceptions import IgnitionError
from ignition.github.settings import is_safe_path, parse_repo_url
from ignition.commands.common import fail
from ignition.models.files import ConfigFile

SECRET_KEYS = {"github_token", "gemini_api_key"}


def _mask(key: str, value) -> str:
    if key in SECRET_KEYS and value:
        return f"{str(value)[:4]}****"
    return "" if value is None else str(value)


@click.group()
def config():
    """View and edit project configuration.

    Configuration is stored in .ignition/config.json. Secrets in the
    environment (IGNITION_GITHUB_TOKEN, GITHUB_TOKEN, GEMINI_API_KEY)
    take precedence over the values stored here.
    """
    pass


@config.command(name="show")
def show_config():
    """Show current configuration."""
    with IgnitionCore() as core:
        for key, value in core.config.model_dump().items():
            click.echo(f"{key}: {_mask(key, value)}")


@config.command(name="get")
@click.argument("key")
def get_config(key: str):
    """Get a configuration value."""
    if key not in ConfigFile.model_fields:
        raise click.ClickException(f"Unknown configuration key: {key}")
    with IgnitionCore() as core:
        click.echo(_mask(key, getattr(core.config, key)))


@config.command(name="set")
@click.argument("key")
@click.argument("value")
def set_config(key: str, value: str):
    """Set a configuration value."""
    if key not in ConfigFile.model_fields or key == "schema_version":
        raise click.ClickException(f"Unknown configuration key: {key}")
    with IgnitionCore() as core:
        data = core.config.model_dump()
        data[key] = value
        try:
            updated = ConfigFile.model_validate(data)
        except ValidationError as e:
            raise click.ClickException(f"Invalid value for {key}: {e.errors()[0]['msg']}")
        if key == "repo_url" and value and parse_repo_url(value) is None:
            raise click.ClickException("Repository URL must be a valid github.com repository URL.")
        if key in ("file_path", "audit_log_path") and not is_safe_path(value):
            raise click.ClickException("File path must be relative and must not contain '..'.")
        core.config = updated
        try:
            core.storage.save_config(updated)
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Set {key} = {_mask(key, getattr(updated, key))}")
