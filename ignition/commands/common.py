"""
Helpers shared by the command groups.
"""
import json
from typing import Any, List, Optional

import click

from ignition.exceptions import GitHubError, IgnitionError
from ignition.github.errors import remediation_for


def error_message(error: IgnitionError) -> str:
    """Error text for the user, with remediation for GitHub failures."""
    if isinstance(error, GitHubError):
        return f"{error.message}\n{remediation_for(error)}"
    return str(error)


def fail(error: IgnitionError) -> click.ClickException:
    return click.ClickException(error_message(error))


def parse_id_list(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma-separated id list. None means "unchanged", "" means "clear"."""
    if value is None:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_issue_list(value: Optional[str]) -> Optional[List[int]]:
    ids = parse_id_list(value)
    if ids is None:
        return None
    try:
        return [int(part.lstrip("#")) for part in ids]
    except ValueError:
        raise click.BadParameter(f"Issue numbers must be integers: {value}")


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))
