"""
GitHub commands for Ignition.

Load and save the project file, browse issues and pull requests, run the
AI-assisted repository workflows and import commit history.
"""
from typing import Optional

import click

from ignition.commands.common import echo_json, fail
from ignition.core import IgnitionCore
from ignition.exceptions import IgnitionError
from ignition.utils import format_timestamp, parse_date


@click.group()
def github():
    """Synchronize the project with its GitHub repository."""
    pass


@github.command(name="connect")
def connect():
    """Test the GitHub connection and show token permissions."""
    with IgnitionCore() as core:
        try:
            report = core.test_connection()
        except IgnitionError as e:
            raise fail(e)
    click.echo(report.message)
    for permission, granted in report.permissions.items():
        click.echo(f"  {permission}: {'yes' if granted else 'no'}")
    if not report.success:
        raise click.ClickException("Connection test failed.")


@github.command(name="load")
def load():
    """Replace the local project with the project file from GitHub."""
    with IgnitionCore() as core:
        try:
            project = core.github_load()
        except IgnitionError as e:
            raise fail(e)
        click.echo(
            f'Loaded "{project.project_name}" ({len(project.requirements)} requirements) '
            f"from {core.config.file_path}."
        )


@github.command(name="save")
@click.option("-m", "--message", help="Commit message.")
def save(message: Optional[str]):
    """Commit the local project to GitHub."""
    with IgnitionCore() as core:
        try:
            result = core.github_save(message)
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Saved {result.path} ({result.commit_sha[:7]}).")


@github.command(name="issues")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
def issues(json_output: bool):
    """List open issues."""
    with IgnitionCore() as core:
        try:
            items = core.fetch_issues()
        except IgnitionError as e:
            raise fail(e)
    if json_output:
        echo_json([item.model_dump(mode="json") for item in items])
        return
    if not items:
        click.echo("No open issues.")
    for item in items:
        labels = f" [{', '.join(item.labels)}]" if item.labels else ""
        click.echo(f"#{item.number} {item.title}{labels}")


@github.command(name="prs")
@click.option("-j", "--json", "json_output", is_flag=True, help="Output in JSON format.")
def pull_requests(json_output: bool):
    """List open pull requests."""
    with IgnitionCore() as core:
        try:
            prs = core.fetch_pull_requests()
        except IgnitionError as e:
            raise fail(e)
    if json_output:
        echo_json([pr.model_dump(mode="json") for pr in prs])
        return
    if not prs:
        click.echo("No open pull requests.")
    for pr in prs:
        click.echo(f"#{pr.number} {pr.title} ({pr.user_login})")


@github.command(name="pr-files")
@click.argument("number", type=int)
def pr_files(number: int):
    """List the files changed by a pull request."""
    with IgnitionCore() as core:
        try:
            files = core.pull_request_files(number)
        except IgnitionError as e:
            raise fail(e)
    for f in files:
        click.echo(f"{f.status:<10} +{f.additions} -{f.deletions} {f.filename}")


@github.command(name="analyze")
@click.argument("number", type=int)
@click.option("--comment", is_flag=True, help="Post the summary as a pull request comment.")
def analyze(number: int, comment: bool):
    """Summarize a pull request with AI and find the entities it touches."""
    with IgnitionCore() as core:
        try:
            result = core.analyze_pull_request(number)
            click.echo(result.summary)
            click.echo(f"\nSuggested commit message: {result.suggested_commit_message}")
            for label, items in (
                ("Requirements", result.linked_requirements),
                ("Configuration items", result.linked_cis),
                ("Risks", result.linked_risks),
            ):
                if items:
                    click.echo(f"{label}: {', '.join(item.id for item in items)}")
            if comment:
                core.post_pr_comment(number, result.summary)
                click.echo(f"Posted comment on #{number}.")
        except IgnitionError as e:
            raise fail(e)


@github.command(name="comment")
@click.argument("number", type=int)
@click.argument("body")
def comment(number: int, body: str):
    """Post a comment on a pull request."""
    with IgnitionCore() as core:
        try:
            core.post_pr_comment(number, body)
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Posted comment on #{number}.")


@github.command(name="scaffold")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
def scaffold(yes: bool):
    """Generate starter repository files with AI and commit them."""
    if not yes:
        click.confirm("Generate and commit starter files to the repository?", abort=True)
    with IgnitionCore() as core:
        try:
            results = core.scaffold_repository()
        except IgnitionError as e:
            raise fail(e)
    for path, result in sorted(results.items()):
        click.echo(f"Committed {path} ({result.commit_sha[:7]})")


@github.command(name="workflow")
def workflow():
    """Generate the test workflow with AI and commit it."""
    with IgnitionCore() as core:
        try:
            results = core.generate_test_workflow()
        except IgnitionError as e:
            raise fail(e)
    for path, result in sorted(results.items()):
        click.echo(f"Committed {path} ({result.commit_sha[:7]})")


@github.command(name="commits")
@click.option("--since", help="Only commits after this date (YYYY-MM-DD or ISO 8601).")
@click.option("-l", "--limit", type=int, help="Maximum number of commits.")
def commits(since: Optional[str], limit: Optional[int]):
    """Import recent repository commits into the audit log."""
    since_date = None
    if since:
        since_date = parse_date(since)
        if since_date is None:
            raise click.BadParameter(f"Unrecognized date: {since}", param_hint="--since")
    with IgnitionCore() as core:
        try:
            entries = core.import_commits(since_date, limit)
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"Imported {len(entries)} new commits.")
    for entry in entries:
        click.echo(f"  {format_timestamp(entry.timestamp)} {entry.summary}")
