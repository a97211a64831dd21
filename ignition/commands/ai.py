"""
AI assistance commands for Ignition.
"""
import click

from ignition.commands.common import fail
from ignition.core import IgnitionCore
from ignition.exceptions import IgnitionError


@click.group()
def ai():
    """Generate and improve content with AI."""
    pass


@ai.command(name="improve")
@click.argument("text")
def improve(text: str):
    """Rewrite a piece of text more clearly."""
    with IgnitionCore() as core:
        try:
            click.echo(core.improve_content(text))
        except IgnitionError as e:
            raise fail(e)


@ai.command(name="suggest-req")
@click.option("--apply", is_flag=True, help="Add the suggested requirement to the project.")
def suggest_requirement(apply: bool):
    """Suggest the next requirement."""
    with IgnitionCore() as core:
        try:
            suggestion = core.suggest_requirement(apply)
        except IgnitionError as e:
            raise fail(e)
    click.echo(f"{suggestion['suggested_id']}: {suggestion['suggested_description']}")
    if apply:
        click.echo(f"Created requirement {suggestion['created_id']}.")


@ai.command(name="suggest-tests")
@click.argument("requirement_id")
@click.option("--apply", is_flag=True, help="Add the suggested tests and link them.")
def suggest_tests(requirement_id: str, apply: bool):
    """Suggest test cases for a requirement."""
    with IgnitionCore() as core:
        try:
            suggestions = core.suggest_test_cases(requirement_id, apply)
        except IgnitionError as e:
            raise fail(e)
    for index, suggestion in enumerate(suggestions, 1):
        created = f" -> {suggestion['created_id']}" if "created_id" in suggestion else ""
        click.echo(f"{index}. {suggestion['description']}{created}")
        if suggestion.get("gherkin"):
            for line in suggestion["gherkin"].splitlines():
                click.echo(f"     {line}")


@ai.command(name="section")
@click.argument("doc_id")
@click.argument("section_id")
@click.option("--apply", is_flag=True, help="Write the generated text into the section.")
def section(doc_id: str, section_id: str, apply: bool):
    """Draft a document section."""
    with IgnitionCore() as core:
        try:
            text = core.generate_section(doc_id, section_id, apply)
        except IgnitionError as e:
            raise fail(e)
    click.echo(text)
    if apply:
        click.echo(f"\nUpdated section {section_id} of {doc_id}.")
