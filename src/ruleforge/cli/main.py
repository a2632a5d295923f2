"""RuleForge CLI entry point."""

import logging

import click

from ruleforge.config import Settings


@click.group()
@click.option(
    "--log-level",
    default=None,
    help="Logging level (overrides RULEFORGE_LOG_LEVEL).",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None):
    """RuleForge - declarative attribute validation CLI."""
    settings = Settings.from_env()
    if log_level:
        settings.log_level = log_level.upper()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = settings


# Register subcommands
from ruleforge.cli.forms_cmd import forms  # noqa: E402
from ruleforge.cli.run_cmd import check, client, serve  # noqa: E402

cli.add_command(forms)
cli.add_command(check)
cli.add_command(client)
cli.add_command(serve)
