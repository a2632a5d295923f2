"""Commands that run forms: check values, print client specs, serve the API."""

import asyncio
import json
from pathlib import Path
from typing import IO

import click

from ruleforge.client.bridge import ClientValidationBridge
from ruleforge.config import Settings
from ruleforge.exceptions import ConfigurationError
from ruleforge.metadata.loader import FormLoader, build_model_class
from ruleforge.model import Model
from ruleforge.validation import (
    SCENARIO_DEFAULT,
    WIRE_MODEL_KEY,
    register_builtin_validators,
    register_canned_validators,
)


def _load_model(form_file: Path, scenario: str, settings: Settings) -> Model:
    """Build a model for the form in ``form_file`` (sibling files resolve ``extends``)."""
    register_builtin_validators()
    register_canned_validators()

    loader = FormLoader(form_file.parent)
    loader.load_all()
    definition = loader.get_form_by_source(form_file)
    if definition is None:
        raise ConfigurationError(f"No form definition found in {form_file}")

    model_class = build_model_class(definition, scenario_fallback=settings.scenario_fallback)
    return model_class(scenario=scenario)


@click.command()
@click.argument("form_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--data", "data_file", required=True, type=click.File("r"), help="JSON file with submitted values ('-' for stdin).")
@click.option("--scenario", default=SCENARIO_DEFAULT, show_default=True, help="Validation scenario.")
@click.option("--all", "show_all", is_flag=True, default=False, help="Show every message, not only the first per attribute.")
@click.pass_obj
def check(settings: Settings, form_file: Path, data_file: IO[str], scenario: str, show_all: bool):
    """Validate JSON data against a form definition."""
    try:
        data = json.load(data_file)
    except json.JSONDecodeError as e:
        click.echo(f"Error: invalid JSON data: {e}", err=True)
        raise SystemExit(2)

    try:
        model = _load_model(form_file, scenario, settings)
        model.load(data)
        valid = asyncio.run(model.validate())
    except ConfigurationError as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        raise SystemExit(2)

    if valid:
        click.echo(click.style("Valid.", fg="green", bold=True))
        return

    for key, messages in model.errors.items():
        name = WIRE_MODEL_KEY if key.is_model_level else key.attribute
        for message in messages if show_all else messages[:1]:
            click.echo(click.style(f"{name}: {message}", fg="red"))
    raise SystemExit(1)


@click.command()
@click.argument("form_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--scenario", default=SCENARIO_DEFAULT, show_default=True, help="Validation scenario.")
@click.pass_obj
def client(settings: Settings, form_file: Path, scenario: str):
    """Print the client-side validation descriptor of a form as JSON."""
    try:
        model = _load_model(form_file, scenario, settings)
        spec = ClientValidationBridge().build(model)
    except ConfigurationError as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        raise SystemExit(2)

    click.echo(json.dumps(spec.to_dict(), indent=2, default=str))


@click.command()
@click.option("--host", default=None, help="Bind host (default: RULEFORGE_HOST).")
@click.option("--port", default=None, type=int, help="Bind port (default: RULEFORGE_PORT).")
@click.pass_obj
def serve(settings: Settings, host: str | None, port: int | None):
    """Run the validation API with uvicorn."""
    import uvicorn

    from ruleforge.api.app import create_app

    uvicorn.run(
        create_app(settings),
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )
