"""Form definition CLI commands - validate and list."""

from pathlib import Path

import click

from ruleforge.config import Settings
from ruleforge.exceptions import ConfigurationError
from ruleforge.metadata.loader import FormLoader
from ruleforge.metadata.validator import validate_form_file, validate_forms_dir


@click.group()
def forms():
    """Form definition commands."""
    pass


@forms.command()
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat warnings as errors.",
)
@click.option(
    "--path",
    "target_path",
    default=None,
    type=click.Path(exists=True, path_type=Path),
    help="Validate a single YAML file instead of the whole forms directory.",
)
@click.pass_obj
def validate(settings: Settings, strict: bool, target_path: Path | None):
    """Validate form YAML files against the JSON Schema."""
    forms_path = settings.forms_path

    # ── Schema (JSON Schema) validation ─────────────────────────────────────
    if target_path is not None:
        schema_issues = validate_form_file(target_path)
        if strict:
            for issue in schema_issues:
                issue.severity = "error"
    else:
        if not forms_path.exists():
            click.echo(f"Error: Forms directory not found at {forms_path}", err=True)
            raise SystemExit(1)
        schema_issues = validate_forms_dir(forms_path, strict=strict)

    # Report schema issues
    errors = [i for i in schema_issues if i.severity == "error"]
    warnings = [i for i in schema_issues if i.severity == "warning"]

    for issue in schema_issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    if errors:
        click.echo(
            click.style(
                f"\n{len(errors)} schema error(s) found"
                + (f", {len(warnings)} warning(s)" if warnings else ""),
                fg="red",
                bold=True,
            )
        )
        raise SystemExit(1)

    if warnings:
        click.echo(
            click.style(f"{len(warnings)} warning(s) found.", fg="yellow")
        )

    # ── Semantic (loader) validation ─────────────────────────────────────────
    # Only runs when validating the full directory (target_path is None)
    if target_path is None:
        try:
            loader = FormLoader(forms_path)
            loader.load_all()
        except ConfigurationError as e:
            click.echo(click.style(f"\nSemantic validation failed: {e}", fg="red"), err=True)
            raise SystemExit(1)

        names = loader.list_forms()
        click.echo(f"\nLoaded {len(names)} forms:")
        for name in names:
            definition = loader.get_form(name)
            click.echo(
                f"  ✓ {name} ({len(definition.attributes)} attributes, "
                f"{len(definition.rules)} rules)"
            )

    click.echo(click.style("\nAll forms are valid.", fg="green", bold=True))


@forms.command("list")
@click.pass_obj
def list_cmd(settings: Settings):
    """List forms and their attributes."""
    loader = FormLoader(settings.forms_path)
    loader.load_all()

    if not loader.list_forms():
        click.echo("No forms found.")
        return

    for name in loader.list_forms():
        definition = loader.get_form(name)
        parent = f" (extends {definition.extends})" if definition.extends else ""
        click.echo(f"{name}{parent}: {', '.join(definition.attribute_names())}")
