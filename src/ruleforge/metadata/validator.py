"""
metadata/validator.py - JSON Schema validation for RuleForge form YAML files.

Validates form definition files against ``schemas/form.schema.json`` and
reports a few cross-reference problems the schema cannot express (rules or
scenarios naming undeclared attributes).

Usage:
    from ruleforge.metadata.validator import validate_forms_dir, validate_form_file

    issues = validate_forms_dir(Path("forms"))
    for issue in issues:
        print(issue)

PyYAML quirk: the bare key ``on:`` is parsed as boolean ``True``, not the string
``"on"``.  We preprocess loaded dicts to rename that key before schema validation.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Public data types
# ---------------------------------------------------------------------------

_SCHEMAS_DIR = Path(__file__).parent / "schemas"

FORM_SCHEMA = "form.schema.json"


@dataclass
class FormIssue:
    """A single validation finding for a form YAML file."""

    file: Path
    message: str
    path: str = ""          # location within the document, e.g. "rules[2]/type"
    severity: str = "error" # "error" | "warning"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[{self.severity.upper()}] {self.file}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_schema(name: str) -> dict[str, Any]:
    schema_path = _SCHEMAS_DIR / name
    with schema_path.open() as fh:
        return json.load(fh)


def _load_registry() -> Registry:
    """Build a jsonschema Registry containing all RuleForge schemas."""
    resources = []
    for name in ("_defs.schema.json", FORM_SCHEMA):
        schema = _load_schema(name)
        resources.append(
            (schema["$id"], Resource(contents=schema, specification=DRAFT202012))
        )
    return Registry().with_resources(resources)


def preprocess_on_key(obj: Any) -> Any:
    """
    Recursively rename the boolean key ``True`` → ``"on"`` in a parsed YAML dict.

    PyYAML parses the bare key ``on:`` as boolean ``True`` (YAML 1.1 booleans).
    The schema and the loader use the string key ``"on"``.
    """
    if isinstance(obj, dict):
        result: dict[Any, Any] = {}
        for k, v in obj.items():
            new_key = "on" if k is True else k
            result[new_key] = preprocess_on_key(v)
        return result
    if isinstance(obj, list):
        return [preprocess_on_key(item) for item in obj]
    return obj


def _json_path(error: ValidationError) -> str:
    """Convert a jsonschema ValidationError path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def _reference_issues(yaml_path: Path, doc: dict[str, Any]) -> list[FormIssue]:
    """Warn about rules and scenarios naming attributes the form does not declare."""
    if doc.get("extends"):
        # Attributes may come from the parent form
        return []

    declared = {a.get("name") for a in doc.get("attributes", []) if isinstance(a, dict)}
    issues: list[FormIssue] = []

    for i, rule in enumerate(doc.get("rules", [])):
        attributes = rule.get("attributes", [])
        if isinstance(attributes, str):
            attributes = [attributes]
        for name in attributes:
            if name not in declared:
                issues.append(
                    FormIssue(
                        file=yaml_path,
                        message=f"Rule references undeclared attribute '{name}'",
                        path=f"rules[{i}]/attributes",
                        severity="warning",
                    )
                )

    for scenario, names in (doc.get("scenarios") or {}).items():
        for name in names:
            if name.lstrip("!") not in declared:
                issues.append(
                    FormIssue(
                        file=yaml_path,
                        message=f"Scenario lists undeclared attribute '{name}'",
                        path=f"scenarios/{scenario}",
                        severity="warning",
                    )
                )

    return issues


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_form_file(
    yaml_path: Path,
    *,
    registry: Registry | None = None,
) -> list[FormIssue]:
    """
    Validate a single form YAML file.

    Args:
        yaml_path: Path to the YAML file to validate.
        registry:  Pre-built schema registry.  Built automatically if omitted.

    Returns:
        A list of :class:`FormIssue` objects (empty on success).
    """
    issues: list[FormIssue] = []

    # 1. Parse YAML
    try:
        with yaml_path.open() as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        return [FormIssue(file=yaml_path, message=f"YAML parse error: {exc}")]

    if raw is None:
        return [
            FormIssue(file=yaml_path, message="File is empty or contains only whitespace")
        ]

    # 2. Pre-process PyYAML quirks
    doc = preprocess_on_key(raw)

    # 3. Load schema + registry
    if registry is None:
        registry = _load_registry()

    validator = Draft202012Validator(_load_schema(FORM_SCHEMA), registry=registry)

    # 4. Collect validation errors
    for error in sorted(validator.iter_errors(doc), key=lambda e: list(e.path)):
        issues.append(
            FormIssue(
                file=yaml_path,
                message=error.message,
                path=_json_path(error),
            )
        )

    # 5. Cross references (only meaningful for structurally valid documents)
    if not issues and isinstance(doc, dict):
        issues.extend(_reference_issues(yaml_path, doc))

    return issues


def validate_forms_dir(
    forms_dir: Path,
    *,
    strict: bool = False,
) -> list[FormIssue]:
    """
    Validate all ``*.yaml`` files in *forms_dir*.

    Args:
        forms_dir: Directory holding form definitions.
        strict:    If ``True``, warnings are escalated to errors.

    Returns:
        A flat list of :class:`FormIssue` objects across all files.
        Empty list means all files are valid.
    """
    if not forms_dir.is_dir():
        return [
            FormIssue(
                file=forms_dir,
                message=f"Forms directory does not exist: {forms_dir}",
            )
        ]

    # Build registry once, shared across all file validations
    try:
        registry = _load_registry()
    except (FileNotFoundError, json.JSONDecodeError) as exc:
        return [
            FormIssue(
                file=_SCHEMAS_DIR,
                message=f"Failed to load JSON Schema files: {exc}",
            )
        ]

    all_issues: list[FormIssue] = []
    for yaml_file in sorted(forms_dir.glob("*.yaml")):
        file_issues = validate_form_file(yaml_file, registry=registry)
        if strict:
            for issue in file_issues:
                if issue.severity == "warning":
                    issue.severity = "error"
        all_issues.extend(file_issues)

    logger.debug("Validated forms in %s: %d issue(s)", forms_dir, len(all_issues))
    return all_issues
