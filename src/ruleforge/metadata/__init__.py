"""YAML form definitions: loading, schema validation and model building."""

from ruleforge.metadata.loader import (
    AttributeDefinition,
    FormDefinition,
    FormLoader,
    build_model_class,
    parse_form,
    register_forms,
)
from ruleforge.metadata.validator import FormIssue, validate_form_file, validate_forms_dir

__all__ = [
    "AttributeDefinition",
    "FormDefinition",
    "FormIssue",
    "FormLoader",
    "build_model_class",
    "parse_form",
    "register_forms",
    "validate_form_file",
    "validate_forms_dir",
]
