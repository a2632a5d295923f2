"""Load form definitions from YAML files and turn them into Model classes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ruleforge.exceptions import ConfigurationError
from ruleforge.hooks.types import VALID_HOOK_POINTS, HookDefinition
from ruleforge.metadata.validator import preprocess_on_key
from ruleforge.model import Model, ModelRegistry
from ruleforge.validation.rules import RuleSet, merge_rules
from ruleforge.validation.types import RuleSpec

logger = logging.getLogger(__name__)

# Names a form attribute may not use because Model already defines them
RESERVED_NAMES = frozenset(name for name in dir(Model) if not name.startswith("__"))


@dataclass
class AttributeDefinition:
    name: str
    label: str | None = None
    default: Any = None


@dataclass
class FormDefinition:
    """A form parsed from YAML.

    Attributes:
        name: Form name, also the registered model name
        attributes: Declared attributes, in order
        rules: Rule specifications (inherited ones included once resolved)
        scenarios: Explicit scenario map, or None to derive it from rules
        hooks: Hook definitions per hook point
        extends: Name of the parent form, if any
        remove_rules: Inherited rule names to drop
        label: Display name of the form
        source: File the form was loaded from
    """

    name: str
    attributes: list[AttributeDefinition] = field(default_factory=list)
    rules: list[RuleSpec] = field(default_factory=list)
    scenarios: dict[str, list[str]] | None = None
    hooks: dict[str, list[HookDefinition]] = field(default_factory=dict)
    extends: str | None = None
    remove_rules: list[str] = field(default_factory=list)
    label: str = ""
    source: Path | None = None

    def attribute_names(self) -> list[str]:
        return [a.name for a in self.attributes]


class FormLoader:
    """Loads form definitions from a directory of YAML files."""

    def __init__(self, forms_path: Path):
        self.forms_path = Path(forms_path)
        self.forms: dict[str, FormDefinition] = {}

    def load_all(self) -> None:
        """Load every ``*.yaml`` file, then resolve ``extends`` chains."""
        if not self.forms_path.exists():
            logger.warning("Forms directory %s does not exist", self.forms_path)
            return

        raw: dict[str, FormDefinition] = {}
        for yaml_file in sorted(self.forms_path.glob("*.yaml")):
            definition = self.load_file(yaml_file)
            if definition.name in raw:
                raise ConfigurationError(
                    f"Form '{definition.name}' is defined in both "
                    f"{raw[definition.name].source} and {yaml_file}"
                )
            raw[definition.name] = definition

        for name in raw:
            self.forms[name] = self._resolve(name, raw, ())

        logger.info("Loaded %d form(s) from %s", len(self.forms), self.forms_path)

    def load_file(self, yaml_file: Path) -> FormDefinition:
        """Parse one form file (without resolving ``extends``)."""
        with open(yaml_file) as f:
            data = yaml.safe_load(f)
        if not data or "form" not in data:
            raise ConfigurationError(f"{yaml_file} is not a form definition (missing 'form')")
        definition = parse_form(preprocess_on_key(data))
        definition.source = yaml_file
        return definition

    def get_form(self, name: str) -> FormDefinition | None:
        return self.forms.get(name)

    def get_form_by_source(self, path: Path) -> FormDefinition | None:
        path = Path(path).resolve()
        for definition in self.forms.values():
            if definition.source is not None and definition.source.resolve() == path:
                return definition
        return None

    def list_forms(self) -> list[str]:
        return sorted(self.forms.keys())

    def _resolve(
        self,
        name: str,
        raw: dict[str, FormDefinition],
        chain: tuple[str, ...],
    ) -> FormDefinition:
        """Merge a form with its ancestors: attributes, rules, hooks and scenarios."""
        definition = raw[name]
        if definition.extends is None:
            return definition
        if name in chain:
            raise ConfigurationError(f"Circular form inheritance: {' -> '.join(chain + (name,))}")
        if definition.extends not in raw:
            raise ConfigurationError(
                f"Form '{name}' extends unknown form '{definition.extends}'"
            )

        parent = self._resolve(definition.extends, raw, chain + (name,))

        own = {a.name for a in definition.attributes}
        attributes = [a for a in parent.attributes if a.name not in own] + definition.attributes

        hooks = {point: list(items) for point, items in parent.hooks.items()}
        for point, items in definition.hooks.items():
            hooks.setdefault(point, []).extend(items)

        return FormDefinition(
            name=definition.name,
            attributes=attributes,
            rules=merge_rules(parent.rules, definition.rules, definition.remove_rules),
            scenarios=definition.scenarios if definition.scenarios is not None else parent.scenarios,
            hooks=hooks,
            extends=definition.extends,
            remove_rules=definition.remove_rules,
            label=definition.label,
            source=definition.source,
        )


def parse_form(data: dict[str, Any]) -> FormDefinition:
    """Convert a preprocessed form dict to a FormDefinition."""
    name = data["form"]

    attributes = []
    for item in data.get("attributes", []):
        if isinstance(item, str):
            item = {"name": item}
        if item["name"] in RESERVED_NAMES or item["name"].startswith("_"):
            raise ConfigurationError(
                f"Form '{name}': attribute name '{item['name']}' is reserved or private"
            )
        attributes.append(
            AttributeDefinition(
                name=item["name"],
                label=item.get("label"),
                default=item.get("default"),
            )
        )

    rules = [RuleSpec.from_dict(r) for r in data.get("rules", [])]
    # Duplicate names are a configuration error even before materialization
    RuleSet(rules)

    scenarios = data.get("scenarios")
    if scenarios is not None:
        scenarios = {str(k): list(v) for k, v in scenarios.items()}

    hooks: dict[str, list[HookDefinition]] = {}
    for point, items in (data.get("hooks") or {}).items():
        if point not in VALID_HOOK_POINTS:
            raise ConfigurationError(
                f"Form '{name}': unknown hook point '{point}'. "
                f"Valid: {', '.join(VALID_HOOK_POINTS)}"
            )
        hooks[point] = [HookDefinition.from_value(h) for h in items or []]

    return FormDefinition(
        name=name,
        attributes=attributes,
        rules=rules,
        scenarios=scenarios,
        hooks=hooks,
        extends=data.get("extends"),
        remove_rules=list(data.get("removeRules", [])),
        label=data.get("label", name),
    )


def build_model_class(
    definition: FormDefinition,
    scenario_fallback: bool = False,
) -> type[Model]:
    """Create a Model subclass implementing a form definition."""
    labels = {a.name: a.label for a in definition.attributes if a.label}
    rules = list(definition.rules)
    scenarios = definition.scenarios

    namespace: dict[str, Any] = {
        "__annotations__": {a.name: Any for a in definition.attributes},
        "__doc__": definition.label or definition.name,
        "hooks": {point: list(items) for point, items in definition.hooks.items()},
        "scenario_fallback": scenario_fallback,
        "form_definition": definition,
        "rules": lambda self: list(rules),
        "scenarios": lambda self: (
            {k: list(v) for k, v in scenarios.items()} if scenarios is not None else None
        ),
        "attribute_labels": lambda self: dict(labels),
    }
    for attribute in definition.attributes:
        namespace[attribute.name] = attribute.default

    return type(definition.name, (Model,), namespace)


def register_forms(
    loader: FormLoader,
    scenario_fallback: bool = False,
) -> dict[str, type[Model]]:
    """Build and register a model class for every loaded form."""
    classes: dict[str, type[Model]] = {}
    for name in loader.list_forms():
        model_class = build_model_class(loader.forms[name], scenario_fallback=scenario_fallback)
        ModelRegistry.register(name, model_class)
        classes[name] = model_class
    return classes
