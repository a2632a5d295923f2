"""Scenario resolution for RuleForge.

Maps the current scenario of a model to the ordered list of attributes
that are active (validated) and safe (mass-assignable) in it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ruleforge.validation.types import SCENARIO_DEFAULT, ConfigurationError, RuleSpec

if TYPE_CHECKING:
    from ruleforge.model import Model

# Prefix marking an attribute as active but not safe for mass assignment
UNSAFE_PREFIX = "!"


class ScenarioResolver:
    """Resolves scenarios to attribute lists.

    When a model declares an explicit scenario map, that map is used as-is.
    Otherwise the map is derived from the model's rules: every scenario
    named in an ``on``/``except`` list, plus the default scenario, covers the
    attributes of every rule applying to it.

    Args:
        fallback_to_all_attributes: For scenarios missing from the map, use all
            public attributes of the model instead of raising
    """

    def __init__(self, fallback_to_all_attributes: bool = False):
        self.fallback_to_all_attributes = fallback_to_all_attributes

    def scenarios(self, model: Model) -> dict[str, list[str]]:
        """Return the scenario map (raw names, ``!`` markers kept)."""
        declared = model.scenarios()
        if declared is not None:
            return {name: list(attributes) for name, attributes in declared.items()}
        return derive_scenarios(model.rules())

    def active_attributes(self, model: Model, scenario: str) -> list[str]:
        """Attributes validated in ``scenario``, in order and deduplicated.

        Raises:
            ConfigurationError: If the scenario is unknown and no fallback is configured
        """
        return _dedupe(name.lstrip(UNSAFE_PREFIX) for name in self._entries(model, scenario))

    def safe_attributes(self, model: Model, scenario: str) -> list[str]:
        """Active attributes that may be mass-assigned in ``scenario``."""
        return _dedupe(
            name for name in self._entries(model, scenario) if not name.startswith(UNSAFE_PREFIX)
        )

    def _entries(self, model: Model, scenario: str) -> list[str]:
        scenarios = self.scenarios(model)
        if scenario in scenarios:
            return scenarios[scenario]
        if self.fallback_to_all_attributes:
            return list(model.attributes())
        raise ConfigurationError(
            f"Unknown scenario '{scenario}' for {type(model).__name__}. "
            f"Declared scenarios: {', '.join(scenarios) or '(none)'}"
        )


def derive_scenarios(specs: list[RuleSpec]) -> dict[str, list[str]]:
    """Build a scenario map from rule specifications."""
    names: list[str] = [SCENARIO_DEFAULT]
    for spec in specs:
        for scenario in (spec.on or []) + (spec.except_ or []):
            if scenario not in names:
                names.append(scenario)

    result: dict[str, list[str]] = {name: [] for name in names}
    for spec in specs:
        for scenario in names:
            if spec.on is not None and scenario not in spec.on:
                continue
            if spec.except_ is not None and scenario in spec.except_:
                continue
            for attribute in spec.attribute_list:
                if attribute not in result[scenario]:
                    result[scenario].append(attribute)
    return result


def _dedupe(names) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result
