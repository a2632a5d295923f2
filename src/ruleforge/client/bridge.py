"""Client-side validation descriptors.

The bridge turns the validators active in a scenario into data-only
fragment descriptors, grouped per attribute. Rendering them into client
code is left to the consumer; nothing here produces script text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ruleforge.validation.scenarios import ScenarioResolver
from ruleforge.validation.types import ClientFragment, ValidationContext

if TYPE_CHECKING:
    from ruleforge.model import Model

logger = logging.getLogger(__name__)

# Names a fragment is evaluated with on the client
FRAGMENT_BINDINGS = ("attribute", "value", "messages", "deferred")


@dataclass
class AttributeClientSpec:
    """Client checks of one attribute, in validator declaration order."""

    attribute: str
    label: str
    fragments: list[ClientFragment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "fragments": [fragment.to_dict() for fragment in self.fragments],
        }


@dataclass
class ClientFormSpec:
    """Client-side validation contract of a form in one scenario."""

    form: str
    scenario: str
    attributes: dict[str, AttributeClientSpec] = field(default_factory=dict)

    def fragments_for(self, attribute: str) -> list[ClientFragment]:
        spec = self.attributes.get(attribute)
        return list(spec.fragments) if spec else []

    @property
    def has_deferred(self) -> bool:
        return any(
            fragment.deferred
            for spec in self.attributes.values()
            for fragment in spec.fragments
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "form": self.form,
            "scenario": self.scenario,
            "bindings": list(FRAGMENT_BINDINGS),
            "attributes": {
                name: spec.to_dict() for name, spec in self.attributes.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientFormSpec":
        """Rebuild a spec from its ``to_dict`` form (e.g. parsed JSON)."""
        attributes = {
            name: AttributeClientSpec(
                attribute=name,
                label=spec.get("label", name),
                fragments=[_fragment_from_dict(f) for f in spec.get("fragments", [])],
            )
            for name, spec in data.get("attributes", {}).items()
        }
        return cls(form=data.get("form", ""), scenario=data.get("scenario", ""), attributes=attributes)


def _fragment_from_dict(data: dict[str, Any]) -> ClientFragment:
    return ClientFragment(
        kind=data["kind"],
        params=data.get("params", {}),
        message=data.get("message", ""),
        messages=data.get("messages", {}),
        skip_on_empty=data.get("skipOnEmpty", True),
        skip_on_error=data.get("skipOnError", True),
        deferred=data.get("deferred", False),
        condition=data.get("condition"),
    )


class ClientValidationBridge:
    """Builds ClientFormSpecs from a model's rules.

    Only validators that are active in the scenario, have client validation
    enabled and implement ``client_fragment`` contribute. Server-side ``when``
    predicates are not evaluated; ``when_client`` is passed through as the
    fragment condition instead.
    """

    def __init__(self, resolver: ScenarioResolver | None = None):
        self.resolver = resolver

    def build(self, model: Model, scenario: str | None = None) -> ClientFormSpec:
        scenario = scenario if scenario is not None else model.scenario
        resolver = self.resolver or model.get_scenario_resolver()
        active = resolver.active_attributes(model, scenario)

        form = ClientFormSpec(
            form=type(model).__name__,
            scenario=scenario,
            attributes={
                name: AttributeClientSpec(attribute=name, label=model.get_attribute_label(name))
                for name in active
            },
        )

        for validator in model.get_validators():
            if not validator.is_active(scenario) or not validator.enable_client_validation:
                continue
            for name in validator.attributes:
                if name not in active:
                    continue
                fragment = validator.client_check(
                    ValidationContext(
                        model=model,
                        scenario=scenario,
                        attribute=name,
                        attributes=[name],
                        value=model.get_attribute(name),
                    )
                )
                if fragment is not None:
                    form.attributes[name].fragments.append(fragment)

        logger.debug(
            "Built client spec for %s (scenario=%s, fragments=%d)",
            form.form,
            scenario,
            sum(len(spec.fragments) for spec in form.attributes.values()),
        )
        return form
