"""Hook system types for RuleForge.

Defines the core data structures for the validation hook system:
- HookDefinition: metadata describing when a named hook should run
- HookContext: runtime state passed to hook functions
- HookResult: return value from hook functions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ruleforge.model import Model

BEFORE_VALIDATE = "beforeValidate"
AFTER_VALIDATE = "afterValidate"
VALID_HOOK_POINTS = (BEFORE_VALIDATE, AFTER_VALIDATE)


@dataclass
class HookDefinition:
    """Definition of a hook attached to a model.

    Attributes:
        name: Registered hook name (e.g., "normalizePhone")
        on: Scenarios this hook applies to (None means all)
        description: Human-readable description
    """

    name: str
    on: list[str] | None = None
    description: str = ""

    @classmethod
    def from_value(cls, data: str | dict[str, Any] | HookDefinition) -> HookDefinition:
        """Create HookDefinition from a bare name or a YAML/JSON dict."""
        if isinstance(data, HookDefinition):
            return data
        if isinstance(data, str):
            return cls(name=data)

        scenarios = data.get("on")
        if isinstance(scenarios, str):
            scenarios = [scenarios]

        return cls(
            name=data["name"],
            on=scenarios,
            description=data.get("description", ""),
        )

    def applies_to(self, scenario: str) -> bool:
        return self.on is None or scenario in self.on


@dataclass
class HookContext:
    """Runtime context passed to every hook function.

    Attributes:
        model: The model being validated
        scenario: Scenario of the current pass
        hook_point: beforeValidate or afterValidate
        values: Snapshot of the model's attribute values
    """

    model: Model
    scenario: str
    hook_point: str
    values: dict[str, Any] = field(default_factory=dict)


@dataclass
class HookResult:
    """Return value from hook functions.

    Attributes:
        update: Attribute values to assign on the model (beforeValidate only)
        abort: Reason to skip validation entirely (beforeValidate only)
    """

    update: dict[str, Any] | None = None
    abort: str | None = None
