"""Core types for the RuleForge validation system.

This module defines the foundational types shared by every part of the engine:
- ErrorKey: attribute-or-model key for recorded errors
- ValidationContext: what a validator sees for one invocation
- RuleSpec: the declarative description of one rule
- QueryService: data access for validators that need a store
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Protocol

from ruleforge.exceptions import ConfigurationError, RuleForgeError, UnknownModelError

if TYPE_CHECKING:
    from ruleforge.model import Model


SCENARIO_DEFAULT = "default"


@dataclass(frozen=True)
class ErrorKey:
    """Key under which an error message is recorded.

    Attributes:
        attribute: Attribute name, or None for a model-level error
    """

    attribute: str | None = None

    @property
    def is_model_level(self) -> bool:
        return self.attribute is None

    @classmethod
    def coerce(cls, key: "str | ErrorKey") -> "ErrorKey":
        """Turn a bare attribute name into a key. Strings always name attributes."""
        if isinstance(key, ErrorKey):
            return key
        return cls(attribute=key)

    def __str__(self) -> str:
        return self.attribute if self.attribute is not None else "<model>"


MODEL_LEVEL = ErrorKey()


class QueryService(Protocol):
    """Protocol for data access during validation.

    Validators that need to query a store (e.g., uniqueness checks,
    reference validation) read it from the validation context.
    """

    async def query(
        self,
        entity: str,
        filter: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Query records matching the filter."""
        ...

    async def exists(
        self,
        entity: str,
        filter: dict[str, Any],
    ) -> bool:
        """Check if any record matches the filter."""
        ...

    async def count(
        self,
        entity: str,
        filter: dict[str, Any],
    ) -> int:
        """Count records matching the filter."""
        ...


@dataclass
class ValidationContext:
    """Context passed to validators during validation.

    Attributes:
        model: The model instance being validated
        scenario: The scenario of the current pass
        attribute: Target attribute for per-attribute validators; None for batch
        attributes: Full target list (one element for per-attribute validators)
        value: Current value of ``attribute`` (None for batch)
        query: Optional data access for store-backed validators
    """

    model: "Model | None"
    scenario: str = SCENARIO_DEFAULT
    attribute: str | None = None
    attributes: list[str] = field(default_factory=list)
    value: Any = None
    query: QueryService | None = None

    def value_of(self, attribute: str) -> Any:
        if self.model is None:
            return None
        return self.model.get_attribute(attribute)


@dataclass(frozen=True)
class ClientFragment:
    """Data descriptor of one client-side check.

    A renderer turns it into client code; the engine never emits script text.

    Attributes:
        kind: Operation kind ("required", "string", "match", "remote", ...)
        params: Kind-specific parameters
        message: Pre-rendered message; only ``{value}`` is left for the client
        messages: Extra named messages for kinds with several failure modes
        skip_on_empty: Skip the check when the client value is empty
        skip_on_error: Skip the check when the attribute already has a message
        deferred: True when the check completes asynchronously
        condition: Opaque client-side activation condition, passed through
    """

    kind: str
    params: dict[str, Any] = field(default_factory=dict)
    message: str = ""
    messages: dict[str, str] = field(default_factory=dict)
    skip_on_empty: bool = True
    skip_on_error: bool = True
    deferred: bool = False
    condition: Any = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "kind": self.kind,
            "params": self.params,
            "message": self.message,
            "skipOnEmpty": self.skip_on_empty,
            "skipOnError": self.skip_on_error,
            "deferred": self.deferred,
        }
        if self.messages:
            result["messages"] = self.messages
        if self.condition is not None:
            result["condition"] = self.condition
        return result


WhenPredicate = Callable[["Model"], bool]


@dataclass
class RuleSpec:
    """Declarative representation of one rule.

    Gets resolved to a concrete validator by RuleSet at the start of
    every validation pass.

    Attributes:
        attributes: Attribute name or names the rule applies to
        type: Validator alias, dotted import path, validator class,
            model method name, or callable
        on: Scenarios the rule is limited to (None means all)
        except_: Scenarios the rule is excluded from (None means none)
        when: Optional activation predicate called with the model, or the
            name of a model method returning bool
        name: Optional rule name used for override/removal
        params: Extra parameters passed to the validator
    """

    attributes: str | list[str] | tuple[str, ...]
    type: Any
    on: list[str] | None = None
    except_: list[str] | None = None
    when: WhenPredicate | str | None = None
    name: str | None = None
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def attribute_list(self) -> list[str]:
        if isinstance(self.attributes, str):
            return [self.attributes]
        return list(self.attributes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuleSpec":
        """Create RuleSpec from YAML/JSON dict."""
        on = data.get("on")
        if isinstance(on, str):
            on = [on]
        except_ = data.get("except")
        if isinstance(except_, str):
            except_ = [except_]

        reserved = {"attributes", "type", "on", "except", "when", "name", "params"}
        params = dict(data.get("params", {}))
        params.update({k: v for k, v in data.items() if k not in reserved})

        return cls(
            attributes=data.get("attributes", []),
            type=data.get("type"),
            on=on,
            except_=except_,
            when=data.get("when"),
            name=data.get("name"),
            params=params,
        )


def rule(
    attributes: str | list[str] | tuple[str, ...],
    type: Any,
    *,
    on: str | list[str] | None = None,
    except_: str | list[str] | None = None,
    when: WhenPredicate | str | None = None,
    name: str | None = None,
    **params: Any,
) -> RuleSpec:
    """Build a RuleSpec with keyword parameters.

    Example:
        rule(["name", "email"], "required")
        rule("email", "email", on="register", name="emailFormat")
    """
    if isinstance(on, str):
        on = [on]
    if isinstance(except_, str):
        except_ = [except_]
    return RuleSpec(
        attributes=attributes,
        type=type,
        on=on,
        except_=except_,
        when=when,
        name=name,
        params=params,
    )
