"""Model base class for RuleForge.

A model is a plain Python class whose public annotated class attributes
are its attributes. Rules, scenarios, labels and hooks are declared on the
class; values, the current scenario and recorded errors live on the
instance.

Usage:
    class SignupForm(Model):
        username: str = ""
        email: str = ""
        password: str = ""

        def rules(self):
            return [
                rule(["username", "email", "password"], "required"),
                rule("email", "email"),
                rule("password", "string", min=8),
            ]

    form = SignupForm()
    form.load(request_data)
    if not await form.validate():
        print(form.first_errors())
"""

from __future__ import annotations

import copy
import inspect
import logging
from typing import Any, Callable, ClassVar, Sequence, TypeVar

from ruleforge.exceptions import UnknownModelError
from ruleforge.validation.errors import ErrorCollector
from ruleforge.validation.messages import to_title_case
from ruleforge.validation.registry import BaseValidator
from ruleforge.validation.rules import RuleSet
from ruleforge.validation.scenarios import ScenarioResolver
from ruleforge.validation.services import ValidationEngine, validate_multiple
from ruleforge.validation.types import MODEL_LEVEL, SCENARIO_DEFAULT, ErrorKey, RuleSpec
from ruleforge.validation.validators.builtin import RequiredValidator

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=type["Model"])


class Model:
    """Base class for validatable models.

    Class attributes:
        hooks: Named hooks per hook point, e.g. {"beforeValidate": ["trimAll"]}
        scenario_fallback: Treat unknown scenarios as "all attributes" instead of
            raising ConfigurationError
    """

    hooks: ClassVar[dict[str, list[Any]]] = {}
    scenario_fallback: ClassVar[bool] = False

    def __init__(self, scenario: str = SCENARIO_DEFAULT, **values: Any):
        self._scenario = scenario
        self._errors = ErrorCollector()
        for name in self.attributes():
            setattr(self, name, copy.copy(getattr(type(self), name, None)))
        for name, value in values.items():
            self.set_attribute(name, value)

    # =========================================================================
    # Declarations (override in subclasses)
    # =========================================================================

    def rules(self) -> list[RuleSpec]:
        """Validation rules, in execution order."""
        return []

    def scenarios(self) -> dict[str, list[str]] | None:
        """Explicit scenario map. None derives scenarios from the rules."""
        return None

    def attribute_labels(self) -> dict[str, str]:
        """Display labels for attributes; unlisted ones get a generated label."""
        return {}

    def before_validate(self) -> bool:
        """Called before validation. Returning False skips the pass."""
        return True

    def after_validate(self) -> None:
        """Called after validation."""
        return None

    # =========================================================================
    # Attributes
    # =========================================================================

    @classmethod
    def attributes(cls) -> list[str]:
        """Public annotated attribute names, base classes first."""
        names: list[str] = []
        for klass in reversed(cls.__mro__):
            if klass is Model or not issubclass(klass, Model):
                continue
            for name, annotation in inspect.get_annotations(klass).items():
                if name.startswith("_") or "ClassVar" in str(annotation):
                    continue
                if name not in names:
                    names.append(name)
        return names

    @property
    def scenario(self) -> str:
        return self._scenario

    @scenario.setter
    def scenario(self, value: str) -> None:
        self._scenario = value

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes()

    def get_attribute(self, name: str) -> Any:
        return getattr(self, name, None)

    def set_attribute(self, name: str, value: Any) -> None:
        setattr(self, name, value)

    def get_attributes(self, names: Sequence[str] | None = None) -> dict[str, Any]:
        names = self.attributes() if names is None else names
        return {name: self.get_attribute(name) for name in names}

    def set_attributes(self, values: dict[str, Any], safe_only: bool = True) -> None:
        """Mass-assign attribute values.

        With ``safe_only``, only attributes safe in the current scenario are
        assigned; everything else is logged and ignored.
        """
        allowed = self.safe_attributes() if safe_only else self.attributes()
        for name, value in values.items():
            if name in allowed:
                self.set_attribute(name, value)
            else:
                logger.warning(
                    "Failed to set unsafe attribute '%s' in %s (scenario=%s)",
                    name,
                    type(self).__name__,
                    self.scenario,
                )

    def load(self, data: dict[str, Any] | None) -> bool:
        """Assign safe attributes from submitted data.

        Returns:
            False when there was nothing to load
        """
        if not data:
            return False
        self.set_attributes(data)
        return True

    def get_attribute_labels(self) -> dict[str, str]:
        labels = {name: self.generate_attribute_label(name) for name in self.attributes()}
        labels.update(self.attribute_labels())
        return labels

    def get_attribute_label(self, name: str) -> str:
        return self.attribute_labels().get(name) or self.generate_attribute_label(name)

    def generate_attribute_label(self, name: str) -> str:
        return to_title_case(name)

    # =========================================================================
    # Errors
    # =========================================================================

    @property
    def errors(self) -> ErrorCollector:
        return self._errors

    def add_error(self, attribute: str | ErrorKey | None, message: str) -> None:
        """Record an error. ``None`` records a model-level error."""
        self._errors.add(MODEL_LEVEL if attribute is None else attribute, message)

    def add_errors(self, errors: dict[str | ErrorKey, list[str] | str]) -> None:
        self._errors.merge(errors)

    def has_errors(self, attribute: str | ErrorKey | None = None) -> bool:
        return self._errors.has_errors(attribute)

    def get_errors(self, attribute: str | ErrorKey | None = None) -> Any:
        """Messages of one attribute, or all errors as a plain dict."""
        if attribute is None:
            return self._errors.to_dict()
        return self._errors.messages_for(attribute)

    def first_errors(self) -> dict[str, str]:
        return self._errors.first_message_per_attribute()

    def first_error(self, attribute: str | ErrorKey) -> str | None:
        messages = self._errors.messages_for(attribute)
        return messages[0] if messages else None

    def error_summary(self, show_all: bool = False) -> list[str]:
        return self._errors.summary(show_all)

    def clear_errors(self, attribute: str | ErrorKey | None = None) -> None:
        self._errors.clear(attribute)

    # =========================================================================
    # Validation
    # =========================================================================

    async def validate(
        self,
        attribute_names: Sequence[str] | None = None,
        clear_errors: bool = True,
        engine: ValidationEngine | None = None,
    ) -> bool:
        """Run a validation pass under the current scenario.

        Returns:
            True when no errors were recorded
        """
        engine = engine or ValidationEngine()
        result = await engine.run(
            self,
            attribute_names=attribute_names,
            clear_errors=clear_errors,
        )
        return result.success

    def get_scenario_resolver(self) -> ScenarioResolver:
        return ScenarioResolver(fallback_to_all_attributes=self.scenario_fallback)

    def get_validators(self) -> list[BaseValidator]:
        """Materialize the declared rules. A new list is built on every call."""
        return RuleSet(self.rules()).materialize(self)

    def active_validators(self, attribute: str | None = None) -> list[BaseValidator]:
        """Validators whose scenario filter matches the current scenario."""
        return [
            v
            for v in self.get_validators()
            if v.is_active(self.scenario) and (attribute is None or attribute in v.attributes)
        ]

    def scenarios_map(self) -> dict[str, list[str]]:
        return self.get_scenario_resolver().scenarios(self)

    def active_attributes(self) -> list[str]:
        return self.get_scenario_resolver().active_attributes(self, self.scenario)

    def safe_attributes(self) -> list[str]:
        return self.get_scenario_resolver().safe_attributes(self, self.scenario)

    def is_attribute_active(self, attribute: str) -> bool:
        return attribute in self.active_attributes()

    def is_attribute_safe(self, attribute: str) -> bool:
        return attribute in self.safe_attributes()

    def is_attribute_required(self, attribute: str) -> bool:
        """True if an unconditional required rule applies to the attribute."""
        return any(
            isinstance(v, RequiredValidator) and v.when is None
            for v in self.active_validators(attribute)
        )

    def __repr__(self) -> str:
        values = ", ".join(f"{k}={v!r}" for k, v in self.get_attributes().items())
        return f"{type(self).__name__}({values})"


# =============================================================================
# Model Registry
# =============================================================================


class ModelRegistry:
    """Registry of model classes addressable by name.

    Used by the HTTP layer and the CLI to build a fresh model per request.
    """

    _models: dict[str, type[Model]] = {}

    @classmethod
    def register(cls, name: str, model_class: type[Model]) -> None:
        cls._models[name] = model_class

    @classmethod
    def get(cls, name: str) -> type[Model]:
        """Get a registered model class.

        Raises:
            UnknownModelError: If no model is registered under ``name``
        """
        if name not in cls._models:
            raise UnknownModelError(f"Form '{name}' is not registered")
        return cls._models[name]

    @classmethod
    def factory(cls, name: str) -> Callable[[], Model]:
        return cls.get(name)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._models

    @classmethod
    def list_registered(cls) -> list[str]:
        return sorted(cls._models.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._models.clear()


def model(name: str | None = None) -> Callable[[M], M]:
    """Class decorator registering a model under ``name`` (default: class name)."""

    def decorator(model_class: M) -> M:
        ModelRegistry.register(name or model_class.__name__, model_class)
        return model_class

    return decorator


__all__ = ["Model", "ModelRegistry", "model", "validate_multiple"]
