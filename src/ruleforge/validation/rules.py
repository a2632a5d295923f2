"""Rule materialization for RuleForge.

Turns a model's declared RuleSpecs into concrete validator instances,
resolving aliases, dotted import paths, inline methods and scenario
filters. Resolution happens once per validation pass, before any check
runs, so configuration faults surface early.
"""

from __future__ import annotations

import importlib
import inspect
import logging
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from ruleforge.validation.registry import (
    BaseValidator,
    InlineValidator,
    ValidatorRegistry,
    instantiate,
)
from ruleforge.validation.types import ConfigurationError, RuleSpec

if TYPE_CHECKING:
    from ruleforge.model import Model

logger = logging.getLogger(__name__)

# Keys understood by every validator; inline validators keep the rest as params.
COMMON_OPTIONS = (
    "message",
    "is_empty",
    "skip_on_empty",
    "skip_on_error",
    "batch",
    "enable_client_validation",
    "when_client",
)


class RuleSet:
    """An ordered list of rule specifications.

    Example:
        rules = RuleSet([
            rule(["name", "email"], "required"),
            rule("email", "email"),
        ])
        validators = rules.materialize(model)
    """

    def __init__(self, specs: Iterable[RuleSpec]):
        self.specs = list(specs)
        seen: set[str] = set()
        for spec in self.specs:
            if spec.name is None:
                continue
            if spec.name in seen:
                raise ConfigurationError(
                    f"Duplicate rule name '{spec.name}'. "
                    "Use merge_rules() to override an inherited rule."
                )
            seen.add(spec.name)

    def materialize(self, model: Model) -> list[BaseValidator]:
        """Create validator instances for every spec, in declaration order."""
        return [self.create_validator(spec, model) for spec in self.specs]

    def create_validator(self, spec: RuleSpec, model: Model) -> BaseValidator:
        """Resolve one rule specification into a validator."""
        attributes = spec.attribute_list
        if not attributes or spec.type is None:
            raise ConfigurationError(
                f"Rule {spec.name or spec!r} must declare attributes and a validator type"
            )
        if spec.on is not None and spec.except_ is not None:
            raise ConfigurationError(
                f"Rule {spec.name or attributes!r}: 'on' and 'except' are mutually exclusive"
            )

        params = dict(spec.params)
        params["on"] = spec.on
        params["except_"] = spec.except_
        params["when"] = self._resolve_when(spec, model)

        validator_type = spec.type

        if isinstance(validator_type, str):
            if ValidatorRegistry.is_registered(validator_type):
                return ValidatorRegistry.create(validator_type, attributes, **params)
            if "." in validator_type:
                return instantiate(_import_validator(validator_type), attributes, params)
            method = getattr(model, validator_type, None)
            if callable(method):
                return _inline(attributes, method, params, bound=True)
            raise ConfigurationError(
                f"Cannot resolve validator type '{validator_type}': not a registered alias, "
                f"an import path, or a method of {type(model).__name__}"
            )

        if inspect.isclass(validator_type):
            if not issubclass(validator_type, BaseValidator):
                raise ConfigurationError(
                    f"{validator_type.__name__} is not a BaseValidator subclass"
                )
            return instantiate(validator_type, attributes, params)

        if callable(validator_type):
            return _inline(attributes, validator_type, params, bound=inspect.ismethod(validator_type))

        raise ConfigurationError(f"Unsupported validator type: {validator_type!r}")

    def _resolve_when(self, spec: RuleSpec, model: Model) -> Any:
        when = spec.when
        if isinstance(when, str):
            method = getattr(model, when, None)
            if not callable(method):
                raise ConfigurationError(
                    f"'when' refers to '{when}', which is not a method of {type(model).__name__}"
                )
            # Bound methods already carry the model
            return lambda _model, _method=method: _method()
        return when

    def names(self) -> list[str]:
        return [spec.name for spec in self.specs if spec.name]


def _inline(
    attributes: list[str],
    method: Any,
    params: dict[str, Any],
    bound: bool,
) -> InlineValidator:
    options = {k: params.pop(k) for k in list(params) if k in COMMON_OPTIONS}
    options.update({k: params.pop(k) for k in ("on", "except_", "when")})
    client = params.pop("client", None)
    return InlineValidator(attributes, method, params, bound=bound, client=client, **options)


def _import_validator(path: str) -> type[BaseValidator]:
    """Import a validator class from a dotted path (e.g., "myapp.rules.Postcode")."""
    module_name, _, class_name = path.rpartition(".")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import validator module '{module_name}': {e}") from e

    validator_class = getattr(module, class_name, None)
    if not inspect.isclass(validator_class) or not issubclass(validator_class, BaseValidator):
        raise ConfigurationError(f"'{path}' is not a BaseValidator subclass")
    return validator_class


def merge_rules(
    parent: Sequence[RuleSpec],
    child: Sequence[RuleSpec],
    remove: Sequence[str] = (),
) -> list[RuleSpec]:
    """Combine inherited rules with a more specific model's rules.

    A child rule whose name matches a parent rule replaces it in place;
    other child rules are appended. Rules named in ``remove`` are deleted.

    Raises:
        ConfigurationError: On duplicate names within one list, or when
            removing a name that does not exist
    """
    # Validates name uniqueness within each list
    RuleSet(parent)
    RuleSet(child)

    merged = list(parent)
    positions = {spec.name: i for i, spec in enumerate(merged) if spec.name}

    for spec in child:
        if spec.name is not None and spec.name in positions:
            logger.debug("Rule '%s' overridden", spec.name)
            merged[positions[spec.name]] = spec
        else:
            merged.append(spec)
            if spec.name is not None:
                positions[spec.name] = len(merged) - 1

    for name in remove:
        if name not in positions:
            raise ConfigurationError(f"Cannot remove unknown rule '{name}'")
    removed = set(remove)
    return [spec for spec in merged if spec.name not in removed]
