"""Validator registry and validator base classes for RuleForge.

Provides registration and lookup for:
- Builtin validators (shipped with the framework)
- Custom validators (application-specific, explicitly registered)

and the base classes every validator derives from.
"""

from __future__ import annotations

import inspect
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Callable, Sequence

from ruleforge.validation.messages import MessageInterpolator
from ruleforge.validation.types import (
    ClientFragment,
    ConfigurationError,
    ValidationContext,
)

if TYPE_CHECKING:
    from ruleforge.model import Model


def is_empty(value: Any) -> bool:
    """Default emptiness predicate: None, empty string, or empty collection."""
    if value is None:
        return True
    if isinstance(value, str) and value == "":
        return True
    if isinstance(value, (list, tuple, dict, set, frozenset)) and len(value) == 0:
        return True
    return False


class ValidatorRegistry:
    """Registry for validator types.

    Validators must be explicitly registered before they can be referenced
    by alias. This applies to both builtin validators (registered by the
    framework) and custom validators (registered by the application at startup).

    Example:
        # Register a custom validator
        ValidatorRegistry.register("postcode", PostcodeValidator)

        # Later, resolve from a rule specification
        validator = ValidatorRegistry.create("postcode", ["zip"], country="NL")
    """

    _validators: dict[str, type[BaseValidator]] = {}

    @classmethod
    def register(cls, name: str, validator_class: type[BaseValidator]) -> None:
        """Register a validator class by alias.

        Idempotent - re-registering the same name is a no-op.

        Args:
            name: Unique alias for the validator (e.g., "required", "myapp.postcode")
            validator_class: BaseValidator subclass
        """
        if name in cls._validators:
            return  # Already registered, no-op
        cls._validators[name] = validator_class

    @classmethod
    def get(cls, name: str) -> type[BaseValidator]:
        """Get a registered validator class by alias.

        Raises:
            ConfigurationError: If validator is not registered
        """
        if name not in cls._validators:
            raise ConfigurationError(
                f"Validator '{name}' is not registered. "
                "Available types: " + ", ".join(cls.list_registered())
            )
        return cls._validators[name]

    @classmethod
    def create(
        cls,
        name: str,
        attributes: Sequence[str],
        **params: Any,
    ) -> BaseValidator:
        """Create a validator instance from an alias and its parameters."""
        return instantiate(cls.get(name), attributes, params)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        """Check if a validator is registered."""
        return name in cls._validators

    @classmethod
    def list_registered(cls) -> list[str]:
        """List all registered validator names."""
        return sorted(cls._validators.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._validators.clear()


def instantiate(
    validator_class: type[BaseValidator],
    attributes: Sequence[str],
    params: dict[str, Any],
) -> BaseValidator:
    """Construct a validator, turning bad parameters into ConfigurationError."""
    try:
        return validator_class(list(attributes), **params)
    except TypeError as e:
        raise ConfigurationError(
            f"Invalid parameters for validator {validator_class.__name__}: {e}"
        ) from e


class BaseValidator:
    """Base class for validators.

    A validator checks one or more attributes of a model. Per-attribute
    validators override ``check_value`` (or ``validate_attribute`` when they
    need to record errors under other keys); batch validators override
    ``validate_attributes`` and attribute their own errors.

    Class attributes give the defaults a rule specification may override.
    """

    skip_on_empty: bool = True
    skip_on_error: bool = True
    batch: bool = False
    default_message: str = "{attribute} is invalid."

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        message: str | None = None,
        on: Sequence[str] | None = None,
        except_: Sequence[str] | None = None,
        when: Callable[[Model], bool] | None = None,
        is_empty: Callable[[Any], bool] | None = None,
        skip_on_empty: bool | None = None,
        skip_on_error: bool | None = None,
        batch: bool | None = None,
        enable_client_validation: bool = True,
        when_client: Any = None,
    ):
        if on is not None and except_ is not None:
            raise ConfigurationError(
                f"{type(self).__name__}: 'on' and 'except' are mutually exclusive"
            )
        self.attributes = list(attributes)
        self.message = message or self.default_message
        self.on = list(on) if on is not None else None
        self.except_ = list(except_) if except_ is not None else None
        self.when = when
        self.is_empty_fn = is_empty
        if skip_on_empty is not None:
            self.skip_on_empty = skip_on_empty
        if skip_on_error is not None:
            self.skip_on_error = skip_on_error
        if batch is not None:
            self.batch = batch
        self.enable_client_validation = enable_client_validation
        self.when_client = when_client

    # -- activation -----------------------------------------------------------

    def is_active(self, scenario: str) -> bool:
        """Whether this validator's scenario filter matches ``scenario``."""
        if self.on is not None:
            return scenario in self.on
        if self.except_ is not None:
            return scenario not in self.except_
        return True

    def applies_to(self, model: Model) -> bool:
        """Evaluate the activation predicate."""
        if self.when is None:
            return True
        return bool(self.when(model))

    def is_empty(self, value: Any) -> bool:
        if self.is_empty_fn is not None:
            return bool(self.is_empty_fn(value))
        return is_empty(value)

    # -- server-side checks ----------------------------------------------------

    async def validate_attribute(self, ctx: ValidationContext) -> None:
        """Validate ``ctx.attribute`` and record failures on the model."""
        messages = await self.check_value(ctx.value, ctx)
        for message in messages or []:
            ctx.model.add_error(ctx.attribute, message)

    async def validate_attributes(self, ctx: ValidationContext) -> None:
        """Validate all of ``ctx.attributes`` in one invocation (batch mode).

        The default treats the batch as a sequence of single-attribute checks;
        true joint validators override this.
        """
        for attribute in ctx.attributes:
            await self.validate_attribute(
                replace(
                    ctx,
                    attribute=attribute,
                    attributes=[attribute],
                    value=ctx.value_of(attribute),
                )
            )

    async def check_value(
        self,
        value: Any,
        ctx: ValidationContext,
    ) -> list[str] | None:
        """Check a single value. Return messages, or None/[] when valid."""
        raise NotImplementedError(
            f"{type(self).__name__} does not support checking a single value"
        )

    async def validate_value(self, value: Any) -> str | None:
        """Validate a value outside of any model.

        Returns:
            The first error message, or None when the value is valid
        """
        ctx = ValidationContext(model=None, value=value)
        messages = await self.check_value(value, ctx)
        return messages[0] if messages else None

    # -- client-side descriptor -----------------------------------------------

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        """Describe the equivalent client-side check; None if server-only."""
        return None

    def client_check(self, ctx: ValidationContext) -> ClientFragment | None:
        """Fragment the bridge emits for this validator.

        A custom ``is_empty`` predicate cannot be sent to the client, so a
        validator carrying one is re-validated on the server instead.
        """
        fragment = self.client_fragment(ctx)
        if fragment is None or fragment.deferred or self.is_empty_fn is None:
            return fragment
        return self.remote_fragment(ctx)

    def remote_fragment(self, ctx: ValidationContext) -> ClientFragment:
        """Deferred fragment: the client re-validates this attribute over AJAX."""
        fragment = self.make_fragment(ctx, "remote", {}, message=self.message)
        # Emptiness is decided by the server when the predicate is custom
        return replace(
            fragment,
            deferred=True,
            skip_on_empty=self.skip_on_empty and self.is_empty_fn is None,
        )

    def make_fragment(
        self,
        ctx: ValidationContext,
        kind: str,
        params: dict[str, Any] | None = None,
        **messages: str,
    ) -> ClientFragment:
        """Build a fragment carrying this validator's skip and condition settings.

        The first keyword message becomes the main message; all of them are
        also kept by name.
        """
        rendered = {
            name: self.render(ctx, template, keep_value=True, **(params or {}))
            for name, template in messages.items()
        }
        main = next(iter(rendered.values()), self.render(ctx, self.message, keep_value=True))
        return ClientFragment(
            kind=kind,
            params=params or {},
            message=main,
            messages=rendered if len(rendered) > 1 else {},
            skip_on_empty=self.skip_on_empty,
            skip_on_error=self.skip_on_error,
            condition=self.when_client,
        )

    # -- messages --------------------------------------------------------------

    def render(
        self,
        ctx: ValidationContext,
        template: str,
        keep_value: bool = False,
        **params: Any,
    ) -> str:
        """Render a message template for the attribute in ``ctx``."""
        if ctx.model is not None:
            labels = ctx.model.get_attribute_labels()
            record = ctx.model.get_attributes()
            label = ctx.model.get_attribute_label(ctx.attribute) if ctx.attribute else ""
        else:
            labels, record, label = {}, {}, "the input value"

        values: dict[str, Any] = {"attribute": label}
        if not keep_value:
            values["value"] = ctx.value
        values.update(params)
        interpolator = MessageInterpolator(labels=labels, record=record)
        return interpolator.interpolate(
            template,
            values,
            keep=("value",) if keep_value else (),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.attributes!r})"


class InlineValidator(BaseValidator):
    """A validator backed by a model method or a free function.

    The callable reports failures itself (through ``model.add_error``).
    Bound methods receive ``(attribute, params)``; free functions receive
    ``(model, attribute, params)``. In batch mode ``attribute`` is the
    list of target attributes. Coroutine functions are awaited.
    """

    def __init__(
        self,
        attributes: Sequence[str],
        method: Callable[..., Any],
        params: dict[str, Any] | None = None,
        *,
        bound: bool = True,
        client: Callable[[str, dict[str, Any]], ClientFragment | None] | None = None,
        **options: Any,
    ):
        super().__init__(attributes, **options)
        self.method = method
        self.params = params or {}
        self.bound = bound
        self.client = client

    async def validate_attribute(self, ctx: ValidationContext) -> None:
        await self._call(ctx.model, ctx.attribute)

    async def validate_attributes(self, ctx: ValidationContext) -> None:
        await self._call(ctx.model, list(ctx.attributes))

    async def _call(self, model: Model, target: str | list[str]) -> None:
        if self.bound:
            result = self.method(target, self.params)
        else:
            result = self.method(model, target, self.params)
        if inspect.isawaitable(result):
            await result

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        if self.client is None:
            return None
        return self.client(ctx.attribute, self.params)

    def __repr__(self) -> str:
        name = getattr(self.method, "__name__", repr(self.method))
        return f"InlineValidator({self.attributes!r}, {name})"
