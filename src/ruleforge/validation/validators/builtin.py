"""Builtin validators for RuleForge.

These validators ship with the framework and are referenced from rule
specifications by alias.

Available validators:
- required: Value must not be empty (or must equal requiredValue)
- string: String type and length bounds
- number / double / integer: Numeric format and bounds
- boolean: Value must be one of two accepted values
- email, url: Format checks
- match: Regex pattern matching
- in / range: Value must be (or not be) in a list
- compare: Compare with another attribute or a constant
- trim, filter, default: Data filters that modify the attribute value
- safe: Marks attributes as safe for mass assignment, no check
- each: Applies another validator to every element of a list
"""

import re
from dataclasses import replace
from typing import Any, Callable, Sequence

from ruleforge.validation.registry import (
    BaseValidator,
    ValidatorRegistry,
    instantiate,
)
from ruleforge.validation.types import (
    ClientFragment,
    ConfigurationError,
    ValidationContext,
)


# =============================================================================
# Format Patterns
# =============================================================================

# Email: Basic RFC 5322 compliant pattern
EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

# URL: scheme placeholder is filled from valid_schemes
URL_PATTERN = (
    r"^({schemes})://(([A-Z0-9][A-Z0-9_-]*)(\.[A-Z0-9][A-Z0-9_-]*)+)"
    r"(?::\d{{1,5}})?(?:$|[?/#])"
)

INTEGER_PATTERN = r"^\s*[+-]?\d+\s*$"
NUMBER_PATTERN = r"^\s*[-+]?[0-9]*\.?[0-9]+([eE][-+]?[0-9]+)?\s*$"


# =============================================================================
# Required Validator
# =============================================================================


class RequiredValidator(BaseValidator):
    """Validates that the value is not empty.

    Params:
        required_value: If set, the value must equal this instead
        strict: Compare without trimming strings / with identity of types
    """

    skip_on_empty = False
    default_message = "{attribute} cannot be blank."

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        required_value: Any = None,
        strict: bool = False,
        **options: Any,
    ):
        if required_value is not None and not options.get("message"):
            options["message"] = '{attribute} must be "{requiredValue}".'
        super().__init__(attributes, **options)
        self.required_value = required_value
        self.strict = strict

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        if self.required_value is None:
            if self.strict and value is not None:
                return None
            if not self.strict and not self.is_empty(_trimmed(value)):
                return None
        elif self.strict and type(value) is type(self.required_value) and value == self.required_value:
            return None
        elif not self.strict and str(value) == str(self.required_value):
            return None

        return [self.render(ctx, self.message, requiredValue=self.required_value)]

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        params: dict[str, Any] = {"strict": self.strict}
        if self.required_value is not None:
            params["requiredValue"] = self.required_value
        return self.make_fragment(ctx, "required", params, message=self.message)


def _trimmed(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


# =============================================================================
# String Validator
# =============================================================================


class StringValidator(BaseValidator):
    """Validates that the value is a string of acceptable length.

    Params:
        min: Minimum length
        max: Maximum length
        length: Exact length, or a [min, max] pair
    """

    default_message = "{attribute} must be a string."

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        min: int | None = None,
        max: int | None = None,
        length: int | Sequence[int] | None = None,
        too_short: str = "{attribute} should contain at least {min} characters.",
        too_long: str = "{attribute} should contain at most {max} characters.",
        not_equal: str = "{attribute} should contain {length} characters.",
        **options: Any,
    ):
        super().__init__(attributes, **options)
        self.length = None
        if isinstance(length, (list, tuple)):
            min, max = length[0], length[1] if len(length) > 1 else None
        elif length is not None:
            self.length = length
        self.min = min
        self.max = max
        self.too_short = too_short
        self.too_long = too_long
        self.not_equal = not_equal

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        if not isinstance(value, str):
            return [self.render(ctx, self.message)]

        size = len(value)
        if self.min is not None and size < self.min:
            return [self.render(ctx, self.too_short, min=self.min)]
        if self.max is not None and size > self.max:
            return [self.render(ctx, self.too_long, max=self.max)]
        if self.length is not None and size != self.length:
            return [self.render(ctx, self.not_equal, length=self.length)]
        return None

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        params: dict[str, Any] = {}
        messages = {"message": self.message}
        if self.min is not None:
            params["min"] = self.min
            messages["tooShort"] = self.too_short
        if self.max is not None:
            params["max"] = self.max
            messages["tooLong"] = self.too_long
        if self.length is not None:
            params["length"] = self.length
            messages["notEqual"] = self.not_equal
        return self.make_fragment(ctx, "string", params, **messages)


# =============================================================================
# Number Validators
# =============================================================================


class NumberValidator(BaseValidator):
    """Validates that the value is a number within bounds.

    Params:
        integer_only: Only accept integers
        min: Lower bound (inclusive)
        max: Upper bound (inclusive)
    """

    integer_only: bool = False

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        integer_only: bool | None = None,
        min: float | None = None,
        max: float | None = None,
        too_small: str = "{attribute} must be no less than {min}.",
        too_big: str = "{attribute} must be no greater than {max}.",
        **options: Any,
    ):
        if integer_only is not None:
            self.integer_only = integer_only
        if not options.get("message"):
            options["message"] = (
                "{attribute} must be an integer."
                if self.integer_only
                else "{attribute} must be a number."
            )
        super().__init__(attributes, **options)
        self.min = min
        self.max = max
        self.too_small = too_small
        self.too_big = too_big

    @property
    def pattern(self) -> str:
        return INTEGER_PATTERN if self.integer_only else NUMBER_PATTERN

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        number = self._parse(value)
        if number is None:
            return [self.render(ctx, self.message)]
        if self.min is not None and number < self.min:
            return [self.render(ctx, self.too_small, min=self.min)]
        if self.max is not None and number > self.max:
            return [self.render(ctx, self.too_big, max=self.max)]
        return None

    def _parse(self, value: Any) -> float | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if self.integer_only and not value.is_integer():
                return None
            return value
        if isinstance(value, str) and re.match(self.pattern, value):
            return float(value)
        return None

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        params: dict[str, Any] = {"pattern": self.pattern, "integerOnly": self.integer_only}
        messages = {"message": self.message}
        if self.min is not None:
            params["min"] = self.min
            messages["tooSmall"] = self.too_small
        if self.max is not None:
            params["max"] = self.max
            messages["tooBig"] = self.too_big
        return self.make_fragment(ctx, "number", params, **messages)


class IntegerValidator(NumberValidator):
    """NumberValidator that only accepts integers."""

    integer_only = True


# =============================================================================
# Boolean Validator
# =============================================================================


def loose_key(value: Any) -> str:
    """Loose comparison key: True/1/"1" compare equal, as do False/0/"0"."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class BooleanValidator(BaseValidator):
    """Validates that the value is either true_value or false_value."""

    default_message = '{attribute} must be either "{true}" or "{false}".'

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        true_value: Any = True,
        false_value: Any = False,
        strict: bool = False,
        **options: Any,
    ):
        super().__init__(attributes, **options)
        self.true_value = true_value
        self.false_value = false_value
        self.strict = strict

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        if self.strict:
            valid = any(
                type(value) is type(accepted) and value == accepted
                for accepted in (self.true_value, self.false_value)
            )
        else:
            valid = loose_key(value) in (loose_key(self.true_value), loose_key(self.false_value))

        if valid:
            return None
        return [self._message(ctx)]

    def _message(self, ctx: ValidationContext, keep_value: bool = False) -> str:
        return self.render(
            ctx,
            self.message,
            keep_value=keep_value,
            true=loose_key(self.true_value),
            false=loose_key(self.false_value),
        )

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        fragment = self.make_fragment(
            ctx,
            "boolean",
            {
                "trueValue": self.true_value,
                "falseValue": self.false_value,
                "strict": self.strict,
            },
        )
        return replace(fragment, message=self._message(ctx, keep_value=True))


# =============================================================================
# Pattern Validators
# =============================================================================


class RegularExpressionValidator(BaseValidator):
    """Validates the value against a regex pattern.

    Params:
        pattern: Regex pattern (searched, so anchor it when needed)
        not_: Invert the logic - the value must NOT match
    """

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        pattern: str,
        not_: bool = False,
        **options: Any,
    ):
        super().__init__(attributes, **options)
        try:
            re.compile(pattern)
        except re.error as e:
            raise ConfigurationError(f"Invalid pattern {pattern!r}: {e}") from e
        self.pattern = pattern
        self.not_ = not_

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        matched = isinstance(value, str) and re.search(self.pattern, value) is not None
        valid = isinstance(value, str) and matched != self.not_
        if valid:
            return None
        return [self.render(ctx, self.message)]

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        return self.make_fragment(
            ctx, "match", {"pattern": self.pattern, "not": self.not_}, message=self.message
        )


class EmailValidator(BaseValidator):
    """Validates that the value is an email address."""

    default_message = "{attribute} is not a valid email address."
    pattern = EMAIL_PATTERN

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        if isinstance(value, str) and re.match(self.pattern, value):
            return None
        return [self.render(ctx, self.message)]

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        return self.make_fragment(ctx, "email", {"pattern": self.pattern}, message=self.message)


class UrlValidator(BaseValidator):
    """Validates that the value is an absolute URL with an accepted scheme."""

    default_message = "{attribute} is not a valid URL."

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        valid_schemes: Sequence[str] = ("http", "https"),
        **options: Any,
    ):
        super().__init__(attributes, **options)
        self.valid_schemes = list(valid_schemes)
        self.pattern = URL_PATTERN.format(
            schemes="|".join(re.escape(s) for s in self.valid_schemes)
        )

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        if isinstance(value, str) and len(value) < 2000 and re.match(self.pattern, value, re.IGNORECASE):
            return None
        return [self.render(ctx, self.message)]

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        return self.make_fragment(
            ctx, "url", {"pattern": self.pattern, "ignoreCase": True}, message=self.message
        )


# =============================================================================
# Range Validator
# =============================================================================


class RangeValidator(BaseValidator):
    """Validates that the value is among a list of values.

    Params:
        range: Allowed values, or a callable (model, attribute) -> values
        strict: Require type identity as well as equality
        not_: Invert the logic - the value must NOT be in the list
        allow_array: Accept a list whose every element is in range
    """

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        range: Sequence[Any] | Callable[..., Sequence[Any]],
        strict: bool = False,
        not_: bool = False,
        allow_array: bool = False,
        **options: Any,
    ):
        super().__init__(attributes, **options)
        self.range = range
        self.strict = strict
        self.not_ = not_
        self.allow_array = allow_array

    def _values(self, ctx: ValidationContext) -> list[Any]:
        if callable(self.range):
            return list(self.range(ctx.model, ctx.attribute))
        return list(self.range)

    def _contains(self, values: list[Any], value: Any) -> bool:
        if self.strict:
            return any(type(v) is type(value) and v == value for v in values)
        return any(loose_key(v) == loose_key(value) for v in values)

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        values = self._values(ctx)
        if self.allow_array and isinstance(value, (list, tuple)):
            found = all(self._contains(values, item) for item in value)
        elif isinstance(value, (list, tuple, dict)):
            found = False
        else:
            found = self._contains(values, value)

        if found != self.not_:
            return None
        return [self.render(ctx, self.message)]

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        return self.make_fragment(
            ctx,
            "range",
            {
                "range": self._values(ctx),
                "strict": self.strict,
                "not": self.not_,
                "allowArray": self.allow_array,
            },
            message=self.message,
        )


# =============================================================================
# Compare Validator
# =============================================================================


COMPARE_MESSAGES = {
    "==": '{attribute} must be equal to "{compareValueOrAttribute}".',
    "===": '{attribute} must be equal to "{compareValueOrAttribute}".',
    "!=": '{attribute} must not be equal to "{compareValueOrAttribute}".',
    "!==": '{attribute} must not be equal to "{compareValueOrAttribute}".',
    ">": '{attribute} must be greater than "{compareValueOrAttribute}".',
    ">=": '{attribute} must be greater than or equal to "{compareValueOrAttribute}".',
    "<": '{attribute} must be less than "{compareValueOrAttribute}".',
    "<=": '{attribute} must be less than or equal to "{compareValueOrAttribute}".',
}


def compare_values(operator: str, type_: str, value: Any, compare_value: Any) -> bool:
    """Compare two values the same way on the server and in the client runtime."""
    if type_ == "number":
        try:
            value = float(value)
            compare_value = float(compare_value)
        except (TypeError, ValueError):
            return False
    elif operator not in ("===", "!=="):
        value = str(value) if value is not None else ""
        compare_value = str(compare_value) if compare_value is not None else ""

    if operator == "==":
        return value == compare_value
    if operator == "===":
        return type(value) is type(compare_value) and value == compare_value
    if operator == "!=":
        return value != compare_value
    if operator == "!==":
        return type(value) is not type(compare_value) or value != compare_value
    if operator == ">":
        return value > compare_value
    if operator == ">=":
        return value >= compare_value
    if operator == "<":
        return value < compare_value
    if operator == "<=":
        return value <= compare_value
    return False


class CompareValidator(BaseValidator):
    """Compares the value with another attribute or a constant.

    Params:
        compare_attribute: Attribute to compare with (default: "<attribute>_repeat")
        compare_value: Constant to compare with (takes precedence)
        operator: One of ==, ===, !=, !==, >, >=, <, <=
        type: "string" or "number"
    """

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        compare_attribute: str | None = None,
        compare_value: Any = None,
        operator: str = "==",
        type: str = "string",
        **options: Any,
    ):
        if operator not in COMPARE_MESSAGES:
            raise ConfigurationError(f"Unknown comparison operator: {operator}")
        if type not in ("string", "number"):
            raise ConfigurationError(f"Unknown comparison type: {type}")
        if not options.get("message"):
            options["message"] = COMPARE_MESSAGES[operator]
        super().__init__(attributes, **options)
        self.compare_attribute = compare_attribute
        self.compare_value = compare_value
        self.operator = operator
        self.type = type

    def _target(self, ctx: ValidationContext) -> tuple[Any, str]:
        """Return (value to compare with, its display text)."""
        if self.compare_value is not None:
            return self.compare_value, str(self.compare_value)
        if ctx.model is None:
            raise ConfigurationError(
                "CompareValidator needs compare_value when used without a model"
            )
        other = self.compare_attribute or f"{ctx.attribute}_repeat"
        return ctx.model.get_attribute(other), ctx.model.get_attribute_label(other)

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        compare_value, shown = self._target(ctx)
        if compare_values(self.operator, self.type, value, compare_value):
            return None
        return [
            self.render(
                ctx,
                self.message,
                compareValue=compare_value,
                compareAttribute=shown,
                compareValueOrAttribute=shown,
            )
        ]

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        params: dict[str, Any] = {"operator": self.operator, "type": self.type}
        if self.compare_value is not None:
            params["compareValue"] = self.compare_value
            shown = str(self.compare_value)
        else:
            other = self.compare_attribute or f"{ctx.attribute}_repeat"
            params["compareAttribute"] = other
            shown = ctx.model.get_attribute_label(other)
        fragment = self.make_fragment(ctx, "compare", params)
        return replace(
            fragment,
            message=self.render(
                ctx,
                self.message,
                keep_value=True,
                compareAttribute=shown,
                compareValueOrAttribute=shown,
            ),
        )


# =============================================================================
# Data Filters
# =============================================================================


class TrimValidator(BaseValidator):
    """Strips surrounding characters from string values. Never fails."""

    skip_on_empty = False

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        chars: str | None = None,
        skip_on_array: bool = True,
        **options: Any,
    ):
        super().__init__(attributes, **options)
        self.chars = chars
        self.skip_on_array = skip_on_array

    async def validate_attribute(self, ctx: ValidationContext) -> None:
        value = ctx.value
        if isinstance(value, (list, tuple, dict)) and self.skip_on_array:
            return
        if isinstance(value, str):
            ctx.model.set_attribute(ctx.attribute, value.strip(self.chars))

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        return None

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        return self.make_fragment(
            ctx, "trim", {"chars": self.chars, "skipOnArray": self.skip_on_array}
        )


class FilterValidator(BaseValidator):
    """Replaces the value with filter(value). Never fails.

    Params:
        filter: Callable receiving the current value and returning the new one
        skip_on_array: Leave list values untouched
    """

    skip_on_empty = False

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        filter: Callable[[Any], Any],
        skip_on_array: bool = False,
        **options: Any,
    ):
        if not callable(filter):
            raise ConfigurationError("FilterValidator requires a callable 'filter'")
        super().__init__(attributes, **options)
        self.filter = filter
        self.skip_on_array = skip_on_array

    async def validate_attribute(self, ctx: ValidationContext) -> None:
        if self.skip_on_array and isinstance(ctx.value, (list, tuple)):
            return
        ctx.model.set_attribute(ctx.attribute, self.filter(ctx.value))

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        return None


class DefaultValueValidator(BaseValidator):
    """Sets a default when the value is empty. Never fails.

    Params:
        value: Default value, or a callable (model, attribute) -> value
    """

    skip_on_empty = False

    def __init__(self, attributes: Sequence[str], *, value: Any, **options: Any):
        super().__init__(attributes, **options)
        self.value = value

    async def validate_attribute(self, ctx: ValidationContext) -> None:
        if not self.is_empty(ctx.value):
            return
        default = self.value(ctx.model, ctx.attribute) if callable(self.value) else self.value
        ctx.model.set_attribute(ctx.attribute, default)

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        return None


class SafeValidator(BaseValidator):
    """Marks attributes as safe for mass assignment. Performs no check."""

    async def validate_attribute(self, ctx: ValidationContext) -> None:
        return None

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        return None


# =============================================================================
# Each Validator
# =============================================================================


class EachValidator(BaseValidator):
    """Validates every element of a list with another validator.

    Params:
        rule: Inner rule as {"type": alias, **params}
        stop_on_first: Only report the first failing element
    """

    default_message = "{attribute} is invalid."

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        rule: dict[str, Any],
        stop_on_first: bool = True,
        **options: Any,
    ):
        super().__init__(attributes, **options)
        if not isinstance(rule, dict) or "type" not in rule:
            raise ConfigurationError("EachValidator requires rule={'type': ..., ...}")
        params = {k: v for k, v in rule.items() if k != "type"}
        self.inner = instantiate(ValidatorRegistry.get(rule["type"]), self.attributes, params)
        self.stop_on_first = stop_on_first

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        if not isinstance(value, (list, tuple)):
            return [self.render(ctx, self.message)]

        messages: list[str] = []
        for item in value:
            if self.inner.skip_on_empty and self.inner.is_empty(item):
                continue
            item_messages = await self.inner.check_value(item, ctx)
            if item_messages:
                messages.extend(item_messages)
                if self.stop_on_first:
                    break
        return messages or None


def register_builtin_validators() -> None:
    """Register all builtin validators with the ValidatorRegistry.

    Call this at application startup.
    """
    ValidatorRegistry.register("required", RequiredValidator)
    ValidatorRegistry.register("string", StringValidator)
    ValidatorRegistry.register("number", NumberValidator)
    ValidatorRegistry.register("double", NumberValidator)
    ValidatorRegistry.register("integer", IntegerValidator)
    ValidatorRegistry.register("boolean", BooleanValidator)
    ValidatorRegistry.register("email", EmailValidator)
    ValidatorRegistry.register("url", UrlValidator)
    ValidatorRegistry.register("match", RegularExpressionValidator)
    ValidatorRegistry.register("in", RangeValidator)
    ValidatorRegistry.register("range", RangeValidator)
    ValidatorRegistry.register("compare", CompareValidator)
    ValidatorRegistry.register("trim", TrimValidator)
    ValidatorRegistry.register("filter", FilterValidator)
    ValidatorRegistry.register("default", DefaultValueValidator)
    ValidatorRegistry.register("safe", SafeValidator)
    ValidatorRegistry.register("each", EachValidator)
