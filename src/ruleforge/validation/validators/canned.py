"""Canned validators for RuleForge.

These validators need more than the attribute value: they query a data
store through the QueryService or look at several attributes at once.

Available validators:
- unique: Validate the value is not already taken in the store
- exist: Validate the value references an existing record
- date_range: Validate a start date is before an end date (batch)
"""

from dataclasses import replace
from datetime import date, datetime
from typing import Any, Sequence

from ruleforge.validation.registry import BaseValidator, ValidatorRegistry
from ruleforge.validation.types import (
    ClientFragment,
    ConfigurationError,
    QueryService,
    ValidationContext,
)


def _require_query(ctx: ValidationContext, validator: BaseValidator) -> QueryService:
    if ctx.query is None:
        raise ConfigurationError(
            f"{type(validator).__name__} requires a QueryService; "
            "pass query_service to the ValidationEngine"
        )
    return ctx.query


# =============================================================================
# Unique Validator
# =============================================================================


class UniqueValidator(BaseValidator):
    """Validates that the value is not already used by another record.

    Params:
        target_model: Entity to query (default: the model's class name)
        target_attribute: Field to match (default: the validated attribute)
        filter: Extra conditions as {"field": value}
    """

    default_message = '{attribute} "{value}" has already been taken.'

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        target_model: str | None = None,
        target_attribute: str | None = None,
        filter: dict[str, Any] | None = None,
        **options: Any,
    ):
        super().__init__(attributes, **options)
        self.target_model = target_model
        self.target_attribute = target_attribute
        self.filter = filter or {}

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        query = _require_query(ctx, self)
        entity = self.target_model or type(ctx.model).__name__

        # Build filter for duplicate check
        filter_conditions = [
            {"field": self.target_attribute or ctx.attribute, "op": "eq", "value": value}
        ]
        for field, expected in self.filter.items():
            filter_conditions.append({"field": field, "op": "eq", "value": expected})

        # Exclude the current record when it already has a primary key
        record_id = ctx.value_of("id") if ctx.model is not None and ctx.model.has_attribute("id") else None
        if record_id:
            filter_conditions.append({"field": "id", "op": "neq", "value": record_id})

        if await query.exists(entity, {"and": filter_conditions}):
            return [self.render(ctx, self.message)]
        return None

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        return self.remote_fragment(ctx)


# =============================================================================
# Exist Validator
# =============================================================================


class ExistValidator(BaseValidator):
    """Validates that the value references an existing record.

    Params:
        target_model: Entity to query (required)
        target_attribute: Field to match (default: the validated attribute)
    """

    default_message = "{attribute} is invalid."

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        target_model: str,
        target_attribute: str | None = None,
        **options: Any,
    ):
        super().__init__(attributes, **options)
        self.target_model = target_model
        self.target_attribute = target_attribute

    async def check_value(self, value: Any, ctx: ValidationContext) -> list[str] | None:
        query = _require_query(ctx, self)
        field = self.target_attribute or ctx.attribute
        exists = await query.exists(
            self.target_model,
            {"and": [{"field": field, "op": "eq", "value": value}]},
        )
        if exists:
            return None
        return [self.render(ctx, self.message)]

    def client_fragment(self, ctx: ValidationContext) -> ClientFragment | None:
        return self.remote_fragment(ctx)


# =============================================================================
# Date Range Validator
# =============================================================================


class DateRangeValidator(BaseValidator):
    """Validates that a start date is before an end date.

    Runs in batch mode over both attributes; the error is reported on the
    end attribute.

    Params:
        start_attribute: Name of the start date attribute (default: first attribute)
        end_attribute: Name of the end date attribute (default: second attribute)
        allow_equal: If true, start == end is valid (default: false)
    """

    batch = True
    default_message = "{attribute} must be after {start}."

    def __init__(
        self,
        attributes: Sequence[str],
        *,
        start_attribute: str | None = None,
        end_attribute: str | None = None,
        allow_equal: bool = False,
        **options: Any,
    ):
        super().__init__(attributes, **options)
        if start_attribute is None or end_attribute is None:
            if len(self.attributes) != 2:
                raise ConfigurationError(
                    "date_range needs exactly two attributes or start/end_attribute"
                )
        self.start_attribute = start_attribute or self.attributes[0]
        self.end_attribute = end_attribute or self.attributes[1]
        self.allow_equal = allow_equal

    async def validate_attributes(self, ctx: ValidationContext) -> None:
        start_value = _as_date(ctx.value_of(self.start_attribute))
        end_value = _as_date(ctx.value_of(self.end_attribute))

        # If either is missing, skip validation (use required for that)
        if start_value is None or end_value is None:
            return

        if start_value < end_value or (self.allow_equal and start_value == end_value):
            return

        end_ctx = replace(ctx, attribute=self.end_attribute, value=end_value)
        ctx.model.add_error(
            self.end_attribute,
            self.render(
                end_ctx,
                self.message,
                start=ctx.model.get_attribute_label(self.start_attribute),
            ),
        )


def _as_date(value: Any) -> date | None:
    # Convert datetime / ISO strings to date for comparison
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def register_canned_validators() -> None:
    """Register all canned validators with the ValidatorRegistry.

    Call this at application startup.
    """
    ValidatorRegistry.register("unique", UniqueValidator)
    ValidatorRegistry.register("exist", ExistValidator)
    ValidatorRegistry.register("date_range", DateRangeValidator)
