"""Validation pass orchestration for RuleForge.

This module provides the service that runs one validation pass over a model:
1. Pre-validation hooks (may abort the pass)
2. Scenario resolution to the active attribute list
3. Validator materialization and filtering
4. Sequential execution with skip-on-empty / skip-on-error
5. Post-validation hooks
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence

from ruleforge.hooks.service import HookService
from ruleforge.validation.errors import ErrorCollector
from ruleforge.validation.registry import BaseValidator
from ruleforge.validation.scenarios import ScenarioResolver
from ruleforge.validation.types import QueryService, ValidationContext

if TYPE_CHECKING:
    from ruleforge.model import Model

logger = logging.getLogger(__name__)


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class ValidationResult:
    """Outcome of one validation pass.

    Attributes:
        success: True when no error was recorded
        errors: The model's error collector after the pass
        aborted: True when a pre-validation hook stopped the pass
    """

    success: bool
    errors: ErrorCollector = field(default_factory=ErrorCollector)
    aborted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "errors": self.errors.to_dict(),
        }


# =============================================================================
# Validation Engine
# =============================================================================


class ValidationEngine:
    """Runs validation passes.

    Validators are awaited one at a time in declaration order; nothing runs
    in parallel. Exceptions raised by validators or hooks propagate
    unchanged.

    Args:
        resolver: Scenario resolver; defaults to the model's own resolver
        hook_service: Hook runner for before/after validation
        query_service: Data access handed to store-backed validators
    """

    def __init__(
        self,
        resolver: ScenarioResolver | None = None,
        hook_service: HookService | None = None,
        query_service: QueryService | None = None,
    ):
        self.resolver = resolver
        self.hook_service = hook_service or HookService()
        self.query_service = query_service

    async def run(
        self,
        model: Model,
        scenario: str | None = None,
        attribute_names: Sequence[str] | None = None,
        clear_errors: bool = True,
    ) -> ValidationResult:
        """Validate a model.

        Args:
            model: The model to validate
            scenario: Scenario to validate under (defaults to ``model.scenario``)
            attribute_names: Restrict the pass to these attributes
            clear_errors: Clear existing errors first

        Returns:
            ValidationResult; errors are also left on the model
        """
        scenario = scenario if scenario is not None else model.scenario
        model_name = type(model).__name__

        if clear_errors:
            model.clear_errors()

        if not await self.hook_service.run_before(model, scenario):
            logger.debug("Validation of %s skipped by pre-validation hook", model_name)
            return ValidationResult(success=True, errors=model.errors, aborted=True)

        resolver = self.resolver or model.get_scenario_resolver()
        active = resolver.active_attributes(model, scenario)
        if attribute_names is not None:
            requested = set(attribute_names)
            active = [name for name in active if name in requested]

        validators = [v for v in model.get_validators() if v.is_active(scenario)]

        logger.debug(
            "Validating %s (scenario=%s, attributes=%s, validators=%d)",
            model_name,
            scenario,
            active,
            len(validators),
        )

        for validator in validators:
            await self._run_validator(validator, model, scenario, active)

        await self.hook_service.run_after(model, scenario)

        success = not model.has_errors()
        logger.debug("Validated %s: success=%s", model_name, success)
        return ValidationResult(success=success, errors=model.errors)

    async def _run_validator(
        self,
        validator: BaseValidator,
        model: Model,
        scenario: str,
        active: list[str],
    ) -> None:
        targets = [name for name in validator.attributes if name in active]
        if not targets:
            return

        if not validator.applies_to(model):
            logger.debug("%r skipped: condition not met", validator)
            return

        if validator.batch:
            if any(self._should_skip(validator, model, name) for name in targets):
                logger.debug("%r skipped for batch %s", validator, targets)
                return
            await validator.validate_attributes(
                ValidationContext(
                    model=model,
                    scenario=scenario,
                    attributes=targets,
                    query=self.query_service,
                )
            )
            return

        for name in targets:
            if self._should_skip(validator, model, name):
                logger.debug("%r skipped for '%s'", validator, name)
                continue
            await validator.validate_attribute(
                ValidationContext(
                    model=model,
                    scenario=scenario,
                    attribute=name,
                    attributes=[name],
                    value=model.get_attribute(name),
                    query=self.query_service,
                )
            )

    def _should_skip(self, validator: BaseValidator, model: Model, attribute: str) -> bool:
        if validator.skip_on_error and model.has_errors(attribute):
            return True
        if validator.skip_on_empty and validator.is_empty(model.get_attribute(attribute)):
            return True
        return False


async def validate_multiple(
    models: Sequence[Model],
    attribute_names: Sequence[str] | None = None,
    engine: ValidationEngine | None = None,
) -> bool:
    """Validate independent models one after another.

    Every model is validated even after a failure.

    Returns:
        True only if all models passed
    """
    engine = engine or ValidationEngine()
    valid = True
    for model in models:
        result = await engine.run(model, attribute_names=attribute_names)
        valid = result.success and valid
    return valid
