"""Hook execution service for RuleForge.

Runs the pre- and post-validation hooks of a model: the model's own
``before_validate``/``after_validate`` methods plus the named hooks it
declares. Hooks run sequentially in declared order; exceptions propagate.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any

from ruleforge.hooks.registry import HookRegistry
from ruleforge.hooks.types import (
    AFTER_VALIDATE,
    BEFORE_VALIDATE,
    HookContext,
)

if TYPE_CHECKING:
    from ruleforge.model import Model

logger = logging.getLogger(__name__)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class HookService:
    """Orchestrates hook execution around a validation pass."""

    async def run_before(self, model: Model, scenario: str) -> bool:
        """Run pre-validation hooks.

        Returns:
            False if any hook signals that validation must not proceed
        """
        proceed = await _maybe_await(model.before_validate())
        if proceed is False:
            logger.debug("%s.before_validate() aborted validation", type(model).__name__)
            return False

        for definition, hook_fn in HookRegistry.resolve(model, BEFORE_VALIDATE, scenario):
            result = await hook_fn(self._context(model, scenario, BEFORE_VALIDATE))
            if result is None:
                continue

            if result.abort:
                logger.info(
                    "Hook '%s' aborted validation of %s: %s",
                    definition.name,
                    type(model).__name__,
                    result.abort,
                )
                return False

            if result.update:
                model.set_attributes(result.update, safe_only=False)

        return True

    async def run_after(self, model: Model, scenario: str) -> None:
        """Run post-validation hooks. Their results are ignored."""
        for _definition, hook_fn in HookRegistry.resolve(model, AFTER_VALIDATE, scenario):
            await hook_fn(self._context(model, scenario, AFTER_VALIDATE))

        await _maybe_await(model.after_validate())

    def _context(self, model: Model, scenario: str, hook_point: str) -> HookContext:
        return HookContext(
            model=model,
            scenario=scenario,
            hook_point=hook_point,
            values=model.get_attributes(),
        )
