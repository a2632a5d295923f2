"""RuleForge validation hook system.

Provides extension points for logic that runs around a validation pass:
- beforeValidate: Before any rule runs (can update values, can skip validation)
- afterValidate: After all rules ran (cleanup, normalization; result ignored)

Usage:
    from ruleforge.hooks import hook, HookContext, HookResult

    @hook("normalizePhone")
    async def normalize_phone(ctx: HookContext) -> HookResult:
        phone = ctx.values.get("phone") or ""
        return HookResult(update={"phone": phone.replace(" ", "")})
"""

from ruleforge.hooks.registry import HookRegistry, hook
from ruleforge.hooks.service import HookService
from ruleforge.hooks.types import (
    AFTER_VALIDATE,
    BEFORE_VALIDATE,
    VALID_HOOK_POINTS,
    HookContext,
    HookDefinition,
    HookResult,
)

__all__ = [
    "AFTER_VALIDATE",
    "BEFORE_VALIDATE",
    "HookContext",
    "HookDefinition",
    "HookRegistry",
    "HookResult",
    "HookService",
    "VALID_HOOK_POINTS",
    "hook",
]
