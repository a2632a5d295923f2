"""Hook registry for RuleForge.

Named hooks are registered once at startup and referenced from a model's
``hooks`` map or a form definition. The registry checks that every hook is
an async function taking a single HookContext, and resolves the hooks a
model declares for one hook point and scenario.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from ruleforge.exceptions import ConfigurationError
from ruleforge.hooks.types import VALID_HOOK_POINTS, HookContext, HookDefinition, HookResult

if TYPE_CHECKING:
    from ruleforge.model import Model

# async (HookContext) -> HookResult | None
HookFn = Callable[[HookContext], Awaitable[HookResult | None]]


def _check_hook_fn(name: str, hook_fn: HookFn) -> None:
    if not inspect.iscoroutinefunction(hook_fn):
        raise ConfigurationError(
            f"Hook '{name}' must be an async function, got {hook_fn!r}"
        )
    try:
        inspect.signature(hook_fn).bind(None)
    except TypeError as e:
        raise ConfigurationError(
            f"Hook '{name}' must accept a single HookContext argument: {e}"
        ) from e


class HookRegistry:
    """Registry for validation hooks.

    Example:
        @hook("normalizePhone")
        async def normalize_phone(ctx: HookContext) -> HookResult:
            ...

        class Contact(Model):
            hooks = {"beforeValidate": ["normalizePhone"]}
    """

    _hooks: dict[str, HookFn] = {}

    @classmethod
    def register(cls, name: str, hook_fn: HookFn) -> None:
        """Register a hook function by name.

        Registering the same function twice is a no-op.

        Raises:
            ConfigurationError: If the function is not an async one-argument
                callable, or the name is taken by another function
        """
        _check_hook_fn(name, hook_fn)
        existing = cls._hooks.get(name)
        if existing is hook_fn:
            return
        if existing is not None:
            raise ConfigurationError(
                f"Hook '{name}' is already registered to {existing.__qualname__}"
            )
        cls._hooks[name] = hook_fn

    @classmethod
    def get(cls, name: str) -> HookFn:
        """Get a registered hook function by name.

        Raises:
            ConfigurationError: If hook is not registered
        """
        if name not in cls._hooks:
            raise ConfigurationError(
                f"Hook '{name}' is not registered. "
                "Hooks must be explicitly registered at application startup."
            )
        return cls._hooks[name]

    @classmethod
    def resolve(
        cls,
        model: Model,
        hook_point: str,
        scenario: str,
    ) -> list[tuple[HookDefinition, HookFn]]:
        """Hooks ``model`` declares for ``hook_point`` that apply in ``scenario``.

        Every name is looked up before any hook runs, so a pass never starts
        with a hook missing further down the list.
        """
        if hook_point not in VALID_HOOK_POINTS:
            raise ConfigurationError(
                f"Unknown hook point '{hook_point}'. Valid: {', '.join(VALID_HOOK_POINTS)}"
            )
        definitions = [HookDefinition.from_value(h) for h in model.hooks.get(hook_point, [])]
        return [
            (definition, cls.get(definition.name))
            for definition in definitions
            if definition.applies_to(scenario)
        ]

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._hooks

    @classmethod
    def list_registered(cls) -> list[str]:
        return sorted(cls._hooks.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._hooks.clear()


def hook(name: str) -> Callable[[HookFn], HookFn]:
    """Decorator registering an async hook function under ``name``."""

    def decorator(fn: HookFn) -> HookFn:
        HookRegistry.register(name, fn)
        return fn

    return decorator
