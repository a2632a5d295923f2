"""Tests for the validation hook system."""

import pytest

from ruleforge.hooks import (
    AFTER_VALIDATE,
    BEFORE_VALIDATE,
    HookContext,
    HookDefinition,
    HookRegistry,
    HookResult,
    HookService,
    hook,
)
from ruleforge.model import Model
from ruleforge.validation import (
    ConfigurationError,
    ValidationEngine,
    ValidatorRegistry,
    register_builtin_validators,
    rule,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clear_registries():
    """Clear hook and validator registries before and after each test."""
    HookRegistry.clear()
    ValidatorRegistry.clear()
    register_builtin_validators()
    yield
    HookRegistry.clear()
    ValidatorRegistry.clear()


@pytest.fixture
def engine():
    return ValidationEngine(hook_service=HookService())


class Phone(Model):
    phone: str = ""
    country: str = ""

    hooks = {BEFORE_VALIDATE: ["normalizePhone"]}

    def rules(self):
        return [
            rule("phone", "match", pattern=r"^\+?\d+$"),
            rule("country", "safe"),
        ]


# =============================================================================
# HookDefinition
# =============================================================================


class TestHookDefinition:
    def test_from_name(self):
        definition = HookDefinition.from_value("normalizePhone")
        assert definition.name == "normalizePhone"
        assert definition.on is None

    def test_from_dict(self):
        definition = HookDefinition.from_value(
            {"name": "audit", "on": "create", "description": "Log creates"}
        )
        assert definition.on == ["create"]
        assert definition.description == "Log creates"

    def test_applies_to(self):
        definition = HookDefinition(name="audit", on=["create"])
        assert definition.applies_to("create")
        assert not definition.applies_to("update")
        assert HookDefinition(name="audit").applies_to("anything")


# =============================================================================
# HookRegistry
# =============================================================================


class TestHookRegistry:
    def test_decorator_registers(self):
        @hook("noop")
        async def noop(ctx):
            return None

        assert HookRegistry.is_registered("noop")
        assert HookRegistry.get("noop") is noop
        assert HookRegistry.list_registered() == ["noop"]

    def test_register_is_idempotent(self):
        async def first(ctx):
            return None

        HookRegistry.register("h", first)
        HookRegistry.register("h", first)

        assert HookRegistry.get("h") is first

    def test_name_taken_by_another_hook(self):
        async def first(ctx):
            return None

        async def second(ctx):
            return None

        HookRegistry.register("h", first)
        with pytest.raises(ConfigurationError, match="already registered"):
            HookRegistry.register("h", second)

        assert HookRegistry.get("h") is first

    def test_sync_function_rejected(self):
        def sync_hook(ctx):
            return None

        with pytest.raises(ConfigurationError, match="must be an async function"):
            HookRegistry.register("sync", sync_hook)
        assert not HookRegistry.is_registered("sync")

    def test_signature_checked(self):
        with pytest.raises(ConfigurationError, match="single HookContext"):

            @hook("noArgs")
            async def no_args():
                return None

        with pytest.raises(ConfigurationError, match="single HookContext"):

            @hook("tooMany")
            async def too_many(ctx, extra):
                return None

    def test_unknown_hook(self):
        with pytest.raises(ConfigurationError, match="not registered"):
            HookRegistry.get("missing")

    def test_resolve_filters_by_scenario(self):
        @hook("audit")
        async def audit(ctx):
            return None

        @hook("trim")
        async def trim(ctx):
            return None

        class Order(Model):
            total: int = 0

            hooks = {
                BEFORE_VALIDATE: ["trim", {"name": "audit", "on": "checkout"}],
            }

        assert [d.name for d, _ in HookRegistry.resolve(Order(), BEFORE_VALIDATE, "default")] == ["trim"]
        assert HookRegistry.resolve(Order(), BEFORE_VALIDATE, "checkout") == [
            (HookDefinition(name="trim"), trim),
            (HookDefinition(name="audit", on=["checkout"]), audit),
        ]
        assert HookRegistry.resolve(Order(), AFTER_VALIDATE, "checkout") == []

    def test_resolve_unknown_hook_point(self):
        with pytest.raises(ConfigurationError, match="Unknown hook point"):
            HookRegistry.resolve(Phone(), "beforeSave", "default")

    @pytest.mark.asyncio
    async def test_missing_hook_detected_before_any_hook_runs(self, engine):
        calls = []

        @hook("first")
        async def first(ctx):
            calls.append("first")

        class Chain(Model):
            value: str = ""

            hooks = {BEFORE_VALIDATE: ["first", "missing"]}

        with pytest.raises(ConfigurationError, match="'missing' is not registered"):
            await engine.run(Chain())
        assert calls == []


# =============================================================================
# Hook execution
# =============================================================================


class TestBeforeValidate:
    @pytest.mark.asyncio
    async def test_update_is_applied_before_rules(self, engine):
        @hook("normalizePhone")
        async def normalize_phone(ctx: HookContext) -> HookResult:
            return HookResult(update={"phone": ctx.values["phone"].replace(" ", "")})

        form = Phone(phone="+32 475 12 34 56")
        result = await engine.run(form)

        assert result.success is True
        assert form.phone == "+32475123456"

    @pytest.mark.asyncio
    async def test_abort_skips_validation(self, engine):
        @hook("normalizePhone")
        async def stop(ctx: HookContext) -> HookResult:
            return HookResult(abort="maintenance")

        form = Phone(phone="not a phone")
        result = await engine.run(form)

        assert result.aborted is True
        assert result.success is True
        assert not form.has_errors()

    @pytest.mark.asyncio
    async def test_model_method_can_abort(self, engine):
        class Draft(Model):
            title: str = ""

            def rules(self):
                return [rule("title", "required")]

            def before_validate(self):
                return False

        result = await engine.run(Draft())
        assert result.aborted is True
        assert not result.errors

    @pytest.mark.asyncio
    async def test_context(self, engine):
        seen = []

        @hook("normalizePhone")
        async def capture(ctx: HookContext) -> None:
            seen.append((ctx.scenario, ctx.hook_point, ctx.values))

        await engine.run(Phone(phone="123", country="BE"))

        assert seen == [("default", BEFORE_VALIDATE, {"phone": "123", "country": "BE"})]

    @pytest.mark.asyncio
    async def test_unregistered_hook_raises(self, engine):
        with pytest.raises(ConfigurationError):
            await engine.run(Phone(phone="123"))

    @pytest.mark.asyncio
    async def test_hook_exception_propagates(self, engine):
        @hook("normalizePhone")
        async def broken(ctx):
            raise RuntimeError("hook failed")

        with pytest.raises(RuntimeError, match="hook failed"):
            await engine.run(Phone(phone="123"))


class TestScenarioFilteredHooks:
    @pytest.mark.asyncio
    async def test_hook_runs_only_in_its_scenarios(self, engine):
        calls = []

        @hook("audit")
        async def audit(ctx):
            calls.append(ctx.scenario)

        class Order(Model):
            total: int = 0

            hooks = {AFTER_VALIDATE: [{"name": "audit", "on": ["checkout"]}]}

            def scenarios(self):
                return {"default": ["total"], "checkout": ["total"]}

            def rules(self):
                return [rule("total", "integer")]

        await engine.run(Order())
        await engine.run(Order(scenario="checkout"))

        assert calls == ["checkout"]


class TestAfterValidate:
    @pytest.mark.asyncio
    async def test_after_hooks_see_errors(self, engine):
        seen = []

        @hook("report")
        async def report(ctx):
            seen.append(ctx.model.first_errors())

        class Form(Model):
            name: str = ""

            hooks = {AFTER_VALIDATE: ["report"]}

            def rules(self):
                return [rule("name", "required")]

            def after_validate(self):
                seen.append("method")

        await engine.run(Form())

        assert seen == [{"name": "Name cannot be blank."}, "method"]

    @pytest.mark.asyncio
    async def test_after_hook_result_is_ignored(self, engine):
        @hook("report")
        async def report(ctx):
            return HookResult(abort="ignored", update={"name": "changed"})

        class Form(Model):
            name: str = "kept"

            hooks = {AFTER_VALIDATE: ["report"]}

            def rules(self):
                return [rule("name", "required")]

        form = Form()
        result = await engine.run(form)

        assert result.success is True
        assert form.name == "kept"
