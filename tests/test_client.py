"""Tests for client-side validation descriptors and the reference runtime."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from ruleforge.api import AjaxValidationProtocol
from ruleforge.client import (
    FRAGMENT_BINDINGS,
    ClientFormSpec,
    ClientValidationBridge,
    ClientValidationSession,
    SubmissionCancelled,
)
from ruleforge.model import Model
from ruleforge.validation import (
    ClientFragment,
    ConfigurationError,
    ValidationEngine,
    ValidatorRegistry,
    register_builtin_validators,
    register_canned_validators,
    rule,
)


@pytest.fixture(autouse=True)
def validators():
    ValidatorRegistry.clear()
    register_builtin_validators()
    register_canned_validators()
    yield
    ValidatorRegistry.clear()


@pytest.fixture
def bridge():
    return ClientValidationBridge()


class Register(Model):
    username: str = ""
    email: str = ""
    age: str = ""
    password: str = ""
    password_repeat: str = ""
    role: str = ""
    terms: str = ""

    def rules(self):
        return [
            rule("username", "trim"),
            rule(["username", "email", "password"], "required"),
            rule("username", "string", min=3, max=12),
            rule("username", "match", pattern=r"^[a-z]+$"),
            rule("email", "email"),
            rule("age", "integer", min=18),
            rule("password", "string", min=6),
            rule("password_repeat", "compare", compare_attribute="password"),
            rule("role", "in", range=["user", "editor"]),
            rule("terms", "boolean"),
        ]


class Account(Model):
    username: str = ""

    def rules(self):
        return [
            rule("username", "required"),
            rule("username", "string", max=12),
            rule("username", "unique", target_model="User"),
        ]


# =============================================================================
# Bridge
# =============================================================================


class TestBridge:
    def test_descriptor_shape(self, bridge):
        class Contact(Model):
            email: str = ""

            def rules(self):
                return [rule("email", "required"), rule("email", "email")]

        spec = bridge.build(Contact())

        assert spec.to_dict() == {
            "form": "Contact",
            "scenario": "default",
            "bindings": list(FRAGMENT_BINDINGS),
            "attributes": {
                "email": {
                    "label": "Email",
                    "fragments": [
                        {
                            "kind": "required",
                            "params": {"strict": False},
                            "message": "Email cannot be blank.",
                            "skipOnEmpty": False,
                            "skipOnError": True,
                            "deferred": False,
                        },
                        {
                            "kind": "email",
                            "params": {"pattern": spec.fragments_for("email")[1].params["pattern"]},
                            "message": "Email is not a valid email address.",
                            "skipOnEmpty": True,
                            "skipOnError": True,
                            "deferred": False,
                        },
                    ],
                }
            },
        }

    def test_value_placeholder_left_for_client(self, bridge):
        spec = bridge.build(Account())
        remote = spec.fragments_for("username")[2]

        assert remote.kind == "remote"
        assert remote.deferred is True
        assert remote.message == 'Username "{value}" has already been taken.'
        assert spec.has_deferred

    def test_alternate_messages(self, bridge):
        fragment = bridge.build(Register()).fragments_for("username")[2]

        assert fragment.kind == "string"
        assert fragment.params == {"min": 3, "max": 12}
        assert fragment.messages["tooShort"] == "Username should contain at least 3 characters."
        assert fragment.messages["tooLong"] == "Username should contain at most 12 characters."

    def test_only_active_validators_and_attributes(self, bridge):
        class Profile(Model):
            name: str = ""
            nickname: str = ""
            bio: str = ""

            def scenarios(self):
                return {"default": ["name", "bio"], "admin": ["name", "nickname", "bio"]}

            def rules(self):
                return [
                    rule("name", "required"),
                    rule("nickname", "required"),
                    rule("name", "string", max=10, on="admin"),
                    rule("bio", "string", max=100, enable_client_validation=False),
                ]

        spec = bridge.build(Profile())

        assert list(spec.attributes) == ["name", "bio"]
        assert [f.kind for f in spec.fragments_for("name")] == ["required"]
        assert spec.fragments_for("bio") == []

        admin = bridge.build(Profile(), scenario="admin")
        assert [f.kind for f in admin.fragments_for("name")] == ["required", "string"]

    def test_server_condition_ignored_client_condition_passed(self, bridge):
        class Company(Model):
            type: str = ""
            vat: str = ""

            def rules(self):
                return [
                    rule("vat", "required", when=lambda m: m.type == "business", when_client="isBusiness"),
                    rule("type", "safe"),
                ]

        fragment = bridge.build(Company()).fragments_for("vat")[0]

        assert fragment.condition == "isBusiness"
        assert fragment.to_dict()["condition"] == "isBusiness"

    def test_inline_validators(self, bridge):
        class Form(Model):
            code: str = ""
            other: str = ""

            def rules(self):
                return [
                    rule("code", "check_code", client=lambda attribute, params: ClientFragment(
                        kind="match", params={"pattern": "^[A-Z]{3}$", "not": False},
                        message="Code must be three capitals.",
                    )),
                    rule("other", "check_code"),
                ]

            def check_code(self, attribute, params):
                pass

        spec = bridge.build(Form())

        assert [f.kind for f in spec.fragments_for("code")] == ["match"]
        assert spec.fragments_for("other") == []

    def test_from_dict(self, bridge):
        spec = bridge.build(Account())
        rebuilt = ClientFormSpec.from_dict(spec.to_dict())

        assert rebuilt.to_dict() == spec.to_dict()

    def test_unknown_scenario(self, bridge):
        with pytest.raises(ConfigurationError):
            bridge.build(Register(), scenario="nope")


# =============================================================================
# Runtime parity with the server
# =============================================================================


PARITY_CASES = [
    {},
    {
        "username": "   ",
        "email": "bad",
        "age": "abc",
        "password": "x",
        "password_repeat": "y",
        "role": "root",
        "terms": "maybe",
    },
    {
        "username": "Ab",
        "email": "ann@example.com",
        "age": "17",
        "password": "secret1",
        "password_repeat": "secret2",
        "role": "editor",
        "terms": "1",
    },
    {"username": "ANNA", "email": "a@b.io", "age": "18", "password": "secret1"},
    {
        "username": "  anna  ",
        "email": "anna@example.com",
        "age": 30,
        "password": "secret1",
        "password_repeat": "secret1",
        "role": "user",
        "terms": True,
    },
]


class TestParity:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("values", PARITY_CASES)
    async def test_client_matches_server(self, bridge, values):
        form = Register()
        form.load(values)
        server = await ValidationEngine().run(form)

        session = ClientValidationSession(bridge.build(Register()))
        client = await session.validate(values)

        assert client.messages == server.errors.to_dict()
        assert client.success is server.success

    @pytest.mark.asyncio
    async def test_value_substituted_in_client_message(self):
        spec = ClientFormSpec.from_dict(
            {
                "form": "Tag",
                "scenario": "default",
                "attributes": {
                    "tag": {
                        "label": "Tag",
                        "fragments": [
                            {"kind": "match", "params": {"pattern": "^#"}, "message": '"{value}" is not a tag.'}
                        ],
                    }
                },
            }
        )

        result = await ClientValidationSession(spec).validate({"tag": "oops"})

        assert result.first_messages() == {"tag": '"oops" is not a tag.'}

    @pytest.mark.asyncio
    async def test_only(self, bridge):
        session = ClientValidationSession(bridge.build(Register()))

        submission = await session.submit({}, only=["email"])
        result = await submission.result()

        assert result.messages == {"email": ["Email cannot be blank."]}

    @pytest.mark.asyncio
    async def test_conditions(self, bridge):
        class Company(Model):
            type: str = ""
            vat: str = ""

            def rules(self):
                return [
                    rule("vat", "required", when_client="isBusiness"),
                    rule("type", "safe"),
                ]

        spec = bridge.build(Company())
        session = ClientValidationSession(
            spec, conditions={"isBusiness": lambda attribute, values: values.get("type") == "business"}
        )

        assert (await session.validate({"type": "private"})).success is True
        assert (await session.validate({"type": "business"})).messages == {
            "vat": ["Vat cannot be blank."]
        }

        with pytest.raises(ConfigurationError, match="Unknown client condition"):
            await ClientValidationSession(spec).validate({})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["-", "abc", "ABC", ""])
    async def test_custom_emptiness_checked_on_server(self, bridge, code):
        class Voucher(Model):
            code: str = ""

            def rules(self):
                return [
                    rule(
                        "code",
                        "match",
                        pattern=r"^[A-Z]+$",
                        is_empty=lambda value: value in (None, "", "-"),
                    ),
                ]

        spec = bridge.build(Voucher())
        [fragment] = spec.fragments_for("code")
        assert fragment.kind == "remote"
        assert fragment.deferred is True
        assert fragment.skip_on_empty is False

        form = Voucher()
        form.load({"code": code})
        server = await ValidationEngine().run(form)

        session = ClientValidationSession(spec, remote=AjaxValidationProtocol(Voucher))
        client = await session.validate({"code": code})

        assert client.messages == server.errors.to_dict()
        assert client.success is server.success


# =============================================================================
# Deferred checks
# =============================================================================


class SlowRemote:
    """Remote validator that blocks until released."""

    def __init__(self):
        self.release = asyncio.Event()
        self.calls = []

    async def __call__(self, payload):
        self.calls.append(payload)
        await self.release.wait()
        return {"username": ["Taken."]}


class TestDeferred:
    @pytest.mark.asyncio
    async def test_remote_through_ajax_protocol(self, bridge):
        query = AsyncMock()
        query.exists.return_value = True
        remote = AjaxValidationProtocol(Account, engine=ValidationEngine(query_service=query))
        session = ClientValidationSession(bridge.build(Account()), remote=remote)

        result = await session.validate({"username": "ann"})

        assert result.success is False
        assert result.messages == {"username": ['Username "ann" has already been taken.']}

    @pytest.mark.asyncio
    async def test_remote_skipped_after_local_error(self, bridge):
        remote = AsyncMock(return_value={})
        session = ClientValidationSession(bridge.build(Account()), remote=remote)

        result = await session.validate({"username": "x" * 20})

        assert result.messages == {"username": ["Username should contain at most 12 characters."]}
        remote.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remote_payload(self, bridge):
        remote = AsyncMock(return_value={})
        session = ClientValidationSession(bridge.build(Account()), remote=remote)

        result = await session.validate({"username": "ann"})

        assert result.success is True
        remote.assert_awaited_once_with(
            {"scenario": "default", "attributes": {"username": "ann"}, "only": ["username"]}
        )

    @pytest.mark.asyncio
    async def test_sync_messages_available_before_deferred_complete(self, bridge):
        class Signup(Account):
            email: str = ""

            def rules(self):
                return super().rules() + [rule("email", "required")]

        remote = SlowRemote()
        session = ClientValidationSession(bridge.build(Signup()), remote=remote)

        submission = await session.submit({"username": "ann"})

        assert submission.messages == {"email": ["Email cannot be blank."]}
        assert not submission.done()

        remote.release.set()
        result = await submission.result()
        assert result.messages == {"email": ["Email cannot be blank."], "username": ["Taken."]}

    @pytest.mark.asyncio
    async def test_cancel(self, bridge):
        session = ClientValidationSession(bridge.build(Account()), remote=SlowRemote())

        submission = await session.submit({"username": "ann"})
        submission.cancel()

        assert submission.cancelled
        assert submission.done()
        with pytest.raises(SubmissionCancelled):
            await submission.result()

    @pytest.mark.asyncio
    async def test_new_submission_cancels_previous(self, bridge):
        remote = SlowRemote()
        session = ClientValidationSession(bridge.build(Account()), remote=remote)

        first = await session.submit({"username": "ann"})
        second = await session.submit({"username": "bob"})

        assert first.cancelled
        assert not second.cancelled

        remote.release.set()
        assert (await second.result()).messages == {"username": ["Taken."]}
        with pytest.raises(SubmissionCancelled):
            await first.result()

    @pytest.mark.asyncio
    async def test_one_remote_call_per_attribute(self, bridge):
        class Invited(Model):
            username: str = ""

            def rules(self):
                return [
                    rule("username", "unique", target_model="User", message="taken"),
                    rule(
                        "username",
                        "exist",
                        target_model="Invite",
                        message="no invite",
                        skip_on_error=False,
                    ),
                ]

        query = AsyncMock()
        query.exists.return_value = True
        engine = ValidationEngine(query_service=query)
        remote = AsyncMock(wraps=AjaxValidationProtocol(Invited, engine=engine).__call__)

        form = Invited()
        form.load({"username": "ann"})
        server = await engine.run(form)

        session = ClientValidationSession(bridge.build(Invited()), remote=remote)
        client = await session.validate({"username": "ann"})

        assert server.errors.to_dict() == {"username": ["taken"]}
        assert client.messages == server.errors.to_dict()
        remote.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_server_messages_replace_local_ones(self, bridge):
        class Handle(Model):
            username: str = ""

            def rules(self):
                return [
                    rule("username", "match", pattern=r"^[a-z]+$", skip_on_error=False),
                    rule("username", "unique", target_model="User", skip_on_error=False),
                ]

        query = AsyncMock()
        query.exists.return_value = True
        remote = AjaxValidationProtocol(Handle, engine=ValidationEngine(query_service=query))
        session = ClientValidationSession(bridge.build(Handle()), remote=remote)

        submission = await session.submit({"username": "Ann"})
        assert submission.messages == {"username": ["Username is invalid."]}

        result = await submission.result()
        assert result.messages == {
            "username": ["Username is invalid.", 'Username "Ann" has already been taken.']
        }

    @pytest.mark.asyncio
    async def test_failed_remote_cancels_pending_checks(self, bridge):
        class Profile(Model):
            username: str = ""
            email: str = ""

            def rules(self):
                return [rule(["username", "email"], "unique", target_model="User")]

        class FailingRemote:
            def __init__(self):
                self.cancelled = asyncio.Event()

            async def __call__(self, payload):
                if payload["only"] == ["username"]:
                    raise RuntimeError("remote unavailable")
                try:
                    await asyncio.Event().wait()
                except asyncio.CancelledError:
                    self.cancelled.set()
                    raise

        remote = FailingRemote()
        session = ClientValidationSession(bridge.build(Profile()), remote=remote)

        submission = await session.submit({"username": "ann", "email": "ann@example.com"})
        with pytest.raises(RuntimeError, match="remote unavailable"):
            await submission.result()

        await asyncio.wait_for(remote.cancelled.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_missing_remote(self, bridge):
        session = ClientValidationSession(bridge.build(Account()))

        with pytest.raises(ConfigurationError, match="no remote validator"):
            await session.submit({"username": "ann"})
