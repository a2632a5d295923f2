"""Tests for the Model base class and the model registry."""

import pytest

from ruleforge import MODEL_LEVEL, Model, ModelRegistry, model
from ruleforge.exceptions import UnknownModelError
from ruleforge.validation import ValidatorRegistry, register_builtin_validators, rule


@pytest.fixture(autouse=True)
def registries():
    ValidatorRegistry.clear()
    ModelRegistry.clear()
    register_builtin_validators()
    yield
    ValidatorRegistry.clear()
    ModelRegistry.clear()


class Signup(Model):
    username: str = ""
    email: str = ""
    tags: list = []
    _internal: str = "hidden"

    def rules(self):
        return [
            rule(["username", "email"], "required"),
            rule("email", "required", when=lambda m: m.username == "admin"),
            rule("tags", "safe"),
        ]

    def attribute_labels(self):
        return {"email": "E-mail address"}


class TestAttributes:
    def test_annotated_public_attributes(self):
        assert Signup.attributes() == ["username", "email", "tags"]

    def test_subclass_attributes_follow_base(self):
        class Extended(Signup):
            referrer: str = ""

        assert Extended.attributes() == ["username", "email", "tags", "referrer"]

    def test_defaults_are_copied_per_instance(self):
        first, second = Signup(), Signup()
        first.tags.append("x")
        assert second.tags == []

    def test_constructor_values(self):
        form = Signup(username="ann", scenario="default")
        assert form.username == "ann"
        assert form.get_attributes() == {"username": "ann", "email": "", "tags": []}

    def test_has_attribute(self):
        form = Signup()
        assert form.has_attribute("email")
        assert not form.has_attribute("_internal")
        assert not form.has_attribute("errors")

    def test_repr(self):
        assert repr(Signup(username="ann")) == "Signup(username='ann', email='', tags=[])"


class TestLabels:
    def test_declared_and_generated(self):
        form = Signup()
        assert form.get_attribute_label("email") == "E-mail address"
        assert form.get_attribute_label("username") == "Username"
        assert form.get_attribute_labels() == {
            "username": "Username",
            "email": "E-mail address",
            "tags": "Tags",
        }

    @pytest.mark.parametrize(
        "name,label",
        [
            ("personalSalary", "Personal Salary"),
            ("password_repeat", "Password Repeat"),
            ("zip", "Zip"),
        ],
    )
    def test_generate_attribute_label(self, name, label):
        assert Signup().generate_attribute_label(name) == label

    @pytest.mark.asyncio
    async def test_declared_label_used_in_messages(self):
        form = Signup(username="ann")
        await form.validate()
        assert form.first_errors() == {"email": "E-mail address cannot be blank."}


class TestErrors:
    def test_add_and_read(self):
        form = Signup()
        form.add_error("email", "Taken.")
        form.add_error("email", "Blocked.")
        form.add_error(None, "Try again later.")

        assert form.has_errors()
        assert form.has_errors("email")
        assert not form.has_errors("username")
        assert form.get_errors("email") == ["Taken.", "Blocked."]
        assert form.first_error("email") == "Taken."
        assert form.first_error("username") is None
        assert form.get_errors(MODEL_LEVEL) == ["Try again later."]
        assert form.get_errors() == {"email": ["Taken.", "Blocked."], "*": ["Try again later."]}

    def test_summary(self):
        form = Signup()
        form.add_errors({"email": ["Taken.", "Blocked."], "username": "Too short."})

        assert form.error_summary() == ["Taken.", "Too short."]
        assert form.error_summary(show_all=True) == ["Taken.", "Blocked.", "Too short."]

    def test_clear_one_attribute(self):
        form = Signup()
        form.add_errors({"email": "Taken.", "username": "Too short."})

        form.clear_errors("email")

        assert form.get_errors() == {"username": ["Too short."]}


class TestValidate:
    @pytest.mark.asyncio
    async def test_validate_returns_bool(self):
        form = Signup()
        assert await form.validate() is False
        form.load({"username": "ann", "email": "ann@example.com"})
        assert await form.validate() is True

    @pytest.mark.asyncio
    async def test_validate_subset(self):
        form = Signup()
        assert await form.validate(["username"]) is False
        assert list(form.get_errors()) == ["username"]

    def test_validators_are_rebuilt_each_call(self):
        form = Signup()
        assert form.get_validators() is not form.get_validators()
        assert len(form.get_validators()) == 3

    def test_active_validators_for_attribute(self):
        validators = Signup().active_validators("email")
        assert [type(v).__name__ for v in validators] == ["RequiredValidator", "RequiredValidator"]

    def test_is_attribute_required(self):
        form = Signup()
        assert form.is_attribute_required("username")
        assert form.is_attribute_required("email")
        assert not form.is_attribute_required("tags")

    def test_conditional_required_does_not_count(self):
        class Form(Model):
            nickname: str = ""

            def rules(self):
                return [rule("nickname", "required", when=lambda m: False)]

        assert not Form().is_attribute_required("nickname")


class TestModelRegistry:
    def test_decorator(self):
        @model("signup")
        class Registered(Signup):
            pass

        assert ModelRegistry.get("signup") is Registered
        assert ModelRegistry.is_registered("signup")
        assert isinstance(ModelRegistry.factory("signup")(), Registered)

    def test_default_name(self):
        @model()
        class Contact(Model):
            name: str = ""

        assert ModelRegistry.list_registered() == ["Contact"]

    def test_unknown(self):
        with pytest.raises(UnknownModelError, match="Form 'missing' is not registered"):
            ModelRegistry.get("missing")
