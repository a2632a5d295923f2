"""Tests for the validation HTTP API."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from ruleforge.api.app import create_app
from ruleforge.config import Settings
from ruleforge.model import ModelRegistry
from ruleforge.validation import ValidatorRegistry

FORMS_DIR = Path(__file__).parent / "fixtures" / "forms"


@pytest.fixture
def client():
    """Test client with the fixture forms loaded."""
    ValidatorRegistry.clear()
    ModelRegistry.clear()
    app = create_app(Settings(forms_path=FORMS_DIR, cors_origins=[]))
    with TestClient(app) as client:
        yield client
    ValidatorRegistry.clear()
    ModelRegistry.clear()


class TestForms:
    def test_list(self, client):
        response = client.get("/api/forms")
        assert response.status_code == 200
        assert response.json() == {"data": ["ContactForm", "SignupForm"]}

    def test_settings_on_app_state(self, client):
        assert client.app.state.settings.forms_path == FORMS_DIR
        assert client.app.state.form_loader.list_forms() == ["ContactForm", "SignupForm"]


class TestValidate:
    def test_errors(self, client):
        response = client.post(
            "/api/validate/ContactForm",
            json={"scenario": "default", "attributes": {"name": "Ann", "email": "bad", "body": "Hi"}},
        )

        assert response.status_code == 200
        assert response.json() == {"email": ["E-mail is not a valid email address."]}

    def test_valid(self, client):
        response = client.post(
            "/api/validate/ContactForm",
            json={"attributes": {"name": "Ann", "email": "ann@example.com", "body": "Hi"}},
        )

        assert response.status_code == 200
        assert response.json() == {}

    def test_only(self, client):
        response = client.post(
            "/api/validate/SignupForm",
            json={"attributes": {"password": "short"}, "only": ["password"]},
        )

        assert response.json() == {"password": ["Password is too weak."]}

    def test_unknown_form(self, client):
        response = client.post("/api/validate/Nope", json={})

        assert response.status_code == 404
        assert response.json()["detail"] == "Form 'Nope' is not registered"

    def test_unknown_scenario(self, client):
        response = client.post("/api/validate/ContactForm", json={"scenario": "nope"})

        assert response.status_code == 400
        assert "Unknown scenario 'nope'" in response.json()["detail"]

    def test_invalid_body(self, client):
        response = client.post("/api/validate/ContactForm", json={"attributes": "not a dict"})
        assert response.status_code == 422


class TestClientSpec:
    def test_default_scenario(self, client):
        response = client.get("/api/forms/ContactForm/client")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["form"] == "ContactForm"
        assert data["scenario"] == "default"
        assert list(data["attributes"]) == ["name", "email", "subject", "body"]
        assert [f["kind"] for f in data["attributes"]["email"]["fragments"]] == ["required", "email"]

    def test_guest_scenario(self, client):
        data = client.get("/api/forms/ContactForm/client", params={"scenario": "guest"}).json()["data"]

        assert data["attributes"]["verifyCode"]["label"] == "Verification code"
        assert data["attributes"]["verifyCode"]["fragments"][0]["message"] == (
            "Verification code cannot be blank."
        )

    def test_unknown_scenario(self, client):
        response = client.get("/api/forms/ContactForm/client", params={"scenario": "nope"})
        assert response.status_code == 400

    def test_unknown_form(self, client):
        assert client.get("/api/forms/Nope/client").status_code == 404


class TestStartup:
    def test_missing_forms_directory(self, tmp_path):
        ModelRegistry.clear()
        app = create_app(Settings(forms_path=tmp_path / "nope", cors_origins=[]))

        with TestClient(app) as client:
            assert client.get("/api/forms").json() == {"data": []}

    def test_schema_issues_are_logged(self, tmp_path, caplog):
        ModelRegistry.clear()
        (tmp_path / "ref.yaml").write_text(
            "form: Ref\nattributes: [{name: a}]\nrules:\n  - {attributes: b, type: required}\n"
        )
        app = create_app(Settings(forms_path=tmp_path, cors_origins=[]))

        with caplog.at_level("WARNING", logger="ruleforge.api.app"):
            with TestClient(app) as client:
                assert client.get("/api/forms").json() == {"data": ["Ref"]}

        assert "Form schema warning" in caplog.text
        ModelRegistry.clear()
