"""Tests for environment-based settings."""

from pathlib import Path

from ruleforge.config import Settings


def test_defaults(monkeypatch, tmp_path):
    for name in (
        "RULEFORGE_FORMS_PATH",
        "RULEFORGE_SCENARIO_FALLBACK",
        "RULEFORGE_LOG_LEVEL",
        "RULEFORGE_HOST",
        "RULEFORGE_PORT",
        "RULEFORGE_CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env(base_path=tmp_path)

    assert settings.forms_path == tmp_path / "forms"
    assert settings.scenario_fallback is False
    assert settings.log_level == "INFO"
    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.cors_origins == ["http://localhost:5173"]


def test_from_env(monkeypatch):
    monkeypatch.setenv("RULEFORGE_FORMS_PATH", "/srv/forms")
    monkeypatch.setenv("RULEFORGE_SCENARIO_FALLBACK", "yes")
    monkeypatch.setenv("RULEFORGE_LOG_LEVEL", "debug")
    monkeypatch.setenv("RULEFORGE_PORT", "9000")
    monkeypatch.setenv("RULEFORGE_CORS_ORIGINS", "https://a.example, https://b.example,")

    settings = Settings.from_env()

    assert settings.forms_path == Path("/srv/forms")
    assert settings.scenario_fallback is True
    assert settings.log_level == "DEBUG"
    assert settings.port == 9000
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_empty_cors_origins(monkeypatch):
    monkeypatch.setenv("RULEFORGE_CORS_ORIGINS", "")
    assert Settings.from_env().cors_origins == []
