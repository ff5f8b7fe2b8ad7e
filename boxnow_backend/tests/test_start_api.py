"""
Tests for the uvicorn launcher options.
"""
from start_api import uvicorn_options


def test_bind_from_settings(settings_factory):
    options = uvicorn_options(settings_factory(HOST="127.0.0.1", PORT=9000))

    assert options["host"] == "127.0.0.1"
    assert options["port"] == 9000
    assert options["log_level"] == "info"
    assert "reload" not in options


def test_default_port(settings_factory, monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    assert uvicorn_options(settings_factory())["port"] == 3001


def test_reload_only_for_debug_development(settings_factory):
    dev = uvicorn_options(settings_factory(DEBUG=True, ENVIRONMENT="development"))
    staging = uvicorn_options(settings_factory(DEBUG=True, ENVIRONMENT="staging"))

    assert dev["reload"] is True
    assert dev["reload_dirs"][0].endswith("app")
    assert dev["log_level"] == "debug"
    assert "reload" not in staging
