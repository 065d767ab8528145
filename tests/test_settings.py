"""
Tests for `config/settings.py`.
"""

from __future__ import annotations

import pytest

from config.settings import Settings, load_settings


def test_load_settings_defaults(monkeypatch) -> None:
    for name in ("SALES_BACKEND", "SUPABASE_URL", "SUPABASE_KEY", "DEFAULT_CURRENCY", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("config.settings.load_dotenv", lambda **kwargs: False)

    settings = load_settings()

    assert settings.backend == "memory"
    assert settings.supabase_url is None
    assert settings.default_currency == "BRL"
    assert settings.log_level == "INFO"


def test_load_settings_reads_environment(monkeypatch) -> None:
    monkeypatch.setattr("config.settings.load_dotenv", lambda **kwargs: False)
    monkeypatch.setenv("SALES_BACKEND", " Supabase ")
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "service-key")
    monkeypatch.setenv("DEFAULT_CURRENCY", "usd")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.backend == "supabase"
    assert settings.default_currency == "USD"
    assert settings.log_level == "DEBUG"
    assert settings.require_supabase_credentials() == ("https://example.supabase.co", "service-key")


def test_unknown_backend_is_rejected() -> None:
    with pytest.raises(RuntimeError):
        Settings(backend="mysql")


def test_supabase_credentials_are_required() -> None:
    with pytest.raises(RuntimeError, match="SUPABASE_URL"):
        Settings(backend="supabase").require_supabase_credentials()

    with pytest.raises(RuntimeError, match="SUPABASE_KEY"):
        Settings(backend="supabase", supabase_url="https://example.supabase.co").require_supabase_credentials()
