"""Tests for settings loading."""

import logging

from soulthread.models.settings import Settings


def test_defaults(monkeypatch):
    for var in ("OPENAI_API_KEY", "EMAIL_BATCH_SIZE", "CURATED_MOCK_COUNT"):
        monkeypatch.delenv(var, raising=False)
    settings = Settings(_env_file=None)
    assert settings.email_batch_size == 10
    assert settings.email_batch_delay == 1.0
    assert settings.curated_mock_count == 8
    assert settings.curated_fallback_count == 5
    assert settings.default_max_items == 8
    assert settings.ai_enabled is False


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("EMAIL_BATCH_SIZE", "25")
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service")
    settings = Settings(_env_file=None)
    assert settings.ai_enabled is True
    assert settings.email_batch_size == 25
    assert settings.supabase_enabled is True


def test_supabase_needs_url_and_key():
    assert Settings(_env_file=None, supabase_url="https://x.supabase.co", supabase_service_key=None).supabase_enabled is False


def test_warns_when_mock_slice_smaller_than_fallback(caplog):
    with caplog.at_level(logging.WARNING):
        Settings(_env_file=None, curated_mock_count=2, curated_fallback_count=5)
    assert "curated_mock_count" in caplog.text
