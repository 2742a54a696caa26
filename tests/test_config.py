"""Tests for environment-driven settings."""

from __future__ import annotations

from payment_monitor.config import Settings, VerificationMode


def test_defaults(monkeypatch):
    for var in ("STRIPE_WEBHOOK_SECRET", "PORT", "ALERT_EMAIL", "GMAIL_USER", "AIRTABLE_TABLE_NAME"):
        monkeypatch.delenv(var, raising=False)
    settings = Settings(_env_file=None)
    assert settings.port == 3000
    assert settings.airtable_table_name == "Failed Payments"
    assert settings.smtp_host == "smtp.gmail.com"
    assert settings.verification_mode is VerificationMode.DISABLED


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "whsec_abc")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("GMAIL_USER", "monitor@example.com")
    settings = Settings(_env_file=None)
    assert settings.verification_mode is VerificationMode.ENFORCED
    assert settings.port == 8080
    assert settings.alert_recipient == "monitor@example.com"


def test_empty_secret_is_disabled(monkeypatch):
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "")
    assert Settings(_env_file=None).verification_mode is VerificationMode.DISABLED


def test_alert_email_overrides_sender(monkeypatch):
    monkeypatch.setenv("GMAIL_USER", "monitor@example.com")
    monkeypatch.setenv("ALERT_EMAIL", "ops@example.com")
    assert Settings(_env_file=None).alert_recipient == "ops@example.com"
