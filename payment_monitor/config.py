"""Payment monitor configuration."""

from __future__ import annotations

from enum import Enum

from pydantic_settings import BaseSettings


class VerificationMode(str, Enum):
    """Whether inbound webhook signatures are checked."""

    ENFORCED = "enforced"
    DISABLED = "disabled"  # No signing secret configured (insecure pass-through)


class Settings(BaseSettings):
    """Environment-driven settings for the payment monitor."""

    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str | None = None
    stripe_timeout_seconds: float = 10.0

    # Alert email (Gmail SMTP with an app password)
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    gmail_user: str = ""
    gmail_app_password: str = ""
    alert_email: str = ""

    # Airtable record store
    airtable_api_key: str = ""
    airtable_base_id: str = "appUNIsu8KgvOlmi0"
    airtable_table_name: str = "Failed Payments"
    airtable_timeout_seconds: float = 15.0

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 3000

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def verification_mode(self) -> VerificationMode:
        if self.stripe_webhook_secret:
            return VerificationMode.ENFORCED
        return VerificationMode.DISABLED

    @property
    def alert_recipient(self) -> str:
        return self.alert_email or self.gmail_user


def get_settings() -> Settings:
    """Load settings from the environment (and .env, when present)."""
    return Settings()
