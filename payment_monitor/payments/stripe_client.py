"""Stripe charge retrieval for invoice.payment_failed events.

Network retries are disabled and the HTTP client carries an explicit
timeout; every failure surfaces as LookupFailed.
"""

from __future__ import annotations

import logging
from typing import Any

import stripe

from payment_monitor.config import Settings
from payment_monitor.webhooks.errors import LookupFailed

logger = logging.getLogger(__name__)


class StripeChargeLookup:
    """Retrieves full charge objects by id."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        client: stripe.StripeClient | None = None,
    ) -> None:
        self._api_key = api_key
        if client is None and api_key:
            client = stripe.StripeClient(
                api_key=api_key,
                http_client=stripe.RequestsClient(timeout=timeout),
                max_network_retries=0,
            )
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> StripeChargeLookup:
        return cls(api_key=settings.stripe_secret_key, timeout=settings.stripe_timeout_seconds)

    def retrieve_charge(self, charge_id: str) -> dict[str, Any]:
        if self._client is None:
            raise LookupFailed("STRIPE_SECRET_KEY not configured")
        try:
            charge = self._client.charges.retrieve(charge_id)
        except stripe.InvalidRequestError as e:
            raise LookupFailed(f"charge {charge_id} not found: {e.user_message or e}") from e
        except stripe.StripeError as e:
            raise LookupFailed(str(e.user_message or e)) from e
        logger.debug("Retrieved charge %s", charge_id)
        return charge.to_dict()
