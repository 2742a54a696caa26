"""Error taxonomy for the webhook pipeline."""

from __future__ import annotations


class PaymentMonitorError(Exception):
    """Base class for payment monitor errors."""


class SignatureInvalid(PaymentMonitorError):
    """Webhook signature did not match the payload. Terminal for the request."""


class PayloadMalformed(PaymentMonitorError):
    """Webhook body could not be decoded as a JSON object. Terminal for the request."""


class LookupFailed(PaymentMonitorError):
    """Charge lookup failed (processor unreachable, timed out, or not found).

    Ends normalization of the single event; the request is still acknowledged.
    """


class SinkFailed(PaymentMonitorError):
    """Alert or record-store delivery failed. Recovered per sink."""


class UnhandledEventType(PaymentMonitorError):
    """Event type the pipeline does not process. Informational only."""

    def __init__(self, event_type: str | None) -> None:
        super().__init__(f"Unhandled webhook event type: {event_type}")
        self.event_type = event_type
