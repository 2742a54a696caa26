"""Webhook dispatcher: verify, parse, classify, normalize, fan out and acknowledge.

States:

    Received -> Verified -> Parsed -> Classified -> Normalized -> Dispatched -> Acknowledged
       |           |                      |
       |           |                      +-> Dropped -> Acknowledged
       |           +-> Rejected(malformed)
       +-> Rejected(signature)

Security contract:
- Signature failures and undecodable bodies -> 400 with a plain-text reason,
  nothing else happens beyond a diagnostic entry
- Unhandled types, missing charges and failed lookups are still acknowledged
  (200) so Stripe does not redeliver
- Sink failures never change the response
- Any unexpected exception -> 500 with a generic body, never the details
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from payment_monitor.diagnostics import DiagnosticLog, diagnostic_log
from payment_monitor.notifications.fanout import FanoutResult, NotificationFanout
from payment_monitor.webhooks.errors import PayloadMalformed, SignatureInvalid
from payment_monitor.webhooks.events import classify_event
from payment_monitor.webhooks.normalizer import EventNormalizer, FailedPaymentRecord
from payment_monitor.webhooks.verification import SignatureVerifier

logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    RECEIVED = "received"
    VERIFIED = "verified"
    PARSED = "parsed"
    CLASSIFIED = "classified"
    NORMALIZED = "normalized"
    DISPATCHED = "dispatched"
    DROPPED = "dropped"
    ACKNOWLEDGED = "acknowledged"
    REJECTED_SIGNATURE = "rejected_signature"
    REJECTED_MALFORMED = "rejected_malformed"
    FAILED = "failed"


@dataclass
class WebhookReceipt:
    """Outcome of handling one inbound webhook."""

    status_code: int
    body: Any
    history: list[DispatchState] = field(default_factory=lambda: [DispatchState.RECEIVED])
    event_type: str | None = None
    record: FailedPaymentRecord | None = None
    fanout: FanoutResult | None = None

    @property
    def state(self) -> DispatchState:
        return self.history[-1]

    @property
    def dropped(self) -> bool:
        return DispatchState.DROPPED in self.history


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    raise PayloadMalformed(f"invalid JSON constant: {name}")


def _decode(body: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(body, parse_constant=_reject_constant)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PayloadMalformed(str(e)) from e
    if not isinstance(payload, dict):
        raise PayloadMalformed(f"expected a JSON object, got {type(payload).__name__}")
    return payload


class WebhookDispatcher:
    """Runs one inbound webhook through the pipeline."""

    def __init__(
        self,
        verifier: SignatureVerifier,
        normalizer: EventNormalizer,
        fanout: NotificationFanout,
        log: DiagnosticLog | None = None,
    ) -> None:
        self._verifier = verifier
        self._normalizer = normalizer
        self._fanout = fanout
        self._log = log if log is not None else diagnostic_log

    async def handle(self, body: bytes, signature_header: str | None) -> WebhookReceipt:
        """Process a raw webhook body. Never raises."""
        receipt = WebhookReceipt(status_code=200, body={"received": True})
        try:
            await self._run(receipt, body, signature_header)
        except SignatureInvalid:
            self._log.warning("Invalid webhook signature")
            receipt.history.append(DispatchState.REJECTED_SIGNATURE)
            receipt.status_code, receipt.body = 400, "Invalid signature"
        except PayloadMalformed as e:
            self._log.warning(f"Webhook payload parsing failed: {e}")
            receipt.history.append(DispatchState.REJECTED_MALFORMED)
            receipt.status_code, receipt.body = 400, "Invalid JSON"
        except Exception as e:
            logger.exception("Webhook processing failed")
            self._log.append(f"Error: {e}", level=logging.ERROR)
            receipt.history.append(DispatchState.FAILED)
            receipt.status_code, receipt.body = 500, {"error": "Internal server error"}
        return receipt

    async def _run(
        self, receipt: WebhookReceipt, body: bytes, signature_header: str | None
    ) -> None:
        # 1. Verify signature over the raw bytes
        if not self._verifier.verify(body, signature_header):
            raise SignatureInvalid()
        receipt.history.append(DispatchState.VERIFIED)

        # 2. Parse JSON payload
        payload = _decode(body)
        receipt.history.append(DispatchState.PARSED)

        # 3. Classify
        event = classify_event(payload)
        receipt.event_type = event.event_type
        receipt.history.append(DispatchState.CLASSIFIED)
        self._log.append(f"Received webhook: {event.event_type}")

        # 4. Normalize (may look up the charge)
        record = await self._normalizer.normalize(event)
        if record is None:
            receipt.history += [DispatchState.DROPPED, DispatchState.ACKNOWLEDGED]
            return
        receipt.record = record
        receipt.history.append(DispatchState.NORMALIZED)

        # 5. Fan out to both sinks
        receipt.fanout = await self._fanout.dispatch(record)
        receipt.history += [DispatchState.DISPATCHED, DispatchState.ACKNOWLEDGED]
