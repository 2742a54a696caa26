"""Event normalizer: turns Stripe failure events into FailedPaymentRecords.

Field derivation from the underlying charge:
- customer_email       billing_details.email, else "Unknown"
- customer_id          customer, else "Unknown"
- amount_minor_units   amount, unconverted
- payment_method_type  payment_method_details.type, else "Unknown"
- failure_reason       failure_message, else outcome.seller_message,
                       else "Unknown reason"
- failure_timestamp    created (seconds) * 1000, in milliseconds

A charge without an id cannot be correlated downstream and is dropped.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Protocol

from payment_monitor.diagnostics import DiagnosticLog, diagnostic_log
from payment_monitor.webhooks.errors import LookupFailed, UnhandledEventType
from payment_monitor.webhooks.events import (
    ChargeFailed,
    InvoicePaymentFailed,
    PaymentIntentFailed,
    StripeEvent,
    UnrecognizedEvent,
)

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
UNKNOWN_REASON = "Unknown reason"

DEFAULT_LOOKUP_TIMEOUT = 10.0


@dataclass(frozen=True)
class FailedPaymentRecord:
    """Canonical failed-payment record flowing to the sinks."""

    customer_email: str
    customer_id: str
    amount_minor_units: int
    currency: str
    payment_method_type: str
    failure_reason: str
    charge_id: str
    failure_timestamp: int  # milliseconds since epoch

    @property
    def amount_major_units(self) -> float:
        return self.amount_minor_units / 100

    @property
    def failure_time(self) -> datetime:
        return datetime.fromtimestamp(self.failure_timestamp / 1000, tz=timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ChargeLookup(Protocol):
    """Retrieves a full charge object by id. Raises LookupFailed on any failure."""

    def retrieve_charge(self, charge_id: str) -> Mapping[str, Any]:
        ...


def _nested(obj: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if not isinstance(obj, Mapping):
            return None
        obj = obj.get(key)
    return obj


def _text(value: Any, fallback: str) -> str:
    return str(value) if value else fallback


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def record_from_charge(
    charge: Mapping[str, Any] | None,
    fallback_created: int | None = None,
) -> FailedPaymentRecord | None:
    """Build a FailedPaymentRecord from a Stripe charge, or None without a charge id."""
    if not charge or not charge.get("id"):
        return None

    created = charge.get("created")
    if not _is_number(created):
        created = fallback_created if fallback_created is not None else int(time.time())

    amount = charge.get("amount")

    return FailedPaymentRecord(
        customer_email=_text(_nested(charge, "billing_details", "email"), UNKNOWN),
        customer_id=_text(charge.get("customer"), UNKNOWN),
        amount_minor_units=int(amount) if _is_number(amount) else 0,
        currency=_text(charge.get("currency"), "usd").lower(),
        payment_method_type=_text(_nested(charge, "payment_method_details", "type"), UNKNOWN),
        failure_reason=(
            charge.get("failure_message")
            or _nested(charge, "outcome", "seller_message")
            or UNKNOWN_REASON
        ),
        charge_id=str(charge["id"]),
        failure_timestamp=int(created * 1000),
    )


class EventNormalizer:
    """Resolves the failed charge behind an event and normalizes it.

    Only invoice.payment_failed performs I/O: one charge lookup, bounded by
    ``lookup_timeout``. Lookup failures are logged and the event is dropped.
    """

    def __init__(
        self,
        charge_lookup: ChargeLookup | None,
        log: DiagnosticLog | None = None,
        lookup_timeout: float = DEFAULT_LOOKUP_TIMEOUT,
    ) -> None:
        self._lookup = charge_lookup
        self._log = log if log is not None else diagnostic_log
        self._lookup_timeout = lookup_timeout

    async def normalize(self, event: StripeEvent) -> FailedPaymentRecord | None:
        if isinstance(event, ChargeFailed):
            return self._from_charge(event.charge, event)

        if isinstance(event, PaymentIntentFailed):
            if not event.charges:
                self._log.append(
                    f"No charges on payment intent {event.payment_intent_id or 'unknown'}; skipping"
                )
                return None
            return self._from_charge(event.first_charge, event)

        if isinstance(event, InvoicePaymentFailed):
            if not event.charge_id:
                self._log.append(
                    f"Invoice {event.invoice_id or 'unknown'} has no charge; skipping"
                )
                return None
            try:
                charge = await self._retrieve(event.charge_id)
            except LookupFailed as e:
                self._log.warning(f"Failed to retrieve charge for invoice: {e}")
                return None
            return self._from_charge(charge, event)

        if isinstance(event, UnrecognizedEvent):
            self._log.append(str(UnhandledEventType(event.event_type)))
            return None

        raise TypeError(f"Unsupported event: {event!r}")

    def _from_charge(
        self, charge: Mapping[str, Any] | None, event: StripeEvent
    ) -> FailedPaymentRecord | None:
        record = record_from_charge(charge, fallback_created=event.created)
        if record is None:
            self._log.append(f"Event {event.event_id or 'unknown'} has no resolvable charge; skipping")
        return record

    async def _retrieve(self, charge_id: str) -> Mapping[str, Any]:
        if self._lookup is None:
            raise LookupFailed("no charge lookup configured")
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._lookup.retrieve_charge, charge_id),
                timeout=self._lookup_timeout,
            )
        except asyncio.TimeoutError as e:
            raise LookupFailed(
                f"charge {charge_id} lookup timed out after {self._lookup_timeout}s"
            ) from e
        except LookupFailed:
            raise
        except Exception as e:
            logger.exception("Unexpected error retrieving charge %s", charge_id)
            raise LookupFailed(str(e)) from e
