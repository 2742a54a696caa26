"""Inbound Stripe event shapes.

A decoded webhook body is classified into exactly one of:

- ChargeFailed           charge.failed, data.object is the charge
- PaymentIntentFailed    payment_intent.payment_failed, charges nested in
                         data.object.charges.data
- InvoicePaymentFailed   invoice.payment_failed, data.object.charge is an id
- UnrecognizedEvent      anything else
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

CHARGE_FAILED = "charge.failed"
PAYMENT_INTENT_FAILED = "payment_intent.payment_failed"
INVOICE_PAYMENT_FAILED = "invoice.payment_failed"

HANDLED_EVENT_TYPES = (CHARGE_FAILED, PAYMENT_INTENT_FAILED, INVOICE_PAYMENT_FAILED)


@dataclass(frozen=True)
class ChargeFailed:
    event_id: str
    charge: dict[str, Any] | None
    created: int | None = None
    event_type: str = CHARGE_FAILED


@dataclass(frozen=True)
class PaymentIntentFailed:
    event_id: str
    payment_intent_id: str | None
    charges: list[dict[str, Any]] = field(default_factory=list)
    created: int | None = None
    event_type: str = PAYMENT_INTENT_FAILED

    @property
    def first_charge(self) -> dict[str, Any] | None:
        return self.charges[0] if self.charges else None


@dataclass(frozen=True)
class InvoicePaymentFailed:
    event_id: str
    invoice_id: str | None
    charge_id: str | None
    created: int | None = None
    event_type: str = INVOICE_PAYMENT_FAILED


@dataclass(frozen=True)
class UnrecognizedEvent:
    event_id: str
    event_type: str | None
    created: int | None = None


StripeEvent = Union[ChargeFailed, PaymentIntentFailed, InvoicePaymentFailed, UnrecognizedEvent]


def _as_dict(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def _charge_list(intent: dict[str, Any]) -> list[dict[str, Any]]:
    charges = _as_dict(intent.get("charges")) or {}
    data = charges.get("data")
    if not isinstance(data, list):
        return []
    return [c for c in data if isinstance(c, dict)]


def classify_event(payload: dict[str, Any]) -> StripeEvent:
    """Classify a decoded webhook body by its ``type`` field."""
    event_type = payload.get("type")
    event_id = str(payload.get("id") or "")
    created = payload.get("created")
    created = created if isinstance(created, int) else None

    data = _as_dict(payload.get("data")) or {}
    obj = _as_dict(data.get("object"))

    if event_type == CHARGE_FAILED:
        return ChargeFailed(event_id=event_id, charge=obj, created=created)

    if event_type == PAYMENT_INTENT_FAILED:
        obj = obj or {}
        return PaymentIntentFailed(
            event_id=event_id,
            payment_intent_id=obj.get("id"),
            charges=_charge_list(obj),
            created=created,
        )

    if event_type == INVOICE_PAYMENT_FAILED:
        obj = obj or {}
        charge_id = obj.get("charge")
        if isinstance(charge_id, dict):
            charge_id = charge_id.get("id")  # expanded charge object
        return InvoicePaymentFailed(
            event_id=event_id,
            invoice_id=obj.get("id"),
            charge_id=charge_id if isinstance(charge_id, str) and charge_id else None,
            created=created,
        )

    return UnrecognizedEvent(
        event_id=event_id,
        event_type=event_type if isinstance(event_type, str) else None,
        created=created,
    )
