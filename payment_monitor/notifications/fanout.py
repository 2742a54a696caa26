"""Notification fan-out: deliver one record to both sinks independently.

Contract:
- Alert sink and record sink are started together and joined before return
- A failure in one sink never prevents or rolls back the other
- Failures are logged and reported in FanoutResult, never raised
- No dedup: a redelivered event produces a duplicate alert and row
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from payment_monitor.channels.protocol import SendResult
from payment_monitor.diagnostics import DiagnosticLog, diagnostic_log
from payment_monitor.webhooks.errors import SinkFailed
from payment_monitor.webhooks.normalizer import FailedPaymentRecord

logger = logging.getLogger(__name__)


class AlertSink(Protocol):
    def send_alert(self, record: FailedPaymentRecord) -> SendResult:
        ...


class RecordSink(Protocol):
    def create_record(self, record: FailedPaymentRecord) -> SendResult:
        ...

    def table_exists(self) -> bool:
        ...


@dataclass(frozen=True)
class FanoutResult:
    email_ok: bool
    store_ok: bool

    def to_dict(self) -> dict[str, bool]:
        return {"emailOk": self.email_ok, "storeOk": self.store_ok}


def _deliver(deliver, record: FailedPaymentRecord, sink_name: str) -> SendResult:
    """Call a sink, raising SinkFailed for any failed or raising delivery."""
    try:
        result = deliver(record)
    except Exception as e:
        logger.exception("%s sink raised for charge %s", sink_name, record.charge_id)
        raise SinkFailed(str(e) or type(e).__name__) from e
    if not result.success:
        raise SinkFailed(result.error or "unknown error")
    return result


class NotificationFanout:
    """Delivers records to the alert channel and the record store."""

    def __init__(
        self,
        alert_sink: AlertSink,
        record_sink: RecordSink,
        log: DiagnosticLog | None = None,
    ) -> None:
        self._alert_sink = alert_sink
        self._record_sink = record_sink
        self._log = log if log is not None else diagnostic_log

    async def send_alert(self, record: FailedPaymentRecord) -> bool:
        try:
            await asyncio.to_thread(_deliver, self._alert_sink.send_alert, record, "email")
        except SinkFailed as e:
            self._log.warning(f"Failed to send email alert: {e}")
            return False
        self._log.append(f"Email alert sent for charge {record.charge_id}")
        return True

    async def store_record(self, record: FailedPaymentRecord) -> bool:
        try:
            result = await asyncio.to_thread(
                _deliver, self._record_sink.create_record, record, "airtable"
            )
        except SinkFailed as e:
            self._log.warning(f"Failed to add to Airtable: {e}")
            return False
        self._log.append(f"Added failed payment record to Airtable: {result.response_id}")
        return True

    async def dispatch(self, record: FailedPaymentRecord) -> FanoutResult:
        """Deliver to both sinks concurrently and report each outcome."""
        self._log.append(
            f"Processing failed payment: {record.charge_id} for {record.customer_email}"
        )
        email_ok, store_ok = await asyncio.gather(
            self.send_alert(record),
            self.store_record(record),
        )
        return FanoutResult(email_ok=email_ok, store_ok=store_ok)

    async def check_record_table(self) -> bool:
        """Best-effort probe that the record table exists (it cannot be created via API)."""
        try:
            exists = await asyncio.to_thread(self._record_sink.table_exists)
        except Exception:
            logger.exception("Record table probe raised")
            exists = False
        if exists:
            self._log.append("Failed Payments table already exists")
        else:
            self._log.warning("Failed Payments table needs to be created manually in Airtable")
        return exists
