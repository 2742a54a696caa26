"""Airtable record store: one row per failed payment.

The "Failed Payments" table must exist; the Airtable API cannot create
tables, so table_exists() is only a probe. Expected columns:

- Customer Email   (single line text)
- Customer ID      (single line text)
- Payment Amount   (currency, major units)
- Payment Method   (single line text)
- Failure Reason   (long text)
- Failure Date     (date & time)
- Charge ID        (single line text)
- Status           (single select: Failed, Resolved)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any
from urllib.parse import quote

import httpx

from payment_monitor.channels.protocol import SendResult
from payment_monitor.config import Settings
from payment_monitor.webhooks.normalizer import FailedPaymentRecord

logger = logging.getLogger(__name__)

AIRTABLE_API_URL = "https://api.airtable.com/v0"


class RecordStatus(str, Enum):
    FAILED = "Failed"
    RESOLVED = "Resolved"


def record_fields(
    record: FailedPaymentRecord, status: RecordStatus = RecordStatus.FAILED
) -> dict[str, Any]:
    """Map a FailedPaymentRecord onto the table's columns."""
    return {
        "Customer Email": record.customer_email,
        "Customer ID": record.customer_id,
        "Payment Amount": record.amount_major_units,
        "Payment Method": record.payment_method_type,
        "Failure Reason": record.failure_reason,
        "Failure Date": record.failure_time.isoformat().replace("+00:00", "Z"),
        "Charge ID": record.charge_id,
        "Status": status.value,
    }


def _error_message(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            error = exc.response.json().get("error")
        except ValueError:
            error = None
        if isinstance(error, dict):
            error = error.get("message") or error.get("type")
        return f"HTTP {exc.response.status_code}: {error or exc.response.reason_phrase}"
    return str(exc) or type(exc).__name__


class AirtableRecordStore:
    """Creates failed-payment rows via the Airtable REST API."""

    def __init__(
        self,
        api_key: str,
        base_id: str,
        table_name: str = "Failed Payments",
        timeout: float = 15.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_id = base_id
        self._table_name = table_name
        self._client = client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> AirtableRecordStore:
        return cls(
            api_key=settings.airtable_api_key,
            base_id=settings.airtable_base_id,
            table_name=settings.airtable_table_name,
            timeout=settings.airtable_timeout_seconds,
        )

    @property
    def channel_id(self) -> str:
        return "airtable"

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def table_url(self) -> str:
        return f"{AIRTABLE_API_URL}/{self._base_id}/{quote(self._table_name)}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def create_record(
        self, record: FailedPaymentRecord, status: RecordStatus = RecordStatus.FAILED
    ) -> SendResult:
        """Persist one record. Failures are returned, not raised."""
        if not self._api_key:
            return SendResult(
                success=False,
                channel_id=self.channel_id,
                error="Airtable not configured (missing AIRTABLE_API_KEY)",
            )
        try:
            response = self._client.post(
                self.table_url,
                json={"records": [{"fields": record_fields(record, status)}]},
                headers=self._headers(),
            )
            response.raise_for_status()
            records = response.json().get("records") or [{}]
            return SendResult(
                success=True,
                channel_id=self.channel_id,
                response_id=str(records[0].get("id", "")),
            )
        except (httpx.HTTPError, ValueError) as e:
            return SendResult(
                success=False,
                channel_id=self.channel_id,
                error=_error_message(e),
            )

    def table_exists(self) -> bool:
        """Probe the table by listing at most one row."""
        try:
            response = self._client.get(
                self.table_url,
                params={"maxRecords": 1},
                headers=self._headers(),
            )
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.debug("Airtable table probe failed: %s", _error_message(e))
            return False

    def close(self) -> None:
        self._client.close()
