"""HTTP handlers: FastAPI routes for the webhook and introspection endpoints.

POST /webhook:
1. Reads raw body (needed for HMAC verification)
2. Hands it to the WebhookDispatcher with the Stripe-Signature header
3. Returns 200 {"received": true}, 400 plain text, or 500 generic JSON

Security contract:
- Never return error details to the webhook caller
- Return 200 even for unrecognized events and sink failures
- GET /logs exposes only the most recent 50 diagnostic entries
"""

from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from payment_monitor.diagnostics import DiagnosticLog
from payment_monitor.notifications.fanout import NotificationFanout
from payment_monitor.webhooks.dispatcher import WebhookDispatcher
from payment_monitor.webhooks.normalizer import FailedPaymentRecord
from payment_monitor.webhooks.verification import SIGNATURE_HEADER

SERVICE_NAME = "Stripe Payment Failure Monitor"
RECENT_LOG_LIMIT = 50

ENDPOINTS = {
    "GET /": "This status page",
    "GET /health": "Health check",
    "GET /logs": "View recent logs",
    "POST /test": "Manual test run",
    "POST /webhook": "Stripe webhook endpoint",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def synthetic_record() -> FailedPaymentRecord:
    """Test record sent through the alert sink by POST /test."""
    return FailedPaymentRecord(
        customer_email="test@example.com",
        customer_id="cus_test123",
        amount_minor_units=2000,
        currency="usd",
        payment_method_type="card",
        failure_reason="Test failure reason",
        charge_id="ch_test123",
        failure_timestamp=int(time.time() * 1000),
    )


def register_webhook_routes(app: FastAPI) -> None:
    """Register routes. Expects app.state.dispatcher, .fanout and .diagnostic_log."""

    def _log(request: Request) -> DiagnosticLog:
        return request.app.state.diagnostic_log

    @app.get("/")
    async def service_descriptor(request: Request):
        """Service name, status and endpoint list."""
        last = _log(request).last()
        return {
            "name": SERVICE_NAME,
            "status": "running",
            "description": "Monitors Stripe for failed payments and sends alerts",
            "endpoints": ENDPOINTS,
            "lastActivity": last.timestamp.isoformat() if last else _now_iso(),
        }

    @app.get("/health")
    async def health(request: Request):
        """Liveness probe."""
        return {
            "status": "healthy",
            "timestamp": _now_iso(),
            "logs": len(_log(request)),
        }

    @app.get("/logs")
    async def logs(request: Request):
        """Most recent diagnostic entries."""
        log = _log(request)
        return {
            "logs": [entry.to_dict() for entry in log.recent(RECENT_LOG_LIMIT)],
            "total": len(log),
        }

    @app.post("/test")
    async def manual_test(request: Request):
        """Send a synthetic alert and probe the record table."""
        _log(request).append("Manual test triggered")
        fanout: NotificationFanout = request.app.state.fanout

        email_sent = await fanout.send_alert(synthetic_record())
        table_exists = await fanout.check_record_table()

        return {
            "message": "Test completed",
            "emailSent": email_sent,
            "tableExists": table_exists,
            "timestamp": _now_iso(),
        }

    @app.post("/webhook")
    async def stripe_webhook(request: Request):
        """Receive Stripe failed-payment webhooks (signature-verified)."""
        body = await request.body()
        dispatcher: WebhookDispatcher = request.app.state.dispatcher
        receipt = await dispatcher.handle(body, request.headers.get(SIGNATURE_HEADER))
        if isinstance(receipt.body, str):
            return PlainTextResponse(receipt.body, status_code=receipt.status_code)
        return JSONResponse(receipt.body, status_code=receipt.status_code)
