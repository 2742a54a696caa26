"""FastAPI application: wires settings, collaborators and routes together.

Use create_app() in tests with stub collaborators; ``payment-monitor``
(main) runs it under uvicorn with settings from the environment.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from payment_monitor.channels.email import EmailChannel
from payment_monitor.config import Settings, VerificationMode, get_settings
from payment_monitor.diagnostics import DiagnosticLog, diagnostic_log
from payment_monitor.notifications.fanout import AlertSink, NotificationFanout, RecordSink
from payment_monitor.payments.stripe_client import StripeChargeLookup
from payment_monitor.store.airtable import AirtableRecordStore
from payment_monitor.webhooks.dispatcher import WebhookDispatcher
from payment_monitor.webhooks.handlers import SERVICE_NAME, register_webhook_routes
from payment_monitor.webhooks.normalizer import ChargeLookup, EventNormalizer
from payment_monitor.webhooks.verification import SignatureVerifier

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    charge_lookup: ChargeLookup | None = None,
    alert_sink: AlertSink | None = None,
    record_sink: RecordSink | None = None,
    log: DiagnosticLog | None = None,
) -> FastAPI:
    """Build the app. Collaborators default to the real Stripe/SMTP/Airtable clients."""
    settings = settings or get_settings()
    log = log if log is not None else diagnostic_log

    charge_lookup = charge_lookup or StripeChargeLookup.from_settings(settings)
    alert_sink = alert_sink or EmailChannel.from_settings(settings)
    record_sink = record_sink or AirtableRecordStore.from_settings(settings)

    fanout = NotificationFanout(alert_sink, record_sink, log)
    dispatcher = WebhookDispatcher(
        verifier=SignatureVerifier(settings.stripe_webhook_secret, log),
        normalizer=EventNormalizer(
            charge_lookup, log, lookup_timeout=settings.stripe_timeout_seconds
        ),
        fanout=fanout,
        log=log,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.append(f"{SERVICE_NAME} started on port {settings.port}")
        if settings.verification_mode is VerificationMode.DISABLED:
            log.warning("Webhook signature verification is disabled (STRIPE_WEBHOOK_SECRET unset)")
        await fanout.check_record_table()
        yield
        close = getattr(record_sink, "close", None)
        if callable(close):
            close()

    app = FastAPI(title=SERVICE_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.diagnostic_log = log
    app.state.fanout = fanout
    app.state.dispatcher = dispatcher

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        log.append(f"Error: {exc}", level=logging.ERROR)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    register_webhook_routes(app)
    return app


def main() -> None:
    """Run the monitor under uvicorn."""
    import uvicorn
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
