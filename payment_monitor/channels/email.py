"""Email alert channel: sends failed-payment alerts via SMTP.

Uses Gmail SMTP with STARTTLS and an app password. Credentials come from
Settings: GMAIL_USER, GMAIL_APP_PASSWORD, ALERT_EMAIL, SMTP_HOST, SMTP_PORT.

Security: Password never logged.
"""

from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

from payment_monitor.channels.protocol import NotificationMessage, SendResult
from payment_monitor.config import Settings
from payment_monitor.webhooks.normalizer import FailedPaymentRecord

logger = logging.getLogger(__name__)

_SMTP_TIMEOUT_SECONDS = 15

# X-Priority values (1 = highest)
_SEVERITY_PRIORITY = {
    "info": "3",
    "warning": "2",
    "error": "1",
    "critical": "1",
}


def format_amount(record: FailedPaymentRecord) -> str:
    """Render the charge amount in major units, e.g. ``$20.00 USD``."""
    return f"${record.amount_major_units:.2f} {record.currency.upper()}"


def format_date(record: FailedPaymentRecord) -> str:
    return record.failure_time.strftime("%Y-%m-%d %H:%M:%S UTC")


def build_failed_payment_alert(record: FailedPaymentRecord) -> NotificationMessage:
    """Build the alert notification for a failed payment."""
    fields = [
        ("Customer", record.customer_email),
        ("Customer ID", record.customer_id),
        ("Amount", format_amount(record)),
        ("Failure Reason", record.failure_reason),
        ("Payment Method", record.payment_method_type),
        ("Charge ID", record.charge_id),
        ("Date", format_date(record)),
    ]

    text_lines = ["Payment Failure Notification", ""]
    text_lines += [f"{label}: {value}" for label, value in fields]
    text_lines += [
        "",
        "Please review this failed payment and take appropriate action.",
        "",
        "--",
        "Automated alert from Stripe Payment Monitor",
    ]

    html_rows = "\n".join(
        f"<p><strong>{label}:</strong> {html.escape(str(value))}</p>"
        for label, value in fields
    )
    html_body = f"""
    <h2>Payment Failure Notification</h2>
    {html_rows}

    <p>Please review this failed payment and take appropriate action.</p>

    <hr>
    <small>Automated alert from Stripe Payment Monitor</small>
    """

    return NotificationMessage(
        title=f"\U0001f6a8 Payment Failed Alert - {record.customer_email}",
        body="\n".join(text_lines),
        html=html_body,
        severity="error",
    )


class EmailChannel:
    """Email alert channel via SMTP."""

    def __init__(
        self,
        channel_id: str = "email-alerts",
        smtp_host: str = "smtp.gmail.com",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        recipient: str = "",
    ):
        self._channel_id = channel_id
        self._host = smtp_host
        self._port = smtp_port
        self._user = smtp_user
        self._password = smtp_password
        self._recipient = recipient or smtp_user

    @classmethod
    def from_settings(cls, settings: Settings) -> EmailChannel:
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.gmail_user,
            smtp_password=settings.gmail_app_password,
            recipient=settings.alert_recipient,
        )

    @property
    def channel_id(self) -> str:
        return self._channel_id

    @property
    def channel_type(self) -> str:
        return "email"

    @property
    def is_configured(self) -> bool:
        return bool(self._host and self._user and self._password and self._recipient)

    def format_message(self, message: NotificationMessage) -> MIMEMultipart:
        """Format as MIME email with plain text and HTML alternatives."""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.title
        msg["From"] = self._user
        msg["To"] = self._recipient
        msg["Message-ID"] = make_msgid()
        msg["X-Priority"] = _SEVERITY_PRIORITY.get(message.severity, "3")

        msg.attach(MIMEText(message.body, "plain", "utf-8"))
        if message.html:
            msg.attach(MIMEText(message.html, "html", "utf-8"))
        return msg

    def send(self, formatted: MIMEMultipart) -> SendResult:
        """Send via SMTP with TLS."""
        if not self.is_configured:
            return SendResult(
                success=False,
                channel_id=self._channel_id,
                error="Email not configured (missing GMAIL_USER/GMAIL_APP_PASSWORD)",
            )

        try:
            with smtplib.SMTP(self._host, self._port, timeout=_SMTP_TIMEOUT_SECONDS) as server:
                server.starttls()
                server.login(self._user, self._password)
                server.send_message(formatted)
            return SendResult(
                success=True,
                channel_id=self._channel_id,
                response_id=formatted["Message-ID"] or "",
            )
        except smtplib.SMTPException as e:
            return SendResult(
                success=False,
                channel_id=self._channel_id,
                error=f"SMTP error: {e}",
            )
        except OSError as e:
            return SendResult(
                success=False,
                channel_id=self._channel_id,
                error=str(e),
            )

    def send_alert(self, record: FailedPaymentRecord) -> SendResult:
        """Format and send the alert for one failed payment."""
        return self.send(self.format_message(build_failed_payment_alert(record)))
