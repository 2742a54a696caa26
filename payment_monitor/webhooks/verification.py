"""Webhook signature verification: constant-time HMAC-SHA256.

Security contract:
- Signature is HMAC-SHA256 over the raw, unparsed body, hex encoded and
  prefixed with "sha256="
- Comparison uses hmac.compare_digest() on bytes (constant-time)
- Missing or mismatched header -> verification fails, no retry
- No secret configured -> VerificationMode.DISABLED: every payload passes and
  a warning is recorded on each call. Do not run this way in production.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

from payment_monitor.config import VerificationMode
from payment_monitor.diagnostics import DiagnosticLog, diagnostic_log

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "stripe-signature"
SIGNATURE_PREFIX = b"sha256="

NO_SECRET_WARNING = "WARNING: No webhook secret configured"


def compute_signature(body: bytes, secret: str) -> bytes:
    """Return the expected signature header value for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest.encode("ascii")


def _header_bytes(signature_header: str | bytes | None) -> bytes | None:
    if signature_header is None:
        return None
    if isinstance(signature_header, bytes):
        return signature_header
    # HTTP header values arrive latin-1 decoded; this recovers the wire bytes
    try:
        return signature_header.encode("latin-1")
    except UnicodeEncodeError:
        return None


def verify_signature(
    body: bytes,
    signature_header: str | bytes | None,
    secret: str | None,
    log: DiagnosticLog | None = None,
) -> bool:
    """Verify a webhook signature.

    Args:
        body: Raw request body bytes
        signature_header: Value of the Stripe-Signature header
        secret: Webhook signing secret, or None for insecure pass-through
        log: Diagnostic log to record the insecure-mode warning in

    Returns:
        True if the signature is valid (or verification is disabled)
    """
    log = log if log is not None else diagnostic_log
    if not secret:
        log.warning(NO_SECRET_WARNING)
        return True

    provided = _header_bytes(signature_header)
    if not provided:
        return False

    expected = compute_signature(body, secret)
    return hmac.compare_digest(provided, expected)


class SignatureVerifier:
    """Verifier bound to a configured secret and explicit mode."""

    def __init__(self, secret: str | None, log: DiagnosticLog | None = None) -> None:
        self._secret = secret or None
        self._log = log if log is not None else diagnostic_log
        if self._secret is None:
            logger.warning("Webhook signature verification DISABLED (no secret)")

    @property
    def mode(self) -> VerificationMode:
        if self._secret:
            return VerificationMode.ENFORCED
        return VerificationMode.DISABLED

    def verify(self, body: bytes, signature_header: str | bytes | None) -> bool:
        return verify_signature(body, signature_header, self._secret, self._log)
