"""Stripe webhook ingestion.

Each webhook is signature-verified, classified, normalized into a
FailedPaymentRecord and fanned out to the alert and record sinks.
"""
