"""Notification channels for failed-payment alerts."""
