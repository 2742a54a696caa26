"""Stripe payment failure monitor.

Receives Stripe failed-payment webhooks, verifies and normalizes them,
and fans the result out to an email alert and an Airtable record.
"""
