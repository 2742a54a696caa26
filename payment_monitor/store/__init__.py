"""Durable record store for failed payments."""
