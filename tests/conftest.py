"""Shared fixtures for the payment monitor test suite."""

from __future__ import annotations

import pytest
from factories import StubAlertSink, StubChargeLookup, StubRecordSink

from payment_monitor.diagnostics import DiagnosticLog


@pytest.fixture()
def diag_log() -> DiagnosticLog:
    """Fresh diagnostic log, isolated from the process-wide one."""
    return DiagnosticLog()


@pytest.fixture()
def alert_sink() -> StubAlertSink:
    return StubAlertSink()


@pytest.fixture()
def record_sink() -> StubRecordSink:
    return StubRecordSink()


@pytest.fixture()
def charge_lookup() -> StubChargeLookup:
    return StubChargeLookup()
