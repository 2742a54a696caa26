"""Tests for the in-memory diagnostic log.

Tests:
- Capacity bound and oldest-first eviction
- recent(n) ordering and limits
- Concurrent appends from many threads
- Secondary emission through the logging module
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

import pytest
from freezegun import freeze_time

from payment_monitor.diagnostics import DiagnosticLog, LogEntry


class TestRingBuffer:
    def test_append_records_message(self, diag_log):
        entry = diag_log.append("hello")
        assert isinstance(entry, LogEntry)
        assert entry.message == "hello"
        assert len(diag_log) == 1

    @freeze_time("2025-03-01 12:00:00")
    def test_entry_stamped_with_current_time(self, diag_log):
        entry = diag_log.append("stamped")
        assert entry.timestamp == datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert entry.to_dict() == {
            "timestamp": "2025-03-01T12:00:00+00:00",
            "message": "stamped",
        }

    def test_never_exceeds_capacity(self, diag_log):
        for i in range(250):
            diag_log.append(f"msg {i}")
        assert len(diag_log) == 100

    def test_recent_after_150_appends_returns_101_to_150(self, diag_log):
        for i in range(1, 151):
            diag_log.append(f"entry {i}")
        recent = diag_log.recent(50)
        assert [e.message for e in recent] == [f"entry {i}" for i in range(101, 151)]

    def test_oldest_entries_evicted_first(self, diag_log):
        for i in range(1, 106):
            diag_log.append(f"entry {i}")
        remaining = diag_log.recent(100)
        assert remaining[0].message == "entry 6"
        assert remaining[-1].message == "entry 105"

    def test_recent_capped_at_buffer_size(self, diag_log):
        diag_log.append("a")
        diag_log.append("b")
        assert [e.message for e in diag_log.recent(50)] == ["a", "b"]

    def test_recent_zero_is_empty(self, diag_log):
        diag_log.append("a")
        assert diag_log.recent(0) == []

    def test_last(self, diag_log):
        assert diag_log.last() is None
        diag_log.append("first")
        diag_log.append("second")
        assert diag_log.last().message == "second"

    def test_clear(self, diag_log):
        diag_log.append("a")
        diag_log.clear()
        assert len(diag_log) == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            DiagnosticLog(capacity=0)


class TestConcurrency:
    def test_concurrent_appends_keep_last_100(self):
        log = DiagnosticLog()
        per_thread = 200

        def writer(tid: int) -> None:
            for i in range(per_thread):
                log.append(f"t{tid}-{i}")

        threads = [threading.Thread(target=writer, args=(t,)) for t in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        entries = log.recent(100)
        assert len(log) == 100
        assert len(entries) == 100
        # Per-writer order survives interleaving
        for tid in range(8):
            seq = [int(e.message.split("-")[1]) for e in entries if e.message.startswith(f"t{tid}-")]
            assert seq == sorted(seq)
        stamps = [e.timestamp for e in entries]
        assert stamps == sorted(stamps)


class TestLoggingEmission:
    def test_append_emits_to_logger(self, diag_log, caplog):
        with caplog.at_level(logging.INFO, logger="payment_monitor.diagnostics"):
            diag_log.append("Received webhook: charge.failed")
        assert "Received webhook: charge.failed" in caplog.text

    def test_warning_level(self, diag_log, caplog):
        with caplog.at_level(logging.INFO, logger="payment_monitor.diagnostics"):
            diag_log.warning("careful")
        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "careful"
