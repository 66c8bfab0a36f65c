"""
Tests for logging processors and LogTimer
Version: 1.0
"""

from unittest.mock import MagicMock

import pytest

from services.logging_config import LogTimer, add_trace_id, service_info_processor, set_trace_id


class TestProcessors:

    def test_trace_id_is_attached(self):
        set_trace_id("abc12345")
        try:
            event = add_trace_id(None, "info", {"event": "Request started"})
        finally:
            set_trace_id(None)

        assert event["trace_id"] == "abc12345"

    def test_no_trace_id_outside_requests(self):
        assert "trace_id" not in add_trace_id(None, "info", {"event": "Startup"})

    def test_service_info_does_not_overwrite(self):
        processor = service_info_processor("provider-orders", "1.0.0", "production")

        event = processor(None, "info", {"event": "x", "version": "echo-v2"})

        assert event["service"] == "provider-orders"
        assert event["environment"] == "production"
        assert event["version"] == "echo-v2"


class TestLogTimer:

    def test_records_duration(self):
        logger = MagicMock()

        with LogTimer(logger, "Load bookings", source="regular") as timer:
            pass

        assert timer.duration_ms >= 0
        logger.debug.assert_called_once()
        assert logger.debug.call_args.kwargs["source"] == "regular"

    def test_logs_failure_and_reraises(self):
        logger = MagicMock()

        with pytest.raises(RuntimeError):
            with LogTimer(logger, "Load bookings"):
                raise RuntimeError("boom")

        logger.error.assert_called_once()
        assert logger.error.call_args.kwargs["error"] == "boom"
