"""Unit tests for LogNotifier."""

from structlog.testing import capture_logs

from billing_sync.infrastructure.notifications import LogNotifier


class TestLogNotifier:
    """Tests for LogNotifier."""

    def test_success(self):
        with capture_logs() as logs:
            LogNotifier().success("Invoice created successfully")
        assert logs == [
            {"event": "notify_success", "message": "Invoice created successfully", "log_level": "info"}
        ]

    def test_error(self):
        with capture_logs() as logs:
            LogNotifier().error("Session expired")
        assert logs[0]["event"] == "notify_error"
        assert logs[0]["log_level"] == "error"
