"""
Tests for logger functionality.
"""

import pytest
from labci.logger import StructuredLogger, get_logger, reset_logger


class TestStructuredLogger:
    """Test structured logging functionality."""

    def test_logger_creation(self, tmp_path):
        """Logger should be created with default settings."""
        logger = StructuredLogger(
            name="test",
            level="INFO",
            log_dir=tmp_path,
            enable_console=False,
        )

        assert logger.logger.name == "test"
        assert logger.metrics["api_calls"] == 0

    def test_log_methods(self, tmp_path):
        """All log level methods should work."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_file=True,
            enable_console=False,
        )

        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")
        logger.error("Error message")

    def test_log_with_context(self, tmp_path):
        """Context is appended as JSON."""
        logger = StructuredLogger(
            name="test-context",
            log_dir=tmp_path,
            enable_file=True,
            enable_console=False,
        )

        logger.info("Message with context", url="https://example.com", count=5)

        content = next(tmp_path.glob("*.log")).read_text()
        assert 'Context: {"url": "https://example.com", "count": 5}' in content

    def test_metrics_tracking(self):
        """Request metrics should be tracked per endpoint kind."""
        logger = StructuredLogger(name="test", enable_console=False)

        logger.record_request("pipelines")
        logger.record_success("pipelines")

        logger.record_request("jobs")
        logger.record_failure("jobs", "HTTPError_500")

        metrics = logger.get_metrics()

        assert metrics["api_calls"] == 2
        assert metrics["requests_failed"] == 1
        assert metrics["errors_by_type"]["HTTPError_500"] == 1
        assert metrics["endpoint_success_rate"]["pipelines"]["success_rate"] == 1.0
        assert metrics["endpoint_success_rate"]["jobs"]["success_rate"] == 0.0

    def test_success_rate_calculation(self):
        logger = StructuredLogger(name="test", enable_console=False)

        for _ in range(3):
            logger.record_request("jobs")

        logger.record_success("jobs")
        logger.record_success("jobs")

        metrics = logger.get_metrics()
        success_rate = metrics["endpoint_success_rate"]["jobs"]["success_rate"]

        assert success_rate == pytest.approx(0.667, rel=0.01)

    def test_get_metrics_leaves_counters_untouched(self):
        """The snapshot is independent of the live counters."""
        logger = StructuredLogger(name="test", enable_console=False)
        logger.record_request("jobs")
        logger.record_failure("jobs", "Timeout")

        snapshot = logger.get_metrics()
        snapshot["errors_by_type"]["Timeout"] = 99

        assert "success_rate" not in logger.metrics["endpoint_success_rate"]["jobs"]
        assert logger.metrics["errors_by_type"]["Timeout"] == 1

    def test_no_log_file_by_default(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        logger = StructuredLogger(name="test", enable_console=False)

        logger.warning("Test message")

        assert list(tmp_path.rglob("*.log")) == []

    def test_log_file_creation(self, tmp_path):
        """Log file should be created in specified directory."""
        logger = StructuredLogger(
            name="test-file",
            log_dir=tmp_path,
            enable_file=True,
            enable_console=False,
        )

        logger.info("Test message")

        log_files = list(tmp_path.glob("*.log"))
        assert len(log_files) == 1
        assert "Test message" in log_files[0].read_text()

    def test_configure_keeps_metrics(self, tmp_path):
        logger = StructuredLogger(name="test", enable_console=False)
        logger.record_request("jobs")

        logger.configure(level="DEBUG", enable_console=False)

        assert logger.metrics["api_calls"] == 1
        assert logger.logger.level == 10


class TestGlobalLogger:
    """Test global logger singleton."""

    def test_get_logger_singleton(self):
        reset_logger()

        logger1 = get_logger(enable_console=False)
        logger2 = get_logger()

        assert logger1 is logger2

    def test_reset_logger(self):
        reset_logger()

        logger1 = get_logger(enable_console=False)
        logger1.record_request("jobs")

        reset_logger()

        logger2 = get_logger(enable_console=False)

        assert logger2 is not logger1
        assert logger2.metrics["api_calls"] == 0
