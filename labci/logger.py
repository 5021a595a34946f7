"""
Structured logging for labci.

Wraps the standard logging module with context-aware helpers and keeps
per-endpoint request counters so a session can report API health.
Console output goes to stderr; stdout belongs to command output.
"""

import copy
import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks request metrics against the hosting platform's API.
    """

    def __init__(
        self,
        name: str = "labci",
        level: str = "WARNING",
        log_dir: Optional[Path] = None,
        enable_file: bool = False,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to stderr
        """
        self.logger = logging.getLogger(name)
        self.logger.propagate = False

        self.metrics = {
            "api_calls": 0,
            "requests_failed": 0,
            "errors_by_type": {},
            "endpoint_success_rate": {},
        }

        self.configure(
            level=level,
            log_dir=log_dir,
            enable_file=enable_file,
            enable_console=enable_console,
        )

    def configure(
        self,
        level: str = "WARNING",
        log_dir: Optional[Path] = None,
        enable_file: bool = False,
        enable_console: bool = True,
    ):
        """Rebuild handlers in place. Metrics are kept."""
        log_level = getattr(logging, level.upper(), logging.WARNING)
        self.logger.setLevel(log_level)
        self.logger.handlers.clear()

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(log_level)
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"labci_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)
            self.logger.setLevel(logging.DEBUG)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_request(self, endpoint: str):
        """Record an API request against an endpoint kind (e.g. 'pipelines')."""
        self.metrics["api_calls"] += 1
        stats = self.metrics["endpoint_success_rate"].setdefault(
            endpoint, {"attempts": 0, "successes": 0}
        )
        stats["attempts"] += 1

    def record_success(self, endpoint: str):
        if endpoint in self.metrics["endpoint_success_rate"]:
            self.metrics["endpoint_success_rate"][endpoint]["successes"] += 1

    def record_failure(self, endpoint: str, error_type: str):
        """Record a failed request and the kind of failure."""
        self.metrics["requests_failed"] += 1
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return current metrics with success rates filled in."""
        metrics_copy = copy.deepcopy(self.metrics)
        for endpoint, stats in metrics_copy["endpoint_success_rate"].items():
            if stats["attempts"] > 0:
                stats["success_rate"] = round(
                    stats["successes"] / stats["attempts"], 3
                )

        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== API Session Metrics ===")
        self.info(f"API Calls: {metrics['api_calls']} ({metrics['requests_failed']} failed)")

        if metrics["endpoint_success_rate"]:
            self.info("Endpoint Success Rates:")
            for endpoint, stats in metrics["endpoint_success_rate"].items():
                rate = stats.get("success_rate", 0) * 100
                self.info(f"  {endpoint}: {stats['successes']}/{stats['attempts']} ({rate:.1f}%)")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "labci",
    level: str = "WARNING",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
