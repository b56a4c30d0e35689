"""
Structured logging for the backfill job.

Progress lines go to stdout, errors to stderr, everything to a daily log
file. Also tracks run metrics for the end-of-run summary.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class _BelowLevel(logging.Filter):
    """Pass only records strictly below a level."""

    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for the backfill run.
    """

    def __init__(
        self,
        name: str = "txbackfill",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to stdout/stderr
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        for handler in list(self.logger.handlers):  # Remove existing handlers
            handler.close()
            self.logger.removeHandler(handler)

        self.metrics = {
            "products_scanned": 0,
            "transactions_created": 0,
            "skipped_existing": 0,
            "skipped_no_buyer": 0,
            "errors_by_type": {},
        }

        console_level = getattr(logging, level.upper())

        if enable_console:
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )

            stdout_handler = logging.StreamHandler(sys.stdout)
            stdout_handler.setLevel(console_level)
            stdout_handler.addFilter(_BelowLevel(logging.ERROR))
            stdout_handler.setFormatter(console_formatter)
            self.logger.addHandler(stdout_handler)

            stderr_handler = logging.StreamHandler(sys.stderr)
            stderr_handler.setLevel(max(console_level, logging.ERROR))
            stderr_handler.setFormatter(console_formatter)
            self.logger.addHandler(stderr_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"txbackfill_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

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

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_scanned(self):
        self.metrics["products_scanned"] += 1

    def record_created(self):
        self.metrics["transactions_created"] += 1

    def record_skip(self, reason: str):
        """Record a skipped product; reason is 'existing' or 'no_buyer'."""
        self.metrics[f"skipped_{reason}"] += 1

    def record_error(self, error_type: str):
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return a copy of current metrics."""
        metrics_copy = dict(self.metrics)
        metrics_copy["errors_by_type"] = dict(self.metrics["errors_by_type"])
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Backfill Session Metrics ===")
        self.info(f"Products scanned: {metrics['products_scanned']}")
        self.info(f"Transactions created: {metrics['transactions_created']}")
        self.info(
            f"Skipped: {metrics['skipped_existing']} already recorded, "
            f"{metrics['skipped_no_buyer']} without buyer"
        )

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "txbackfill",
    level: str = "INFO",
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
