"""
Structured logging system for dailypick.

Provides centralized logging with console and file outputs, log levels,
and metrics tracking for monitoring selection health (pool sizes, bucket
balance, how often backfill kicks in).
"""

import logging
import sys
from pathlib import Path
from typing import Dict, Optional
from datetime import datetime
import json

from .config import load_logging_options


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring selection runs.
    """

    def __init__(
        self,
        name: str = "dailypick",
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
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()  # Remove existing handlers
        self.logger.propagate = False

        # Metrics tracking
        self.metrics = {
            "selections_run": 0,
            "candidates_received": 0,
            "candidates_dropped": 0,
            "candidates_filtered_out": 0,
            "candidates_returned": 0,
            "backfilled": 0,
            "bucket_totals": {"B1": 0, "B2": 0, "B3": 0},
            "filter_failures": {},
        }

        # Console handler
        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        # File handler
        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"dailypick_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

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
        """Internal logging method with context."""
        if not self.logger.isEnabledFor(level):
            return
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str, ensure_ascii=False)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_selection(
        self,
        received: int,
        dropped: int,
        filtered_out: int,
        bucket_sizes: Dict[str, int],
        backfilled: int,
        returned: int,
    ):
        """Record the outcome of one selection run."""
        self.metrics["selections_run"] += 1
        self.metrics["candidates_received"] += received
        self.metrics["candidates_dropped"] += dropped
        self.metrics["candidates_filtered_out"] += filtered_out
        self.metrics["backfilled"] += backfilled
        self.metrics["candidates_returned"] += returned
        for bucket, size in bucket_sizes.items():
            totals = self.metrics["bucket_totals"]
            totals[bucket] = totals.get(bucket, 0) + size

    def record_filter_failure(self, error_type: str):
        """Record a total-filter exception by type."""
        failures = self.metrics["filter_failures"]
        if error_type not in failures:
            failures[error_type] = 0
        failures[error_type] += 1

    def get_metrics(self) -> dict:
        """Return current metrics."""
        metrics_copy = dict(self.metrics)
        metrics_copy["bucket_totals"] = dict(self.metrics["bucket_totals"])
        metrics_copy["filter_failures"] = dict(self.metrics["filter_failures"])

        runs = metrics_copy["selections_run"]
        if runs > 0:
            metrics_copy["avg_returned"] = round(metrics_copy["candidates_returned"] / runs, 3)
            metrics_copy["backfill_rate"] = round(metrics_copy["backfilled"] / runs, 3)

        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Selection Metrics ===")
        self.info(f"Selections: {metrics['selections_run']}")
        self.info(
            f"Candidates: {metrics['candidates_received']} received, "
            f"{metrics['candidates_dropped']} dropped, "
            f"{metrics['candidates_filtered_out']} filtered out, "
            f"{metrics['candidates_returned']} returned"
        )

        if metrics["selections_run"]:
            self.info(f"Average returned: {metrics['avg_returned']}")
            self.info(f"Backfilled per run: {metrics['backfill_rate']}")

        self.info("Bucket totals:")
        for bucket, total in metrics["bucket_totals"].items():
            self.info(f"  {bucket}: {total}")

        if metrics["filter_failures"]:
            self.info("Filter failures:")
            for error_type, count in metrics["filter_failures"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "dailypick",
    level: Optional[str] = None,
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Level and file output default to DAILYPICK_LOG_LEVEL / DAILYPICK_LOG_DIR;
    without a configured log dir only the console handler is attached.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        env_level, env_log_dir = load_logging_options()
        if level is None:
            level = env_level
        if "log_dir" not in kwargs and env_log_dir:
            kwargs["log_dir"] = Path(env_log_dir)
        kwargs.setdefault("enable_file", kwargs.get("log_dir") is not None)
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
