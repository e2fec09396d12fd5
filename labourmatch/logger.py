"""
Structured logging system for labourmatch.

Provides centralized logging with console and file output, keyword
context, and metrics tracking for monitoring matching runs.
"""

import logging
import sys
import threading
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for matching runs and lifecycle transitions.
    """

    def __init__(
        self,
        name: str = "labourmatch",
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

        # Runs may finish on queue threads
        self._lock = threading.Lock()
        self.metrics = {
            "runs_attempted": 0,
            "runs_successful": 0,
            "runs_failed": 0,
            "candidates_scored": 0,
            "matches_created": 0,
            "reputation_fallbacks": 0,
            "transitions": {},
            "errors_by_type": {},
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
        self.enable_file = enable_file
        self.log_file: Optional[Path] = None
        if enable_file:
            self._add_file_handler(log_dir or Path("logs"))

    def _add_file_handler(self, log_dir: Path):
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = log_dir / f"labourmatch_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_formatter = logging.Formatter(
            fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler.setFormatter(file_formatter)
        self.logger.addHandler(file_handler)

    def set_log_dir(self, log_dir: Path):
        """Move file output to log_dir. No-op when file logging is disabled."""
        if not self.enable_file:
            return
        for handler in list(self.logger.handlers):
            if isinstance(handler, logging.FileHandler):
                self.logger.removeHandler(handler)
                handler.close()
        self._add_file_handler(log_dir)

    def set_level(self, level: str):
        """Change the logger and console level; the file handler keeps DEBUG."""
        numeric = getattr(logging, level.upper())
        self.logger.setLevel(numeric)
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(numeric)

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
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_run_attempt(self):
        with self._lock:
            self.metrics["runs_attempted"] += 1

    def record_run_success(self, candidates: int, matches: int):
        """Record a completed run and how much it produced."""
        with self._lock:
            self.metrics["runs_successful"] += 1
            self.metrics["candidates_scored"] += candidates
            self.metrics["matches_created"] += matches

    def record_run_failure(self, error_type: str):
        with self._lock:
            self.metrics["runs_failed"] += 1
            self._count_error(error_type)

    def record_reputation_fallback(self, error_type: Optional[str] = None):
        """Record a worker scored with the default rating."""
        with self._lock:
            self.metrics["reputation_fallbacks"] += 1
            if error_type:
                self._count_error(error_type)

    def record_transition(self, to_status: str, count: int = 1):
        with self._lock:
            transitions = self.metrics["transitions"]
            transitions[to_status] = transitions.get(to_status, 0) + count

    def _count_error(self, error_type: str):
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return current metrics."""
        with self._lock:
            metrics_copy = json.loads(json.dumps(self.metrics))

        attempted = metrics_copy["runs_attempted"]
        metrics_copy["run_success_rate"] = (
            round(metrics_copy["runs_successful"] / attempted, 3) if attempted else 0.0
        )
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Matching Session Metrics ===")
        self.info(
            f"Runs: {metrics['runs_successful']}/{metrics['runs_attempted']} "
            f"({metrics['run_success_rate'] * 100:.1f}% success)"
        )
        self.info(
            f"Candidates scored: {metrics['candidates_scored']}, "
            f"matches created: {metrics['matches_created']}, "
            f"reputation fallbacks: {metrics['reputation_fallbacks']}"
        )

        if metrics["transitions"]:
            self.info("Transitions:")
            for status, count in metrics["transitions"].items():
                self.info(f"  {status}: {count}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "labourmatch",
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
