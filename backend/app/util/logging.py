# app/util/logging.py
"""
Structured logger for submission, storage and dashboard operations.
Answer values never reach the log; only counts, field ids and error text.
"""

import logging
from typing import Any, Dict, List

from app import config


class StructuredLogger:
    """Thin wrapper over a stdlib logger that renders operation/status/details lines."""

    def __init__(self, name: str = "questionnaire", level: str = "INFO"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level, logging.INFO))

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.info(message)

    def log_submission_accepted(self, total: int, eligible: bool):
        self.log_operation("survey.submit", "accepted", {"total": total, "eligible": eligible})

    def log_submission_rejected(self, errors: List[str]):
        """Validation rejections are user errors, logged at info level."""
        details = {
            "error_count": len(errors),
            "errors": [str(e)[:100] for e in errors[:10]],
        }
        self.log_operation("survey.submit", "rejected", details)

    def log_storage_failure(self, operation: str, error: Exception):
        self.logger.error(f"Operation: {operation}, Status: failed, Details: {{'error': {error!r}}}")

    def log_cache_refresh(self, source: str, count: int, valid_count: int):
        self.log_operation(
            "stats.cache",
            "refreshed",
            {"source": source, "count": count, "valid_count": valid_count},
        )

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)

    def debug(self, message: str) -> None:
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger(level=config.LOG_LEVEL)
