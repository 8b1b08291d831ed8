"""Structured logging for the API.

JSON output for deployed instances, a plain formatter for local development,
and a BookLogger helper for pipeline stage events.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from .errors import redact_secrets

_EXTRA_FIELDS = ("request_id", "stage", "duration", "page", "error_type", "code")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_secrets(record.getMessage()),
        }

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = redact_secrets(self.formatException(record.exc_info))

        return json.dumps(log_data)


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """Configure root logging for the application."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)


class BookLogger:
    """Logger for book pipeline events with structured fields."""

    def __init__(self):
        self.logger = logging.getLogger("book_pipeline")

    def stage_started(self, request_id: str, stage: str) -> None:
        self.logger.info(f"Stage started: {stage}", extra={"request_id": request_id, "stage": stage})

    def stage_completed(self, request_id: str, stage: str, duration: float = None) -> None:
        extra = {"request_id": request_id, "stage": stage}
        if duration is not None:
            extra["duration"] = round(duration, 2)
        self.logger.info(f"Stage completed: {stage}", extra=extra)

    def page_failed(self, request_id: str, page: int, error: Exception) -> None:
        self.logger.warning(
            f"Illustration for page {page} failed: {error}",
            extra={
                "request_id": request_id,
                "stage": "illustrations",
                "page": page,
                "error_type": type(error).__name__,
            },
        )

    def book_failed(self, request_id: str, error: Exception, stage: str = None) -> None:
        extra = {"request_id": request_id, "stage": stage or "failed", "error_type": type(error).__name__}
        self.logger.error(f"Book creation failed: {error}", extra=extra)


book_logger = BookLogger()
