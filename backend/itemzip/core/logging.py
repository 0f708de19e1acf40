"""Logging for itemzip.

All modules log through a ``ContextualLogger``: a ``LoggerAdapter`` that carries
a dict of dimensions (request id, item id, archive path...) and can be narrowed
with ``with_context`` without mutating the parent logger.

Usage:
    from itemzip.core.logging import logger

    request_logger = logger.with_context(request_id=request_id)
    request_logger.info("Import zip content")
"""

import json
import logging
import sys
from typing import Any, Dict, Optional

from itemzip.core.config import settings

_RESERVED_ATTRS = set(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that attaches contextual dimensions to every record."""

    def __init__(self, logger: logging.Logger, dimensions: Optional[Dict[str, Any]] = None):
        """Initialize the adapter.

        Args:
            logger: Underlying stdlib logger
            dimensions: Key/value pairs added to every record
        """
        super().__init__(logger, dimensions or {})
        self.dimensions: Dict[str, Any] = dict(dimensions or {})

    def process(self, msg, kwargs):
        """Merge the adapter dimensions into the record's ``extra``."""
        extra = dict(self.dimensions)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a new logger with additional dimensions.

        Args:
            **dimensions: Dimensions to add (override existing ones)

        Returns:
            A new ContextualLogger sharing the same underlying logger
        """
        merged = {**self.dimensions, **dimensions}
        return ContextualLogger(self.logger, merged)


class _TextFormatter(logging.Formatter):
    """Plain text lines with the contextual dimensions appended."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}
        if context:
            pairs = " ".join(f"{k}={v}" for k, v in sorted(context.items()))
            line = f"{line} [{pairs}]"
        return line


class _JSONFormatter(logging.Formatter):
    """One JSON object per line, dimensions as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class LoggerConfigurator:
    """Builds the process-wide itemzip logger from settings."""

    @staticmethod
    def configure_logger(
        name: str, dimensions: Optional[Dict[str, Any]] = None
    ) -> ContextualLogger:
        """Configure and return a contextual logger.

        Args:
            name: Logger name
            dimensions: Initial dimensions

        Returns:
            Configured ContextualLogger
        """
        base_logger = logging.getLogger(name)
        base_logger.setLevel(settings.LOG_LEVEL)

        # Avoid adding handlers multiple times on re-import
        if not base_logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            if settings.LOG_FORMAT == "json":
                handler.setFormatter(_JSONFormatter())
            else:
                handler.setFormatter(
                    _TextFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
                )
            base_logger.addHandler(handler)

        return ContextualLogger(base_logger, dimensions)


logger = LoggerConfigurator.configure_logger(settings.PROJECT_NAME)
