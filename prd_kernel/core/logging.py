"""Structured logging configuration for the PRD Kernel."""

import logging
import sys
from typing import Any, Optional

ROOT_LOGGER_NAME = "prd_kernel"


class StructuredFormatter(logging.Formatter):
    """key=value structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        parts = [f"{k}={v}" for k, v in log_data.items()]
        return " ".join(parts)


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach the structured handler to the package root logger (once).

    Args:
        level: Log level name. Defaults to the level derived from settings.

    Returns:
        The package root logger.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)

    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        root.addHandler(handler)

    if level is None:
        from prd_kernel.core.config import get_settings

        level = get_settings().resolved_log_level()
    root.setLevel(level)
    return root


def get_logger(name: str) -> logging.Logger:
    """Module logger under the package root; handlers live on the root only."""
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """Log with additional key=value context fields."""
    logger.log(level, msg, extra={"extra_data": kwargs})
