"""
Logger factory for alan-captcha.

Example:
    >>> from alan_captcha.shared.logging import get_logger
    >>> log = get_logger(__name__)
    >>> log.info("captcha_validation_passed", path="/login")
"""

from __future__ import annotations

import structlog
from structlog.stdlib import BoundLogger

from alan_captcha.shared.logging_config import (
    REDACTED_FIELDS,
    configure_structlog,
    setup_logging,
)


def get_logger(name: str) -> BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)


def log_with_context(logger: BoundLogger, **context) -> BoundLogger:
    """Bind context (path, method, ...) to every subsequent call of ``logger``."""
    return logger.bind(**context)


__all__ = [
    "get_logger",
    "log_with_context",
    "REDACTED_FIELDS",
    "configure_structlog",
    "setup_logging",
]
