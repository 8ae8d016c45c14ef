"""Structured logging helper shared by the import pipeline and the HTTP layer."""

from __future__ import annotations

import logging
from typing import Any


def structured_log(
    logger: logging.Logger,
    level: str,
    event: str,
    /,
    **fields: Any,
) -> None:
    """Emit a structured log entry.

    The event name is passed as the log message. JsonLogFormatter picks it up
    through record.getMessage(), so it is not repeated in the extra fields.

    Usage:
        structured_log(logger, "info", "linkedin.import_completed", user_id="u-1", linkedin_id="abc")
    """
    log_method = getattr(logger, level.lower())
    log_method(event, extra=fields)
