"""Structured logging configuration for the PR comment pipe.

- JSON structured logging with StructuredFormatter
- Logger hierarchy under the pr_comment namespace
- Environment variable control (PR_COMMENT_LOG_LEVEL, PR_COMMENT_LOG_FORMAT)

Pipeline output is read by humans in the Bitbucket UI, so the default format is
text. JSON is available for log shipping.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

LOGGER_NAMESPACE = "pr_comment"

# Keys redacted from structured output
SENSITIVE_KEYS = {
    "password", "app_password", "token", "secret", "apikey", "api_key",
    "authorization", "credential", "auth", "bearer",
}

_STANDARD_FIELDS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
    "asctime",
}

# Name of the StreamHandler owned by configure_logging
HANDLER_NAME = "pr_comment"


def _extras(record: logging.LogRecord) -> dict:
    """Caller-supplied extras on a record, with sensitive values redacted."""
    return {
        k: ("[REDACTED]" if k.lower() in SENSITIVE_KEYS else v)
        for k, v in record.__dict__.items()
        if k not in _STANDARD_FIELDS and not k.startswith("_")
    }


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter.

    Outputs one JSON object per record with:
    - timestamp: UTC ISO 8601 format with 'Z' suffix
    - level: Log level name (INFO, ERROR, etc.)
    - logger: Logger name (pr_comment hierarchy)
    - message: Log message
    - context: Extras merged from LogRecord attributes

    Sensitive keys (password, authorization, token, ...) are redacted.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = _extras(record)
        if extras:
            log_data["context"] = extras

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter used for pipeline output.

    Extras are appended as key=value pairs, with sensitive keys redacted.
    """

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        extras = _extras(record)
        if not extras:
            return line
        pairs = " ".join(f"{k}={v}" for k, v in extras.items())
        return f"{line} {pairs}"


def configure_logging(
    level: Optional[str] = None, log_format: Optional[str] = None
) -> None:
    """Configure logging for all pr_comment loggers.

    Args:
        level: Optional log level override. Falls back to PR_COMMENT_LOG_LEVEL
               (default: INFO).
        log_format: Optional format override ("json" or "text"). Falls back to
                    PR_COMMENT_LOG_FORMAT (default: text).
    """
    if level is None:
        level = os.getenv("PR_COMMENT_LOG_LEVEL", "INFO")
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format is None:
        log_format = os.getenv("PR_COMMENT_LOG_FORMAT", "text")
    formatter = (
        StructuredFormatter() if log_format.lower() == "json" else TextFormatter()
    )

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(log_level)

    # Idempotent: reconfiguring swaps the formatter instead of stacking handlers.
    # Handlers attached by others (e.g. test capture) are left untouched.
    handler = get_handler()
    if handler is None:
        handler = logging.StreamHandler()
        handler.set_name(HANDLER_NAME)
        logger.addHandler(handler)
    handler.setFormatter(formatter)

    logger.propagate = False


def get_handler() -> Optional[logging.Handler]:
    """Return the handler installed by configure_logging, if any."""
    for handler in logging.getLogger(LOGGER_NAMESPACE).handlers:
        if handler.get_name() == HANDLER_NAME:
            return handler
    return None
