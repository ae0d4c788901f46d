"""Logging configuration."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Set

REDACTED = "********"

# Secret values known to this process; scrubbed from every handled record
_secrets: Set[str] = set()


def register_secrets(*values: str):
    """Mark values that must never reach a log handler."""
    _secrets.update(v for v in values if v)


class RedactingFilter(logging.Filter):
    """Replace registered secret values in the formatted message."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not _secrets:
            return True

        message = record.getMessage()
        redacted = message
        for secret in _secrets:
            redacted = redacted.replace(secret, REDACTED)

        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """Set up logging for the provisioner.

    Every handler carries a ``RedactingFilter``, so a secret passed to
    ``register_secrets`` is masked on the console and in the log file.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to a rotating log file (optional)
        log_format: Custom log format (optional)
        console_output: Whether to log to stderr

    Returns:
        Configured package logger
    """
    if log_format is None:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logger = logging.getLogger("stack_provisioner")
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers.clear()

    formatter = logging.Formatter(log_format)
    redactor = RedactingFilter()
    handlers = []

    # stdout carries operator output
    if console_output:
        handlers.append(logging.StreamHandler(sys.stderr))

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(redactor)
        logger.addHandler(handler)

    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger under the ``stack_provisioner`` namespace."""
    return logging.getLogger(f"stack_provisioner.{name}")
