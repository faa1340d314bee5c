"""Logging setup shared by the CLI and the service."""

from __future__ import annotations

import logging
import re
from pathlib import Path

_ROOT = "hostpush"
_CONSOLE_FORMAT = "[hostpush] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"

# Classic, fine-grained and app tokens, plus whatever follows an auth scheme.
_TOKEN_PATTERNS = (
    re.compile(r"\b(?:gh[pousr]_[A-Za-z0-9]{20,}|github_pat_[A-Za-z0-9_]{20,})"),
    re.compile(r"(?i)(\b(?:token|bearer)\s+)[A-Za-z0-9_\-\.]{20,}"),
)
REDACTED = "[redacted]"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``hostpush.<name>``, or the package logger when no name is given."""
    return logging.getLogger(f"{_ROOT}.{name}" if name else _ROOT)


def redact(text: str) -> str:
    """Mask anything that looks like a GitHub credential."""
    text = _TOKEN_PATTERNS[0].sub(REDACTED, text)
    return _TOKEN_PATTERNS[1].sub(lambda match: f"{match.group(1)}{REDACTED}", text)


class RedactingFilter(logging.Filter):
    """Rewrites records so credentials never reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    handler.addFilter(RedactingFilter())
    return handler


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send hostpush logs to stderr, and to ``log_file`` at debug level when given."""
    console_level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_ROOT)
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    logger.addHandler(_handler(logging.StreamHandler(), console_level, _CONSOLE_FORMAT))
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(
            _handler(logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG, _FILE_FORMAT)
        )
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(console_level)
    return logger


__all__ = ["REDACTED", "RedactingFilter", "configure_logging", "get_logger", "redact"]
