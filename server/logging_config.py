"""Logging configuration for the UAT admin.

Every handler carries `SecretRedactingFilter`, so admin session cookies and
share-link tokens never reach the console or `uat.log`, including uvicorn's
access lines, which carry the full request path.
"""

from __future__ import annotations

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

REDACTED = "[redacted]"

# admin_session=<value> in Cookie / Set-Cookie headers or ad-hoc messages
_SESSION_COOKIE_RE = re.compile(r"(admin_session=)[^;,\s\"']+")
# /share/analytics/{slug}/{token}: the token segment is a bearer credential
_SHARE_TOKEN_RE = re.compile(r"(/share/analytics/[^/\s?#\"']+/)[^/\s?#\"']+")

_logging_initialized = False


def redact(text: str) -> str:
    """Mask session cookie values and share tokens in `text`."""
    text = _SESSION_COOKIE_RE.sub(r"\1" + REDACTED, text)
    return _SHARE_TOKEN_RE.sub(r"\1" + REDACTED, text)


class SecretRedactingFilter(logging.Filter):
    """Rewrite a record's message and string args with secrets masked.

    Args keep their arity so formatters that unpack them (uvicorn.access)
    still work.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        if isinstance(record.args, dict):
            record.args = {
                key: redact(value) if isinstance(value, str) else value
                for key, value in record.args.items()
            }
        elif record.args:
            record.args = tuple(
                redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None) -> None:
    """Initialize logging with file and console handlers.

    Args:
        log_level: Console logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Where `uat.log` goes; defaults to config.DATA_DIR
    """
    global _logging_initialized

    if _logging_initialized:
        return

    if log_dir is None:
        from .config import DATA_DIR

        log_dir = DATA_DIR

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    log_dir.mkdir(parents=True, exist_ok=True)
    redacting = SecretRedactingFilter()

    file_handler = RotatingFileHandler(
        log_dir / "uat.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(levelname)-8s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    file_handler.addFilter(redacting)

    console = Console(theme=Theme({"logging.level.info": "bold cyan"}))
    console_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(numeric_level)
    console_handler.addFilter(redacting)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers filter
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # Silence noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the specified module (typically __name__)."""
    return logging.getLogger(name)
