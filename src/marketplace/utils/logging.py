"""Logging configuration for the marketplace.

stdlib handlers (console plus rotating files) with structlog on top. JSON
output in production and staging, a rich console renderer everywhere else.
Telegram bot tokens are masked before any line is rendered.
"""

import logging
import logging.handlers
import os
import re
import sys
from pathlib import Path
from typing import Any

import structlog

_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# (file name, minimum level); None means the environment level
_LOG_FILES = [
    ("dishdash.log", None),
    ("dishdash_error.log", logging.ERROR),
]

_MAX_BYTES = 10 * 1024 * 1024

# Bot API urls embed the token: https://api.telegram.org/bot<id>:<secret>/sendMessage
_BOT_TOKEN = re.compile(r"bot\d+:[A-Za-z0-9_-]+")

_QUIET_LOGGERS = ["urllib3", "asyncio", "protean", "redis"]


def _environment() -> str:
    return (os.getenv("DISHDASH_ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def _is_deployed() -> bool:
    return _environment() in ("production", "staging")


def get_log_level() -> str:
    """Log level for the current environment, overridable with LOG_LEVEL."""
    return os.getenv("LOG_LEVEL", _LEVELS.get(_environment(), "INFO"))


def mask_bot_tokens(_, __, event_dict: dict) -> dict:
    """structlog processor replacing bot tokens in string values with ``bot***``."""
    for key, value in event_dict.items():
        if isinstance(value, str) and "bot" in value:
            event_dict[key] = _BOT_TOKEN.sub("bot***", value)
    return event_dict


def setup_stdlib_logging(log_dir: str | Path = "logs") -> None:
    level = get_log_level()
    log_dir = Path(log_dir)
    log_dir.mkdir(exist_ok=True)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    handlers[0].setLevel(level)
    for filename, min_level in _LOG_FILES:
        handler = logging.handlers.RotatingFileHandler(
            filename=log_dir / filename,
            maxBytes=_MAX_BYTES,
            backupCount=5,
            encoding="utf-8",
        )
        handler.setLevel(min_level or level)
        handlers.append(handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = handlers

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _renderer():
    if _is_deployed():
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=3),
    )


def setup_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            mask_bot_tokens,
            _renderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(log_dir: str | Path = "logs") -> None:
    """Configure all logging for the API and the notification worker."""
    setup_stdlib_logging(log_dir)
    setup_structlog()


def add_context(**kwargs: Any) -> None:
    """Bind values (request id, actor) into every subsequent log line."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
