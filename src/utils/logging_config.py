"""
Structured Logging Configuration

structlog setup shared by the feed service:
- Development: colored console output on stdout
- Production (ENV=production): JSON lines written to a rotating log file

Usage:
    from src.utils.logging_config import configure_logging, get_logger

    configure_logging()  # once, at application startup
    logger = get_logger(__name__)
    logger.info("Generating feed", key="a-", board="a")
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional

import structlog
from structlog.types import Processor

_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _is_production() -> bool:
    env = os.getenv("ENV", os.getenv("ENVIRONMENT", "development")).lower()
    return env in ("production", "prod")


def _get_log_level() -> int:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _build_handler(json_format: bool, log_file: Optional[str]) -> tuple[logging.Handler, Processor]:
    if not json_format:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )
        return logging.StreamHandler(sys.stdout), renderer

    log_file = log_file or os.getenv("LOG_FILE", "logs/app.log")
    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
    )
    return handler, structlog.processors.JSONRenderer(ensure_ascii=False)


def configure_logging(
    json_format: Optional[bool] = None,
    log_level: Optional[int] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure structlog and route stdlib logging through the same renderer.

    Args:
        json_format: Force JSON output on/off. Auto-detected from ENV when None.
        log_level: Logging level. Read from LOG_LEVEL when None (default INFO).
        log_file: Target file for JSON output (defaults to LOG_FILE or logs/app.log).
    """
    if json_format is None:
        json_format = _is_production()
    if log_level is None:
        log_level = _get_log_level()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler, renderer = _build_handler(json_format, log_file)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )
    logging.basicConfig(format="%(message)s", handlers=[handler], level=log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, typically ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Attach key-value pairs to every log line emitted in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop all bound context; call when a request finishes."""
    structlog.contextvars.clear_contextvars()
