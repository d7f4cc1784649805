"""
Logging configuration for VA Dashboard.

Application code logs through structlog. Each request gets a
request id in the structlog context, and tenant dependencies add the
tenant and user being served with ``bind_request_context``.
"""

import functools
import logging
import logging.handlers
import sys
import time
import uuid
from pathlib import Path
from typing import Any, Optional
import structlog
from rich.logging import RichHandler

from .settings import settings


def _shared_processors():
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging() -> None:
    """Configure structlog and the stdlib handlers it writes through."""

    log_file_path = Path(settings.log_file)
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    # Readable key=value lines while developing, JSON everywhere else
    if settings.environment == "development":
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=_shared_processors() + [renderer],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if settings.environment == "development":
        console_handler = RichHandler(
            rich_tracebacks=True,
            markup=False,
            show_time=False,
            show_path=False,
        )
        console_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path,
        maxBytes=settings.log_max_size,
        backupCount=settings.log_backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root_logger.addHandler(file_handler)

    configure_loggers()


def configure_loggers() -> None:
    """Quiet noisy third-party loggers."""

    logger_configs = {
        "uvicorn": logging.INFO,
        "uvicorn.error": logging.INFO,
        # Request lines are already logged by the timing middleware
        "uvicorn.access": logging.WARNING,
        "sqlalchemy.engine": logging.INFO if settings.database_echo else logging.WARNING,
        "sqlalchemy.pool": logging.WARNING,
        "alembic": logging.INFO,
        "httpx": logging.WARNING,
        "passlib": logging.ERROR,
    }

    for logger_name, level in logger_configs.items():
        logging.getLogger(logger_name).setLevel(level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name

    Returns:
        BoundLogger: Structured logger instance
    """
    return structlog.get_logger(name)


def new_request_context(request_id: Optional[str] = None) -> str:
    """Start a fresh log context for an incoming request and return its id."""
    structlog.contextvars.clear_contextvars()
    request_id = request_id or uuid.uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(request_id=request_id)
    return request_id


def bind_request_context(**values: Any) -> None:
    """Attach values such as tenant_id or user_id to later log lines in the current context."""
    structlog.contextvars.bind_contextvars(
        **{key: str(value) for key, value in values.items() if value is not None}
    )


class LoggerMixin:
    """Mixin class to add logging capability to any class."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        return get_logger(self.__class__.__name__)


def log_performance(func_name: str = None):
    """
    Decorator logging how long a service call took, in milliseconds.

    Args:
        func_name: Optional custom name for the logger
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            logger = get_logger(func_name or func.__name__)

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    "Call failed",
                    function=func.__qualname__,
                    duration_ms=round((time.perf_counter() - started) * 1000, 1),
                    error=str(e)
                )
                raise

            logger.debug(
                "Call finished",
                function=func.__qualname__,
                duration_ms=round((time.perf_counter() - started) * 1000, 1)
            )
            return result

        return wrapper
    return decorator
