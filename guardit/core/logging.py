"""
Loguru setup for the monitor.

Events are logged as short snake_case names with the details bound as
extra fields, e.g. ``logger.bind(task_id=...).info("status_ingested")``.
The plain format renders those fields as ``key=value`` pairs; ``log_json``
switches to loguru's serialized records for log collectors.
"""

import logging
import sys
from typing import Any

from loguru import logger

from guardit.config import Settings, get_settings

# Third-party loggers routed through loguru, with the minimum level kept
NOISY_LOGGERS = {
    "uvicorn": None,
    "uvicorn.error": None,
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "asyncpg": logging.WARNING,
}


class InterceptHandler(logging.Handler):
    """Intercept stdlib logging and redirect to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _health_log_filter(record: dict[str, Any]) -> bool:
    """Health probes (/health, /api/health) only show at DEBUG level."""
    if "/health" in record.get("message", ""):
        return bool(record["level"].no <= 10)
    return True


def _plain_format(record: dict[str, Any]) -> str:
    fields = " ".join(f"{k}={v}" for k, v in record["extra"].items() if k != "name")
    base = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]} | {message}"
    if fields:
        # Escape braces so loguru does not treat field values as placeholders
        return base + " | " + fields.replace("{", "{{").replace("}", "}}") + "\n{exception}"
    return base + "\n{exception}"


def _debug_format(record: dict[str, Any]) -> str:
    fields = " ".join(f"{k}={v}" for k, v in record["extra"].items() if k != "name")
    base = (
        "<green>{time:HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[name]}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )
    if fields:
        base += " <dim>" + fields.replace("{", "{{").replace("}", "}}").replace("<", r"\<") + "</dim>"
    return base + "\n{exception}"


def setup_logging(settings: Settings | None = None) -> None:
    """Configure loguru for the application and intercept stdlib loggers."""
    settings = settings or get_settings()
    level = "DEBUG" if settings.debug else settings.log_level.upper()

    logger.remove()
    # Records logged without get_logger() still render {extra[name]}
    logger.configure(extra={"name": "guardit"})

    if settings.log_json:
        logger.add(sys.stderr, level=level, serialize=True, filter=_health_log_filter)
    elif settings.debug:
        logger.add(
            sys.stderr,
            level=level,
            format=_debug_format,
            backtrace=True,
            diagnose=True,
        )
    else:
        logger.add(
            sys.stderr,
            level=level,
            format=_plain_format,
            filter=_health_log_filter,
            backtrace=True,
            diagnose=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name, floor in NOISY_LOGGERS.items():
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [InterceptHandler()]
        stdlib_logger.propagate = False
        if floor is not None and not settings.debug:
            stdlib_logger.setLevel(floor)


def get_logger(name: str) -> Any:
    """Get a logger bound to a module name."""
    return logger.bind(name=name)
