"""Loguru sinks for the client and the server."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from .config import LogConfig

_CONSOLE_FORMAT = (
    "<level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}"
    " - {message} {extra}"
)

# Loggers of the HTTP stack that use the standard library.
_FORWARDED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx")


def _stderr_sink(message: Any) -> None:
    """Write to the current sys.stderr, even if it was replaced."""
    sys.stderr.write(str(message))
    sys.stderr.flush()


class _StdlibToLoguruHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _forward_stdlib_logging() -> None:
    handler = _StdlibToLoguruHandler()
    for name in _FORWARDED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [handler]
        std_logger.propagate = False


def resolve_log_file(config: LogConfig, default_file: Path | None) -> Path | None:
    """The file sink path, or ``None`` when file logging is disabled."""
    if config.file is None:
        return default_file
    elif config.file == "":
        return None
    else:
        return Path(config.file).expanduser()


def setup_logging(
    config: LogConfig,
    *,
    verbose: bool = False,
    default_file: Path | None = None,
) -> Path | None:
    """Replace loguru's default sink with the configured ones.

    ``verbose`` forces debug level and the console sink. Returns the
    log file in use, if any.
    """
    level = "DEBUG" if verbose else config.level.upper()
    logger.remove()

    if config.console or verbose:
        logger.add(
            _stderr_sink,
            level=level,
            format=_CONSOLE_FORMAT,
            colorize=sys.stderr.isatty(),
            diagnose=False,
        )

    log_file = resolve_log_file(config, default_file)
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create log directory {log_file.parent}: {e}")
            log_file = None
        else:
            logger.add(
                log_file,
                level=level,
                format=_FILE_FORMAT,
                rotation=f"{config.max_size} MB",
                retention=config.max_backups,
                compression="gz" if config.compress else None,
                enqueue=True,
                diagnose=False,
            )

    _forward_stdlib_logging()
    logger.debug(f"Logging configured at {level}")
    return log_file
