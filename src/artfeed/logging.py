"""Centralised logging configuration with JSON output.

Events are rendered as one JSON object per line, to stderr by default or to
a log file when one is configured (``ARTFEED_LOG_FILE`` / ``--log-file``).
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

DEFAULT_LOG_LEVEL = "INFO"

_configured_level: Optional[str] = None


def _configure_structlog(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _build_handler(log_file: Optional[str]) -> logging.Handler:
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_file, encoding="utf-8")
    return logging.StreamHandler(sys.stderr)


def configure_logging(
    level: str = DEFAULT_LOG_LEVEL,
    log_file: Optional[str] = None,
    force: bool = False,
) -> None:
    """Initialise stdlib + structlog JSON logging.

    Repeated calls are no-ops unless ``force`` is set, so libraries can call
    ``get_logger`` freely without clobbering the level chosen by the CLI.

    Args:
        level: Minimum level name, e.g. ``"DEBUG"``
        log_file: JSON lines file to append to; parent directories are created
        force: Replace handlers installed by an earlier call
    """

    global _configured_level
    if _configured_level is not None and not force:
        return

    handler = _build_handler(log_file)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logging.basicConfig(
        handlers=[handler],
        level=getattr(logging, level.upper(), logging.INFO),
        force=force,
    )
    _configure_structlog(level)
    _configured_level = level.upper()


def get_logger(name: str, **initial_values: Dict[str, Any]) -> structlog.stdlib.BoundLogger:
    """Return a bound structured logger."""

    configure_logging()
    logger = structlog.get_logger(name)
    if initial_values:
        return logger.bind(**initial_values)
    return logger


__all__ = ["configure_logging", "get_logger"]
