"""
Logging Setup

Engine modules log through structlog; records from the standard library
and third-party loggers are routed through the same processor chain so
a run produces one uniform stream, rendered as JSON or console text.
"""

import logging
import sys
from typing import IO, List, Optional

import structlog
from structlog.stdlib import ProcessorFormatter
from structlog.typing import Processor

from warehouse_analytics.config.settings import get_settings

LOG_FORMATS = ("json", "text")


def _shared_processors() -> List[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def configure_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """
    Install a single root handler rendering every record through structlog.

    Args:
        log_level: Level name overriding the configured one
        log_format: "json" or "text", overriding the configured one
        stream: Destination; stderr by default so reports can go to stdout

    Raises:
        ValueError: If the level or format is unknown
    """
    monitoring = get_settings().monitoring
    level_name = (log_level or monitoring.log_level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {level_name}")

    log_format = (log_format or monitoring.log_format).lower()
    if log_format not in LOG_FORMATS:
        raise ValueError(f"Log format must be one of: {LOG_FORMATS}")

    shared = _shared_processors()
    structlog.configure(
        processors=shared + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(ProcessorFormatter(
        processor=_renderer(log_format),
        foreign_pre_chain=shared,
    ))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    structlog.get_logger(__name__).debug("Logging configured", level=level_name, format=log_format)
