"""
structlog configuration for the storefront service.

Log records go to stdout through the stdlib ``logging`` module, rendered as
JSON lines or as coloured console output depending on ``LOG_FORMAT``.
"""

import logging
import sys

import structlog

from storefront.settings import Settings

_BASE_PROCESSORS: tuple[structlog.types.Processor, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
)


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(settings: Settings) -> None:
    """Route structlog through stdlib logging at the configured level."""
    observability = settings.observability
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, observability.log_level.value),
        force=True,
    )

    structlog.configure(
        processors=[*_BASE_PROCESSORS, _renderer(observability.log_format)],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a bound logger, usually called with ``__name__``."""
    return structlog.get_logger(name)
