"""
Structured Logging Configuration

Installs the structlog processor chain used by every module in the
coordination core.
"""

import logging
from typing import Optional

import structlog

from .config import CoordinationConfig, get_config


def configure_logging(config: Optional[CoordinationConfig] = None) -> None:
    """
    Configure structlog for the process.

    Args:
        config: Configuration to read level and renderer from (uses cached config if not provided)
    """
    config = config or get_config()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if config.log_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
