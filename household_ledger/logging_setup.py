"""
Structured Logging Setup

structlog is configured once, on first use, to render JSON lines through
the standard library logging machinery. Library modules only call
get_logger(__name__); the host application decides levels and handlers
with configure_logging().
"""

import logging
import sys
from typing import Optional

import structlog

_CONFIGURED = False


def _configure_structlog() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def configure_logging(level: int = logging.INFO, debug: Optional[bool] = None) -> None:
    """
    Attach a stream handler to the package logger.

    Call once from the entrypoint. debug=True forces DEBUG level.
    """
    _configure_structlog()
    logger = logging.getLogger("household_ledger")
    if debug:
        level = logging.DEBUG
    logger.setLevel(level)
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    logger.propagate = False


def get_logger(name: str):
    """Get a structlog logger bound to a stdlib logger of the given name."""
    _configure_structlog()
    return structlog.get_logger(name)
