"""
Structured Logging

DESIGN DECISION: Every engine mutation is logged as a structured event
(snake_case event name plus key/value context). This provides:
1. Traceability of how the derived fuel value got where it is
2. Debugging capability for partial store failures
3. One correlation ID per system-check run

Logs go through structlog's stdlib integration so the host application
keeps control over handlers and levels.
"""

import logging
from uuid import UUID, uuid4

import structlog


_configured = False


def configure_logging(level: int = logging.INFO) -> None:
    """
    Configure structlog once for the process.

    Safe to call repeatedly; only the first call has an effect.
    """
    global _configured
    if _configured:
        return

    logging.basicConfig(format="%(message)s", level=level)
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
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structured logger."""
    return structlog.get_logger(name)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related log lines.

    Use this at the start of a system-check run and bind it to
    every logger used during that run.
    """
    return uuid4()
