"""structlog setup for the service and CLI processes.

Learn: Library code only calls structlog.get_logger() and emits
event-style names (kiosk_link.connected) with key/value context.
How those events are rendered is decided once, here, at process start.
"""

import logging
import sys

import structlog

from expoalerts.config import settings


def configure_logging(level: str | None = None, json: bool | None = None) -> None:
    """Configure stdlib logging and the structlog processor chain."""
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    use_json = settings.log_json if json is None else json

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        stream=sys.stdout,
    )
    # Reduce noise from third-party libraries
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    renderer = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
