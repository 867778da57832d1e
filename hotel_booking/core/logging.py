"""
Structured logging for the booking service.

Every event carries the service name, version and environment, plus the
request id bound by RequestLoggingMiddleware. Production renders JSON lines
for the log shipper; other environments render for a terminal.

setup_logging() may run more than once (each app lifespan, each test app):
it swaps out the handler it installed previously instead of stacking another.
"""

import logging
import sys
from typing import Optional

import structlog
from hotel_booking.core.config import Settings, get_settings

# Third-party loggers that drown booking events at INFO
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "asyncio": logging.WARNING,
}

_handler: Optional[logging.Handler] = None


class AddAppContext:
    """structlog processor stamping service identity onto each event."""

    def __init__(self, settings: Settings):
        self.context = {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }

    def __call__(self, logger, method_name: str, event_dict: dict) -> dict:
        for key, value in self.context.items():
            event_dict.setdefault(key, value)
        return event_dict


def build_processors(settings: Settings) -> list:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        AddAppContext(settings),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.ENVIRONMENT == "production":
        processors.append(structlog.processors.format_exc_info)
    return processors


def build_renderer(settings: Settings):
    if settings.ENVIRONMENT == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=settings.DEBUG)


def setup_logging(settings: Optional[Settings] = None) -> logging.Handler:
    """Configure structlog and the root handler. Returns the installed handler."""
    global _handler
    settings = settings or get_settings()
    processors = build_processors(settings)

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            # stdlib records (uvicorn, alembic) get the same context and renderer
            foreign_pre_chain=processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                build_renderer(settings),
            ],
        )
    )

    root_logger = logging.getLogger()
    if _handler is not None:
        root_logger.removeHandler(_handler)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    _handler = handler

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    return handler


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
