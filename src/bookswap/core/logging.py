"""Structured logging on structlog, rendered through the stdlib root logger.

Console output in development, one JSON object per line elsewhere. Entries
logged while a request is in flight carry its ``correlation_id``.

Usage:
    configure_logging(settings)
    logger = get_logger(__name__)
    logger.info("exchange_created", exchange_id=42, initiator_id=7)
"""

import logging
import sys
from contextvars import ContextVar

import structlog
from structlog.types import EventDict, Processor

from bookswap.config import Settings

correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_ctx.set(correlation_id)


def clear_correlation_id() -> None:
    correlation_id_ctx.set(None)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Structlog processor copying the request's correlation ID into the entry."""
    correlation_id = correlation_id_ctx.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def configure_logging(settings: Settings) -> None:
    """Route structlog and stdlib logging through one stdout handler."""
    log_level = getattr(logging, settings.log_level.value, logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: Processor
    if settings.use_json_logs:
        renderer = structlog.processors.JSONRenderer()
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ]
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)
        processors = [*shared_processors, renderer]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )
    handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    # SQL echo only in debug mode
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
