import logging

import structlog
from structlog.contextvars import merge_contextvars

from activity_slides.core.settings import settings
from activity_slides.infrastructure.observability.context_vars import (
    get_activity_id,
    get_correlation_id,
)


class CorrelationLogFilter(logging.Filter):
    """
    Logging filter to inject correlation ID into log records.
    """
    def filter(self, record):
        record.correlation_id = get_correlation_id()
        return True


def add_context_vars(_, __, event_dict):
    """
    Processor to inject the session ContextVars into the log event.
    """
    event_dict.setdefault("correlation_id", get_correlation_id())

    activity_id = get_activity_id()
    if activity_id and "activity_id" not in event_dict:
        event_dict["activity_id"] = activity_id

    return event_dict


def configure_structlog(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configures structlog on top of standard logging.
    """
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationLogFilter())
    handler.setFormatter(
        logging.Formatter(" [%(asctime)s] [%(levelname)s] [trace_id=%(correlation_id)s] %(name)s: %(message)s")
    )

    resolved_level = str(level or settings.LOG_LEVEL or "INFO").upper()
    log_level = getattr(logging, resolved_level, logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=[handler],
        force=True,
    )

    use_json = settings.LOG_JSON if json_logs is None else json_logs
    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()

    processors = [
        merge_contextvars,
        add_context_vars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
