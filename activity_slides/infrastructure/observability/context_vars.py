from contextvars import ContextVar
from typing import Optional
from uuid import uuid4

from structlog.contextvars import bind_contextvars

# Context Variables for the operator session
correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
activity_id_ctx: ContextVar[Optional[str]] = ContextVar("activity_id", default=None)

CORRELATION_ID_HEADER = "X-Correlation-ID"


def get_correlation_id() -> str:
    """Returns the current correlation ID. Defaults to 'unknown' if not set."""
    return correlation_id_ctx.get() or "unknown"


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Sets (or generates) the correlation ID for the current context."""
    value = correlation_id or str(uuid4())
    correlation_id_ctx.set(value)
    return value


def get_activity_id() -> Optional[str]:
    return activity_id_ctx.get()


def set_activity_id(activity_id: Optional[str]) -> None:
    activity_id_ctx.set(activity_id or None)


def bind_context(**kwargs):
    """
    Binds the provided key-value pairs to the current structlog context.
    """
    bind_contextvars(**kwargs)
