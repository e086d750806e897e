"""
Request context management for log correlation.

Uses contextvars for async-safe context propagation; values set here are bound
into structlog's contextvars so every log line for a request carries them.

Usage:
    # In middleware (automatic)
    set_request_id(generate_request_id())

    # Once the tenant is known
    set_web_log_id(web_log.id)

    # In error handlers
    capture_exception(exc, context=get_context_dict())
"""

from contextvars import ContextVar
from typing import Optional
import uuid

import structlog

__all__ = [
    "set_request_id",
    "get_request_id",
    "generate_request_id",
    "set_web_log_id",
    "get_web_log_id",
    "clear_context",
    "get_context_dict",
]

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_web_log_id: ContextVar[Optional[str]] = ContextVar("web_log_id", default=None)


def generate_request_id() -> str:
    """
    Generate a new request ID.

    Format: req_{16 hex chars}
    """
    return f"req_{uuid.uuid4().hex[:16]}"


def set_request_id(request_id: str) -> None:
    """Set request ID for current async context."""
    _request_id.set(request_id)
    structlog.contextvars.bind_contextvars(request_id=request_id)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def set_web_log_id(web_log_id: str) -> None:
    """Set the tenant (web log) serving the current request."""
    _web_log_id.set(web_log_id)
    structlog.contextvars.bind_contextvars(web_log_id=web_log_id)


def get_web_log_id() -> Optional[str]:
    return _web_log_id.get()


def clear_context() -> None:
    """
    Clear all context variables.

    Called at end of request to prevent context leaking.
    """
    _request_id.set(None)
    _web_log_id.set(None)
    structlog.contextvars.clear_contextvars()


def get_context_dict() -> dict:
    """Get all context variables as dict (for enriching error reports)."""
    return {
        "request_id": get_request_id(),
        "web_log_id": get_web_log_id(),
    }
