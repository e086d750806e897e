"""
Unified error handling with Sentry integration.

Provides centralized exception handling with:
- Optional Sentry error tracking (when a DSN is configured)
- Structured logging with request context enrichment
- Error boundaries for enhancements that must never abort a response

Usage:
    # Capture an exception
    capture_exception(exc, context={"post_id": "abc"})

    # Capture a message (non-exception event)
    capture_message("Post has no media", level="warning")

    # Omit one feed element if building it fails
    with error_boundary("podcast_chapters", post_id=post.id):
        item.append(build_chapters(post))
"""

from typing import Optional, Any, Dict
from datetime import datetime, timezone
from contextlib import contextmanager
import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
import structlog

from weblog.core.context import get_request_id, get_web_log_id, get_context_dict

logger = structlog.get_logger(__name__)

__all__ = [
    "WebLogNotFoundError",
    "init_sentry",
    "capture_exception",
    "capture_message",
    "ErrorHandler",
    "error_boundary",
]

_sentry_initialized: bool = False


class WebLogNotFoundError(LookupError):
    """No web log is configured for the requested URL."""

    def __init__(self, url: str):
        super().__init__(f"No web log found for {url}")
        self.url = url


def init_sentry(
    dsn: str,
    environment: str = "production",
    traces_sample_rate: float = 0.1,
    release: Optional[str] = None,
) -> bool:
    """
    Initialize Sentry SDK for error tracking.

    Returns:
        True if initialization successful, False otherwise
    """
    global _sentry_initialized

    if not dsn:
        logger.info("Sentry disabled (no DSN provided)")
        return False

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            traces_sample_rate=traces_sample_rate,
            release=release,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                SqlalchemyIntegration(),
                LoggingIntegration(
                    level=logging.INFO,
                    event_level=logging.ERROR,
                ),
            ],
            ignore_errors=[
                KeyboardInterrupt,
                SystemExit,
            ],
            before_send=_before_send,
        )
    except Exception as e:
        logger.error("Failed to initialize Sentry", error=str(e))
        return False

    _sentry_initialized = True
    logger.info("Sentry initialized", environment=environment, traces_sample_rate=traces_sample_rate)
    return True


def _before_send(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Drop health check noise and tag events with the request and tenant."""
    if "request" in event:
        url = event["request"].get("url", "")
        if "/health" in url:
            return None

    request_id = get_request_id()
    if request_id:
        event.setdefault("tags", {})["request_id"] = request_id

    web_log_id = get_web_log_id()
    if web_log_id:
        event.setdefault("tags", {})["web_log_id"] = web_log_id

    return event


def capture_exception(
    exc: BaseException,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error",
    fingerprint: Optional[list[str]] = None,
) -> Optional[str]:
    """
    Capture an exception with Sentry and structured logging.

    Args:
        exc: Exception to capture
        context: Additional context dict (e.g., {"post_id": "abc"})
        level: Severity level (debug, info, warning, error, fatal)
        fingerprint: Custom grouping fingerprint for Sentry

    Returns:
        Sentry event ID or None if not sent
    """
    enriched_context = {
        **get_context_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "error_type": type(exc).__name__,
        **(context or {}),
    }

    log_func = getattr(logger, level, logger.error)
    log_func("Exception captured", exc_info=exc, **enriched_context)

    if _sentry_initialized:
        try:
            with sentry_sdk.new_scope() as scope:
                for key, value in enriched_context.items():
                    if value is not None:
                        scope.set_extra(key, value)
                if fingerprint:
                    scope.fingerprint = fingerprint
                scope.level = level
                return sentry_sdk.capture_exception(exc)
        except Exception as e:
            logger.warning("Failed to send exception to Sentry", error=str(e))

    return None


def capture_message(
    message: str,
    level: str = "info",
    context: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """
    Capture a message (for non-exception events such as a podcast post with
    no episode attached).
    """
    enriched_context = {
        **get_context_dict(),
        **(context or {}),
    }

    log_func = getattr(logger, level, logger.info)
    log_func(message, **enriched_context)

    if _sentry_initialized and level in ("warning", "error", "fatal"):
        try:
            with sentry_sdk.new_scope() as scope:
                for key, value in enriched_context.items():
                    if value is not None:
                        scope.set_extra(key, value)
                scope.level = level
                return sentry_sdk.capture_message(message, level=level)
        except Exception as e:
            logger.warning("Failed to send message to Sentry", error=str(e))

    return None


class ErrorHandler:
    """
    Context manager for handling errors with automatic capture.

    Usage:
        # Suppress and capture errors
        with ErrorHandler("podcast_transcript", context={"post_id": post.id}):
            item.append(transcript_element(...))

        # Re-raise after capturing
        with ErrorHandler("generate_feed", reraise=True):
            ...

    Args:
        operation: Name of the operation (for grouping in Sentry)
        context: Additional context dict
        capture: Whether to capture (log + Sentry) the error
        reraise: Whether to re-raise exception
        level: Severity used when capturing
    """

    def __init__(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        capture: bool = True,
        reraise: bool = False,
        level: str = "error",
    ):
        self.operation = operation
        self.context = context or {}
        self.capture = capture
        self.reraise = reraise
        self.level = level
        self.event_id: Optional[str] = None
        self.exception: Optional[BaseException] = None

    def __enter__(self) -> "ErrorHandler":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_val is None:
            return False
        if not isinstance(exc_val, Exception):
            # Never swallow cancellation or interpreter exit
            return False

        self.exception = exc_val
        if self.capture:
            self.event_id = capture_exception(
                exc_val,
                context={"operation": self.operation, **self.context},
                level=self.level,
                fingerprint=[self.operation, type(exc_val).__name__],
            )
        return not self.reraise


@contextmanager
def error_boundary(operation: str, **context):
    """
    Captures and suppresses errors at warning level, logging with context.

    Usage:
        with error_boundary("podcast_chapters", post_id=post.id):
            chapters = parse_chapters(post.metadata)
    """
    handler = ErrorHandler(operation, context=context, capture=True, reraise=False, level="warning")
    with handler:
        yield handler
