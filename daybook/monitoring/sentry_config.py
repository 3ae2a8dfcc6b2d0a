"""Sentry setup for daybook; client errors (4xx) are never reported"""
import logging
from typing import Any, Optional
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from daybook.config import ENABLE_SENTRY, SENTRY_DSN, SENTRY_ENVIRONMENT, SENTRY_TRACES_SAMPLE_RATE

logger = logging.getLogger(__name__)

RELEASE = "daybook@1.0.0"

# Raised for bad input or missing records; the API answers them with 4xx
CLIENT_ERROR_NAMES = frozenset({"ValidationError", "NotFoundError", "ConflictError", "AuthenticationError"})


def drop_client_errors(event: dict, hint: dict) -> Optional[dict]:
    """before_send hook: discard events whose exception is a client error"""
    exc_info = hint.get("exc_info")
    if exc_info and type(exc_info[1]).__name__ in CLIENT_ERROR_NAMES:
        return None
    return event


def init_sentry() -> None:
    """Initialize the Sentry SDK when ENABLE_SENTRY and SENTRY_DSN are set"""
    if not ENABLE_SENTRY:
        logger.info("Sentry monitoring disabled")
        return

    if not SENTRY_DSN:
        logger.warning("Sentry enabled but SENTRY_DSN not configured")
        return

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        release=RELEASE,
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        before_send=drop_client_errors,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            # Error log records become events; info records become breadcrumbs
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
    )

    logger.info(f"Sentry initialized for {RELEASE} ({SENTRY_ENVIRONMENT}, traces {SENTRY_TRACES_SAMPLE_RATE})")


def set_user_context(user_id: str) -> None:
    """Attach the X-User-Id of the current request to Sentry events"""
    if ENABLE_SENTRY:
        sentry_sdk.set_user({"id": user_id})


def capture_exception(exception: Exception, **tags: Any) -> None:
    """Report a server-side failure, tagging it with request details (path, request_id)"""
    if not ENABLE_SENTRY:
        return

    for key, value in tags.items():
        sentry_sdk.set_tag(key, str(value))

    sentry_sdk.capture_exception(exception)
