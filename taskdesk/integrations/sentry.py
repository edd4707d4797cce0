# =============================================================================
# Sentry Error Tracking Integration
# =============================================================================
#
# Setup:
#   1. Create a Python project at sentry.io
#   2. Copy DSN to .env: SENTRY_DSN=https://...@sentry.io/...
#
# Usage:
#   init_sentry() is called at app startup (taskdesk/api/app.py)
#
# =============================================================================

import logging
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from taskdesk.config import Settings, get_settings
from taskdesk.core.errors import TaskdeskError

logger = logging.getLogger(__name__)


def init_sentry(settings: Settings | None = None) -> bool:
    """
    Initialize Sentry error tracking.

    Returns True if initialized, False if skipped.
    """
    settings = settings or get_settings()

    if not settings.sentry_dsn:
        logger.info("SENTRY_DSN not set - error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,

        # Sample 10% of transactions in prod
        traces_sample_rate=0.1 if settings.is_production else 1.0,

        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR,
            ),
        ],

        # Don't send PII by default
        send_default_pii=False,

        before_send=_filter_events,
        before_send_transaction=_filter_transactions,
    )

    logger.info(f"Sentry initialized for {settings.environment}")
    return True


def _filter_events(event: dict, hint: dict) -> dict | None:
    """Filter out expected failures and scrub credentials."""
    if "exc_info" in hint:
        _, exc_value, _ = hint["exc_info"]

        # Auth failures, missing records and bad input are not bugs
        if isinstance(exc_value, TaskdeskError) and exc_value.status_code < 500:
            return None

        from fastapi import HTTPException
        if isinstance(exc_value, HTTPException) and exc_value.status_code in (401, 403, 404, 422):
            return None

    if "request" in event:
        request = event["request"]
        if "headers" in request:
            headers = request["headers"]
            for key in list(headers.keys()):
                if key.lower() in ("authorization", "cookie"):
                    headers[key] = "[Filtered]"

    return event


def _filter_transactions(event: dict, hint: dict) -> dict | None:
    """Filter out noisy transactions."""
    if event.get("transaction", "") in ("/health", "/healthz", "/ready"):
        return None
    return event


def capture_exception(error: Exception, **context: Any) -> str | None:
    """
    Capture an exception to Sentry.

    Returns the event ID if captured, None otherwise.
    """
    if not sentry_sdk.get_client().is_active():
        logger.error("Unhandled error (Sentry disabled)", exc_info=error)
        return None

    with sentry_sdk.new_scope() as scope:
        for key, value in context.items():
            scope.set_extra(key, value)
        return sentry_sdk.capture_exception(error)


def set_user(identity: str, role: str | None = None) -> None:
    """Set the current user context for error reports."""
    if sentry_sdk.get_client().is_active():
        sentry_sdk.set_user({"id": identity, "role": role})
