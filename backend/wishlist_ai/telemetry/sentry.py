"""
Sentry Error Tracking
=====================

Centralized error tracking for the wishlist backend.

Related files:
- wishlist_ai/main.py: Initializes Sentry on app startup
- wishlist_ai/services/wishlist_service.py: Captures storage and absorbed scoring failures

Environment Variables:
- SENTRY_DSN: Sentry project DSN (Sentry stays disabled without it)
- ENVIRONMENT: Environment name (production, staging, development)
- SENTRY_TRACES_SAMPLE_RATE: Fraction of transactions traced (default 0.1)
"""

from __future__ import annotations

import logging
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

logger = logging.getLogger(__name__)

_initialized = False


def init_sentry(
    dsn: Optional[str],
    environment: str = "development",
    traces_sample_rate: float = 0.1,
) -> bool:
    """
    Initialize Sentry SDK for FastAPI.

    Should be called once during application startup.

    Returns:
        True if Sentry was initialized, False when no DSN is configured
        or initialization failed.
    """
    global _initialized

    if not dsn:
        logger.info("[SENTRY] SENTRY_DSN not set - error tracking disabled")
        return False

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                SqlalchemyIntegration(),
                LoggingIntegration(
                    level=logging.INFO,        # Capture INFO+ as breadcrumbs
                    event_level=logging.ERROR,  # Send ERROR+ as events
                ),
            ],
            traces_sample_rate=traces_sample_rate,
            # Customer ids travel in query strings; keep them out of events
            send_default_pii=False,
        )
    except Exception as e:
        logger.error(f"[SENTRY] Failed to initialize: {e}")
        return False

    _initialized = True
    logger.debug(f"[SENTRY] Initialized for {environment} environment")
    return True


def capture_exception(exception: Exception, extra: Optional[dict] = None) -> None:
    """
    Manually capture an exception to Sentry.

    Use this for exceptions that are caught and handled but should still
    be tracked for monitoring purposes.

    Example:
        try:
            db.commit()
        except SQLAlchemyError as e:
            capture_exception(e, extra={"shop": shop})
            raise StorageError(...) from e
    """
    if not _initialized:
        return

    try:
        with sentry_sdk.new_scope() as scope:
            if extra:
                for key, value in extra.items():
                    scope.set_extra(key, value)
            sentry_sdk.capture_exception(exception)
    except Exception as e:
        logger.error(f"[SENTRY] Failed to capture exception: {e}")
