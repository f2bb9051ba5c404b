"""
Telemetry Module
================

Observability for the wishlist backend.

Components:
- sentry.py: Error tracking (enabled when SENTRY_DSN is set)

Usage:
    from wishlist_ai.telemetry import init_sentry, capture_exception
"""

from wishlist_ai.telemetry.sentry import (
    init_sentry,
    capture_exception,
)

__all__ = [
    "init_sentry",
    "capture_exception",
]
