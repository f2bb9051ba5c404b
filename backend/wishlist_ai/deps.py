"""Dependency providers and settings management."""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.orm import Session

from .database import get_db


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"

    # Scoring model
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT_SECONDS: float = 15.0

    # Shopify Admin GraphQL
    SHOPIFY_API_VERSION: str = "2024-07"
    SHOPIFY_TIMEOUT_SECONDS: float = 10.0

    # Error tracking
    SENTRY_DSN: Optional[str] = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1
    ENVIRONMENT: str = "development"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]


def get_wishlist_service(
    request: Request,
    db: Session = Depends(get_db),
):
    """Build the per-request WishlistService.

    The scorer and fetcher are process-wide collaborators created in
    create_app() and stored on app.state; the session is per request.
    """
    from .services.wishlist_service import WishlistService

    return WishlistService(
        db=db,
        fetcher=request.app.state.order_history_fetcher,
        scorer=request.app.state.conversion_scorer,
    )
