"""FastAPI application entrypoint.

Builds the process-wide scoring client and order-history fetcher, configures
CORS for storefront origins, includes the wishlist router, and exposes a
healthcheck endpoint.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from .deps import get_settings
from .routers import wishlist as wishlist_router
from .services.conversion_scoring import ConversionScorer, build_scoring_client
from .services.order_history import OrderHistoryFetcher
from .telemetry import init_sentry
from . import schemas

# Import models so Alembic can discover metadata
from . import models  # noqa: F401


def create_app(scoring_client=None) -> FastAPI:
    """Create the wishlist API.

    Args:
        scoring_client: Optional pre-built OpenAI-compatible client (tests pass a fake).
                        When None, one is built from OPENAI_API_KEY and a missing
                        key aborts startup.
    """
    settings = get_settings()

    if scoring_client is None:
        scoring_client = build_scoring_client(settings.OPENAI_API_KEY, timeout=settings.OPENAI_TIMEOUT_SECONDS)
        logger.info(f"[STARTUP] Scoring client ready (model: {settings.OPENAI_MODEL})")

    init_sentry(
        settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )

    app = FastAPI(
        title="Wishlist AI API",
        description="""
        Storefront wishlist backend with AI conversion scoring.

        Shoppers add and remove products from their wishlist through the
        Shopify App Proxy. The first time a product is added, the shopper's
        recent order history is summarized and a generative model estimates
        a 0-100 likelihood to purchase, which is stored and returned.
        """,
        version="1.0.0",
    )

    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    allowed_origins = [origin.strip() for origin in settings.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]
    logger.info(f"[CORS] Allowed origins: {allowed_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        # Storefront widgets run on arbitrary *.myshopify.com domains
        allow_origin_regex=r"https://[a-z0-9-]+\.myshopify\.com",
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Process-wide collaborators shared by every request
    app.state.conversion_scorer = ConversionScorer(
        client=scoring_client,
        model=settings.OPENAI_MODEL,
        timeout=settings.OPENAI_TIMEOUT_SECONDS,
    )
    app.state.order_history_fetcher = OrderHistoryFetcher(
        api_version=settings.SHOPIFY_API_VERSION,
        timeout=settings.SHOPIFY_TIMEOUT_SECONDS,
    )

    app.include_router(wishlist_router.router)

    @app.get(
        "/health",
        response_model=schemas.HealthResponse,
        tags=["Health"],
        summary="Health check",
    )
    def health():
        """Simple health check endpoint to verify the API is running."""
        return schemas.HealthResponse(status="ok")

    return app
