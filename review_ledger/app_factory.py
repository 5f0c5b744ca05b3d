"""
Review Ledger - Prediction review and verification metrics service

Architecture:
- Review Gateway: pass-through to the upstream review-prediction service
- Verification Ledger: upsert-by-id store of human verdicts
- Metrics Aggregator: accuracy/precision/recall/F1 and breakdowns

Installation:
- Native installation (no Docker required)
- Ledger persisted as a JSON document under DATA_VOLUME_PATH, or in Redis
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from review_ledger.config.settings import settings, get_cors_config, validate_config

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the Review Ledger application."""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Prediction review proxy, human verification ledger and metrics",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # CORS
    cors_config = get_cors_config()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_config["allow_origins"],
        allow_credentials=cors_config["allow_credentials"],
        allow_methods=cors_config["allow_methods"],
        allow_headers=cors_config["allow_headers"],
    )

    # Import routes (deferred to avoid circular imports)
    from review_ledger.api.routes import metrics, reviews, status

    # Register routes
    app.include_router(reviews.router)
    app.include_router(metrics.router)
    app.include_router(status.router)

    @app.get("/")
    async def root():
        """Root endpoint - service information"""
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "description": "Prediction review and verification metrics",
            "status": "operational",
            "endpoints": {
                "reviews": "/apiv2/reviews",
                "review_labels": "/apiv2/reviews/labels",
                "verify": "/apiv2/reviews/verify",
                "review_stats": "/apiv2/reviews/stats",
                "metrics": "/apiv2/metrics",
                "status": "/apiv2/status",
                "health": "/health",
                "docs": "/docs"
            }
        }

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        from review_ledger.services.ledger import get_ledger

        persistence = await get_ledger().status()
        return {
            "status": "ok" if persistence.available else "degraded",
            "service": "review-ledger",
            "version": settings.APP_VERSION,
            "ledger_available": persistence.available,
        }

    validate_config()
    logger.info(f"Review Ledger initialized on port {settings.PORT}")
    return app


# Create app instance
app = create_app()
