"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from factoring_engine.api.middleware import RequestIDMiddleware, MetricsMiddleware
from factoring_engine.api.v1 import collections, offers, requests, settings as settings_routes
from factoring_engine.infrastructure.observability.logging import setup_logging
from factoring_engine.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Factoring Engine",
        description="Funding request lifecycle, offers, disbursement and collections",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added runs first
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(requests.router, prefix="/v1", tags=["requests"])
    app.include_router(offers.router, prefix="/v1", tags=["offers"])
    app.include_router(collections.router, prefix="/v1", tags=["collections"])
    app.include_router(settings_routes.router, prefix="/v1", tags=["settings"])

    return app


app = create_app()
