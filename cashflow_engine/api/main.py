"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from cashflow_engine.api.middleware import MetricsMiddleware, RequestIDMiddleware
from cashflow_engine.api.v1 import forecast, insights, optimisation, stress_test
from cashflow_engine.config import settings
from cashflow_engine.infrastructure.observability.logging import setup_logging

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Cashflow Engine",
        description="Cashflow forecasting, optimisation and stress testing service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(forecast.router, prefix="/v1", tags=["forecast"])
    app.include_router(optimisation.router, prefix="/v1", tags=["optimisation"])
    app.include_router(stress_test.router, prefix="/v1", tags=["stress-tests"])
    app.include_router(insights.router, prefix="/v1", tags=["insights"])

    return app


app = create_app()
