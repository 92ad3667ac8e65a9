"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from crediario_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from crediario_ledger.api.v1 import accounts, credit_sales, payments, summary
from crediario_ledger.infrastructure.observability.logging import setup_logging
from crediario_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Crediário Ledger",
        description="Payment ledger, account balances and credit sale settlement",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(credit_sales.router, prefix="/v1", tags=["credit-sales"])
    app.include_router(summary.router, prefix="/v1", tags=["summary"])
    app.include_router(accounts.router, prefix="/v1", tags=["accounts"])

    return app


app = create_app()
