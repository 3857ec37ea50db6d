"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from budget_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from budget_gateway.api.v1 import budgets, intents, purchase_orders, expenses, fiscal_year
from budget_gateway.infrastructure.database.models import Base
from budget_gateway.infrastructure.database.session import engine
from budget_gateway.infrastructure.observability.logging import setup_logging
from budget_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Document table is the only schema object; safe to ensure on every start
    Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Budget Gateway",
        description="Fiscal-year budgets, purchase order issuance and spend posting",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
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
    app.include_router(budgets.router, prefix="/v1", tags=["budgets"])
    app.include_router(intents.router, prefix="/v1", tags=["intents"])
    app.include_router(purchase_orders.router, prefix="/v1", tags=["purchase-orders"])
    app.include_router(expenses.router, prefix="/v1", tags=["expenses"])
    app.include_router(fiscal_year.router, prefix="/v1", tags=["fiscal-year"])

    return app


app = create_app()
