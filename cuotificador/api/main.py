"""FastAPI application factory"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from cuotificador.api.errors import register_error_handlers
from cuotificador.api.middleware import RequestIDMiddleware, MetricsMiddleware
from cuotificador.api.v1 import catalog, quotes, rates
from cuotificador.infrastructure.clients.payway import ProviderRegistry
from cuotificador.infrastructure.database.session import init_db
from cuotificador.infrastructure.observability.logging import setup_logging
from cuotificador.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Cuotificador",
        description="Card installment quotes and interest rate administration",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # One client per bank configuration, tokens cached for the app lifetime
    app.state.provider_registry = ProviderRegistry()

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_error_handlers(app)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(quotes.router, prefix="/v1", tags=["quotes"])
    app.include_router(rates.router, prefix="/v1", tags=["rates"])
    app.include_router(catalog.router, prefix="/v1", tags=["catalog"])

    return app


app = create_app()
