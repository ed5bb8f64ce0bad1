"""
Main FastAPI application.

WHY: Entry point of the billing service. Wires logging, the request-id
middleware, the error handlers and the four routers together.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from timebill.api import billing_codes, invoices, role_rates, time_entries
from timebill.core.config import settings
from timebill.core.exception_handlers import register_exception_handlers
from timebill.core.logging import configure_logging
from timebill.db.session import engine
from timebill.middleware import RequestContextMiddleware

logger = logging.getLogger(__name__)

API_PREFIX = settings.API_PREFIX


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan.

    Nothing is loaded at startup: running timers are read from the
    database on demand. Shutdown releases pooled connections.
    """
    logger.info("%s %s starting", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("%s stopped", settings.PROJECT_NAME)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    configure_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Time tracking, rate resolution and invoice assembly API",
        version=settings.VERSION,
        docs_url=f"{API_PREFIX}/docs",
        redoc_url=f"{API_PREFIX}/redoc",
        openapi_url=f"{API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    # Request ids must exist before any handler logs
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        """Liveness probe; does not touch the database."""
        return {"status": "healthy", "version": settings.VERSION}

    @app.get("/", tags=["root"])
    async def root() -> dict:
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": f"{API_PREFIX}/docs",
        }

    for module in (time_entries, invoices, billing_codes, role_rates):
        app.include_router(module.router, prefix=API_PREFIX)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    # Development only; deployments run `uvicorn timebill.main:app`
    uvicorn.run(
        "timebill.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
