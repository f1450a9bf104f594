"""
FastAPI application for the Ledger.

Run with:
    uvicorn ledger.api.app:app
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request

from ledger import __version__
from ledger.api.errors import register_exception_handlers
from ledger.api.routes import categories_router, transactions_router, users_router
from ledger.orchestrator import AppComponents, create_app_components


logger = structlog.get_logger(__name__)

API_PREFIX = "/api/v1"


def create_app(components: Optional[AppComponents] = None) -> FastAPI:
    """
    Build the application.

    Args:
        components: Pre-built (and already started) components. When None,
            components are created from the environment on startup and
            disposed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if components is not None:
            app.state.components = components
            yield
            return

        owned = create_app_components()
        await owned.start()
        app.state.components = owned
        try:
            yield
        finally:
            await owned.close()

    app = FastAPI(title="Personal Finance Ledger", version=__version__, lifespan=lifespan)
    if components is not None:
        # Usable without running the lifespan (e.g. ASGI test transports)
        app.state.components = components

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status=status_code,
                latency_ms=round((time.perf_counter() - started) * 1000, 2),
            )

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    register_exception_handlers(app)
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(categories_router, prefix=API_PREFIX)
    app.include_router(transactions_router, prefix=API_PREFIX)
    return app


app = create_app()
