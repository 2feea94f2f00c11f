"""
regdesk.api.app

FastAPI app factory for the registration desk service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Initialize and dispose shared infrastructure (DB engine/session factory) in the lifespan.
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from regdesk import __version__
from regdesk.api.routers.health import router as health_router
from regdesk.api.routers.identity.router import router as identity_router
from regdesk.api.routers.registrations import router as registrations_router
from regdesk.api.routers.verify_admin_login import router as verify_admin_login_router
from regdesk.db.init_db import init_db
from regdesk.db.session import create_engine, create_sessionmaker
from regdesk.observability.logging import configure_logging, get_logger
from regdesk.observability.middleware import RequestContextMiddleware
from regdesk.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(
        service_name=settings.service_name, level=settings.log_level, json=settings.log_json
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Prod runs Alembic migrations instead.
            await init_db(engine)
        try:
            yield
        finally:
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Registration Desk",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(verify_admin_login_router)
    app.include_router(identity_router)
    app.include_router(registrations_router)

    return app


# --- Module Notes -----------------------------------------------------------
# Routers stay thin; credential checks live in `services.credential_verifier` and the
# client-side login flow in `services.admin_auth`.
