"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import health, lanes
from .config import settings
from .services.verification.verifier import get_city_verifier

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"{settings.app_name} ready: radius {settings.default_radius_miles} mi, "
        f"alternates {settings.standard_alternate_count}/{settings.fill_alternate_count}, "
        f"contact methods {list(settings.contact_methods)}"
    )
    yield
    # Pending verifications are dropped.
    if get_city_verifier.cache_info().currsize:
        verifier = get_city_verifier()
        if verifier is not None:
            verifier.shutdown(wait=False)


def create_app() -> FastAPI:
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "lanes": f"{settings.api_prefix}/lanes",
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(lanes.router, prefix=settings.api_prefix)
    return app


app = create_app()
