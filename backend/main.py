"""
Application entry point.

Run with:
    cd backend
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from image_resolver import ResolverService, ResolverSettings, image_router, router

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(service: Optional[ResolverService] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: Pre-built service (tests); built from the environment otherwise
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.resolver_service.aclose()

    app = FastAPI(title="direct-img", lifespan=lifespan)
    app.state.resolver_service = service or ResolverService(ResolverSettings.from_env())

    # Operational routes first: the image route matches every GET path
    app.include_router(router)
    app.include_router(image_router)
    return app


configure_logging()
app = create_app()
