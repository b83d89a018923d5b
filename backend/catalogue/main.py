"""FastAPI application factory and ASGI entry point (`catalogue.main:app`)."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalogue.api.v1.router import api_router
from catalogue.common.request_context import RequestContextMiddleware
from catalogue.core.config import settings
from catalogue.core.errors import (
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from catalogue.core.logging import setup_logging
from catalogue.search.facets import REFERENCE_FILES, load_reference_list
from catalogue.search.search_client import reset_client

VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and preload facet lists; close the search client on shutdown."""
    setup_logging()
    list_sizes = {facet: len(load_reference_list(facet)) for facet in REFERENCE_FILES}
    logger.info(
        "Catalogue API starting",
        extra={"search_endpoint": settings.search_endpoint, "facet_lists": list_sizes, "env": settings.ENV},
    )
    yield
    reset_client()


def create_app() -> FastAPI:
    """Create and configure the catalogue API."""
    docs_enabled = settings.ENV != "prod"
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=VERSION,
        description="Search, filter and export the Yazma Eserler manuscript catalogue",
        openapi_url="/openapi.json" if docs_enabled else None,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Request-ID", "X-Search-Calls", "X-Search-Time-ms"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "service": settings.PROJECT_NAME,
            "version": VERSION,
            "api": settings.API_PREFIX,
            "docs_url": "/docs" if docs_enabled else None,
        }

    return app


app = create_app()
