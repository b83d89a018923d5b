"""API v1 router: health, manuscript search/export and facet candidates."""

from fastapi import APIRouter

from catalogue.api.v1.endpoints import facets, health, manuscripts

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(manuscripts.router, prefix="/manuscripts", tags=["Manuscripts"])
api_router.include_router(facets.router, prefix="/facets", tags=["Facets"])
