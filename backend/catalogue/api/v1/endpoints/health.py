"""Liveness and readiness of the catalogue service."""

from typing import Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from catalogue.core.errors import get_request_id
from catalogue.search.facets import REFERENCE_FILES, load_reference_list
from catalogue.search.search_client import SearchClient, get_search_client

router = APIRouter()

CheckStatus = Literal["ok", "degraded", "down"]


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"


class ReadinessCheck(BaseModel):
    status: CheckStatus
    message: str | None = None


class ReadinessResponse(BaseModel):
    """Overall status is the worst of the individual checks."""

    status: CheckStatus
    checks: dict[str, ReadinessCheck]
    request_id: str


def _check_search_backend(client: SearchClient) -> ReadinessCheck:
    if client.ping():
        return ReadinessCheck(status="ok")
    return ReadinessCheck(status="down", message="Search backend unreachable")


def _check_facet_lists() -> ReadinessCheck:
    # Searching works without them; only the pre-search pickers are empty
    missing = [facet for facet in REFERENCE_FILES if not load_reference_list(facet)]
    if missing:
        return ReadinessCheck(status="degraded", message=f"Empty facet lists: {', '.join(missing)}")
    return ReadinessCheck(status="ok")


@router.get("/health", response_model=HealthResponse, summary="Liveness check")
async def health_check() -> HealthResponse:
    """Returns 200 while the process is serving."""
    return HealthResponse()


@router.get("/ready", response_model=ReadinessResponse, summary="Readiness check")
def readiness_check(
    request: Request,
    client: SearchClient = Depends(get_search_client),
) -> ReadinessResponse:
    """Checks that the search backend answers and the facet lists are loaded."""
    checks = {
        "search_backend": _check_search_backend(client),
        "facet_lists": _check_facet_lists(),
    }

    statuses = {check.status for check in checks.values()}
    overall: CheckStatus = "down" if "down" in statuses else "degraded" if "degraded" in statuses else "ok"

    return ReadinessResponse(status=overall, checks=checks, request_id=get_request_id(request))
