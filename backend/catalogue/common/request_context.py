"""Request-scoped context for search backend instrumentation.

Every HTTP response gets:
- X-Request-ID
- X-Response-Time-ms
- X-Search-Calls
- X-Search-Time-ms

Sync endpoints run in a worker thread on a copy of the request context, so
the per-request counters live in one mutable `SearchStats` object that the
copies share.
"""

from __future__ import annotations

import contextvars
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


@dataclass
class SearchStats:
    """Outbound search requests made while serving one HTTP request."""

    calls: int = 0
    total_ms: float = 0.0


request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("request_id", default=None)
search_stats_var: contextvars.ContextVar[SearchStats | None] = contextvars.ContextVar(
    "search_stats", default=None
)


def get_request_id() -> str | None:
    """Get current request id (if in a request context)."""
    return request_id_var.get()


def record_search_call(elapsed_ms: float) -> None:
    """Account one outbound search request against the current HTTP request."""
    stats = search_stats_var.get()
    if stats is None:
        return
    stats.calls += 1
    stats.total_ms += elapsed_ms


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, time the request and report backend usage."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        stats = SearchStats()
        token_request_id = request_id_var.set(request_id)
        token_stats = search_stats_var.set(stats)

        start = time.perf_counter()
        logger.info(
            "request.start",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "query_params": str(request.query_params),
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request.failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "latency_ms": int((time.perf_counter() - start) * 1000),
                    "error": str(e),
                },
                exc_info=True,
            )
            raise
        else:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            search_ms = int(stats.total_ms)

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time-ms"] = str(elapsed_ms)
            response.headers["X-Search-Calls"] = str(stats.calls)
            response.headers["X-Search-Time-ms"] = str(search_ms)

            logger.info(
                "request.end",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "latency_ms": elapsed_ms,
                    "search_calls": stats.calls,
                    "search_ms": search_ms,
                },
            )
            return response
        finally:
            request_id_var.reset(token_request_id)
            search_stats_var.reset(token_stats)
