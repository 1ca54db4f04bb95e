"""
VectorDB CRUD — Request Logging Middleware
===========================================

What:  One access-log line per request: method, path, status, duration.
How:   Measures time around call_next and picks the log level from the
       response status (5xx ERROR, 4xx WARNING, otherwise INFO).
When:  Runs inside RequestIDMiddleware, so the request ID is available.

Request bodies are never logged; record descriptions may be sensitive.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from vectordb_crud.middleware.request_id import request_id_var

logger = logging.getLogger("vectordb_crud.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Typical durations:
        - GET /get-record/{id}:            50-200ms (one Pinecone fetch)
        - POST /create-record:             300-1500ms (embedding + upsert)
        - GET /convert-text-to-image/{id}: several seconds (diffusion model)
    """

    SKIPPED_PATHS = {"/health"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.SKIPPED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        path = request.url.path
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms from %s",
            method,
            path,
            status,
            duration_ms,
            client_ip,
            extra={
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
                "rid": rid,
            },
        )

        return response
