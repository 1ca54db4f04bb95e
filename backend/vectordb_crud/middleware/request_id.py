"""
VectorDB CRUD — Request ID Middleware
======================================

What:  Assigns a correlation ID to each request and returns it in X-Request-ID.
How:   Uses the client-provided X-Request-ID when present, otherwise a short
       uuid4. The ID is kept in a ContextVar so that error handlers and the
       logging filter below can read it without access to the request.
When:  Outermost middleware, so every response (including 429s and
       unexpected 500s) carries the ID.

Error body contract, shared by every error path:
    {"error": "<message>", "request_id": "<id>"}
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def error_response(
    status_code: int, message: str, headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "request_id": request_id_var.get("")},
        headers=headers,
    )


class RequestIDLogFilter(logging.Filter):
    """Stamps every log record with the current request ID (`-` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Unhandled exceptions reaching this layer are answered here as a 500 with
    the exception's own message; Starlette's outer ServerErrorMiddleware
    would otherwise answer without the request ID.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("Unexpected error: %s", str(e), exc_info=True)
            response = error_response(500, str(e) or type(e).__name__)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
