"""
VectorDB CRUD — Health Check Route
===================================

What:  Health check endpoint for monitoring and load balancer checks.
How:   Probes Pinecone with describe_index_stats and reads the inference
       circuit breaker state (no inference quota is spent).

Status levels:
    - healthy:   both collaborators usable (HTTP 200)
    - degraded:  inference circuit open (HTTP 200)
    - unhealthy: vector store unreachable or not initialized (HTTP 200, flagged)
"""

import logging
import time

from fastapi import APIRouter, Request

from vectordb_crud import __version__
from vectordb_crud.schemas.record import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    vector_status = "connected"
    inference_status = "available"
    overall = "healthy"

    vector_store = getattr(request.app.state, "vector_store", None)
    if vector_store is None or not await vector_store.health_check():
        vector_status = "disconnected"
        overall = "unhealthy"

    inference = getattr(request.app.state, "inference_service", None)
    if inference is None:
        inference_status = "unavailable"
        overall = "unhealthy"
    elif not await inference.health_check():
        inference_status = "circuit_open"
        overall = "degraded" if overall != "unhealthy" else overall

    return HealthResponse(
        status=overall,
        version=__version__,
        vector_store=vector_status,
        inference=inference_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
