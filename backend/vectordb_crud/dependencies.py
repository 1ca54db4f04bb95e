"""
VectorDB CRUD — FastAPI Dependencies
=====================================

What:  Hands the process-wide service instances to route handlers.
How:   The lifespan in main.py builds the collaborators once and stores them
       on `app.state`; these functions read them back per request.
Who:   Routes, via Depends(...). Tests replace them with
       `app.dependency_overrides`.
"""

from fastapi import Request

from vectordb_crud.exceptions import VectorStoreError
from vectordb_crud.services.enrichment_service import EnrichmentService
from vectordb_crud.services.record_service import RecordService

_NOT_READY = "Service collaborators are not initialized; check PINECONE_API and HF_TOKEN"


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise VectorStoreError(message=_NOT_READY, operation="startup")
    return value


def get_record_service(request: Request) -> RecordService:
    return _state(request, "record_service")


def get_enrichment_service(request: Request) -> EnrichmentService:
    return _state(request, "enrichment_service")
