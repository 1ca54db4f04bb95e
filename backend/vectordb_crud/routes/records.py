"""
VectorDB CRUD — Record Route Handlers
======================================

What:  CRUD and similarity-search endpoints over stored records.
How:   Extracts path/body parameters, delegates to RecordService, shapes JSON.
Who:   API clients of the record collection.

Endpoints:
    POST   /create-record          → 201 {message, response}
    GET    /get-all-records        → 200 [{id, title, description}]
    GET    /get-record/{id}        → 200 {record}
    POST   /update-record/{id}     → 200 {message}
    DELETE /delete-record/{id}     → 200 {message}
    GET    /search-record/{query}  → 200 {result}
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from vectordb_crud.dependencies import get_record_service
from vectordb_crud.schemas.record import (
    CreateRecordResponse,
    ErrorResponse,
    MessageResponse,
    RecordPayload,
    RecordResponse,
    RecordSummary,
    SearchResponse,
)
from vectordb_crud.services.record_service import MAX_PAGE_SIZE, RecordService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Records"])

NEXT_PAGE_HEADER = "X-Next-Page-Token"


@router.post(
    "/create-record",
    status_code=201,
    response_model=CreateRecordResponse,
    responses={
        400: {"description": "title or description missing", "model": ErrorResponse},
        500: {"description": "Vector store or embedding error", "model": ErrorResponse},
    },
    summary="Create a record",
)
async def create_record(
    payload: RecordPayload,
    service: RecordService = Depends(get_record_service),
) -> CreateRecordResponse:
    created = await service.create(payload.title, payload.description)
    return CreateRecordResponse(message="Record created successfully", response=created)


@router.get(
    "/get-all-records",
    response_model=List[RecordSummary],
    responses={500: {"description": "Vector store error", "model": ErrorResponse}},
    summary="List records",
    description=(
        "Returns one page of records (default 10). When more records exist, the "
        f"{NEXT_PAGE_HEADER} response header carries the token for the next page."
    ),
)
async def get_all_records(
    response: Response,
    limit: Optional[int] = Query(default=None, ge=1, le=MAX_PAGE_SIZE),
    pagination_token: Optional[str] = Query(default=None),
    service: RecordService = Depends(get_record_service),
) -> List[RecordSummary]:
    records, next_token = await service.get_all(limit=limit, pagination_token=pagination_token)
    if next_token:
        response.headers[NEXT_PAGE_HEADER] = next_token
    return records


@router.get(
    "/get-record/{record_id}",
    response_model=RecordResponse,
    responses={500: {"description": "Vector store error", "model": ErrorResponse}},
    summary="Fetch a record by id",
    description="`record` is null when no record has this id.",
)
async def get_record(
    record_id: str,
    service: RecordService = Depends(get_record_service),
) -> RecordResponse:
    return RecordResponse(record=await service.get_by_id(record_id))


@router.post(
    "/update-record/{record_id}",
    response_model=MessageResponse,
    responses={
        400: {"description": "title or description missing", "model": ErrorResponse},
        404: {"description": "Record not found", "model": ErrorResponse},
        500: {"description": "Vector store or embedding error", "model": ErrorResponse},
    },
    summary="Replace a record's title and description",
)
async def update_record(
    record_id: str,
    payload: RecordPayload,
    service: RecordService = Depends(get_record_service),
) -> MessageResponse:
    await service.update(record_id, payload.title, payload.description)
    return MessageResponse(message="Record updated successfully")


@router.delete(
    "/delete-record/{record_id}",
    response_model=MessageResponse,
    responses={500: {"description": "Vector store error", "model": ErrorResponse}},
    summary="Delete a record",
)
async def delete_record(
    record_id: str,
    service: RecordService = Depends(get_record_service),
) -> MessageResponse:
    await service.delete(record_id)
    return MessageResponse(message="Record deleted successfully")


@router.get(
    "/search-record/{query}",
    response_model=SearchResponse,
    responses={
        500: {"description": "Vector store or embedding error", "model": ErrorResponse},
    },
    summary="Similarity search over records",
)
async def search_record(
    query: str,
    service: RecordService = Depends(get_record_service),
) -> SearchResponse:
    return SearchResponse(result=await service.search(query))
