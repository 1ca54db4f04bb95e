"""
VectorDB CRUD — Enrichment Route Handlers
==========================================

What:  AI-enrichment endpoints over a stored record's description.
How:   Delegates to EnrichmentService and resolves the InferenceResult:
       by default a failed inference re-raises (→ 502 / 503); with
       ENRICHMENT_NULL_ON_FAILURE the endpoint answers 200 with a null result.

Endpoints:
    GET /summarize/{id}               → 200 {result}
    GET /convert-text-to-speech/{id}  → 200 audio/mpeg download
    GET /convert-text-to-image/{id}   → 200 {blob, content_type}
    GET /feature-extract/{id}         → 200 {features}
"""

import base64
import logging
from typing import Optional, TypeVar

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, JSONResponse
from starlette.background import BackgroundTask

from vectordb_crud.config import settings
from vectordb_crud.dependencies import get_enrichment_service
from vectordb_crud.schemas.record import (
    ErrorResponse,
    FeaturesResponse,
    ImageResponse,
    SummaryResponse,
)
from vectordb_crud.services.enrichment_service import EnrichmentService, InferenceResult

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Enrichment"])

T = TypeVar("T")

AUDIO_DOWNLOAD_NAME = "generated_audio.mp3"

ENRICHMENT_ERRORS = {
    404: {"description": "Record not found", "model": ErrorResponse},
    500: {"description": "Vector store or storage error", "model": ErrorResponse},
    502: {"description": "Inference model failed", "model": ErrorResponse},
    503: {"description": "Inference circuit open", "model": ErrorResponse},
}


def resolve(result: InferenceResult[T]) -> Optional[T]:
    """Pick the HTTP outcome of a failed inference according to configuration."""
    if result.ok or not settings.enrichment_null_on_failure:
        return result.unwrap()
    logger.warning("Returning null enrichment result: %s", result.error.message)
    return None


@router.get(
    "/summarize/{record_id}",
    response_model=SummaryResponse,
    responses=ENRICHMENT_ERRORS,
    summary="Summarize a record's description",
)
async def summarize(
    record_id: str,
    service: EnrichmentService = Depends(get_enrichment_service),
) -> SummaryResponse:
    return SummaryResponse(result=resolve(await service.summarize(record_id)))


@router.get(
    "/convert-text-to-speech/{record_id}",
    response_class=FileResponse,
    responses={
        200: {"content": {"audio/mpeg": {}}, "description": "Synthesized speech"},
        **ENRICHMENT_ERRORS,
    },
    summary="Synthesize speech from a record's description",
)
async def convert_text_to_speech(
    record_id: str,
    service: EnrichmentService = Depends(get_enrichment_service),
):
    path = resolve(await service.text_to_speech(record_id))
    if path is None:
        return JSONResponse(status_code=200, content={"result": None})

    background = None
    if not settings.keep_generated_audio:
        background = BackgroundTask(service.audio_store.cleanup_file, str(path))

    return FileResponse(
        path=str(path),
        media_type="audio/mpeg",
        filename=AUDIO_DOWNLOAD_NAME,
        background=background,
    )


@router.get(
    "/convert-text-to-image/{record_id}",
    response_model=ImageResponse,
    responses=ENRICHMENT_ERRORS,
    summary="Generate an image from a record's description",
)
async def convert_text_to_image(
    record_id: str,
    service: EnrichmentService = Depends(get_enrichment_service),
) -> ImageResponse:
    image = resolve(await service.text_to_image(record_id))
    blob = base64.b64encode(image).decode("ascii") if image is not None else None
    return ImageResponse(blob=blob, content_type="image/png")


@router.get(
    "/feature-extract/{record_id}",
    response_model=FeaturesResponse,
    responses=ENRICHMENT_ERRORS,
    summary="Classify a record's description",
)
async def feature_extract(
    record_id: str,
    service: EnrichmentService = Depends(get_enrichment_service),
) -> FeaturesResponse:
    return FeaturesResponse(features=resolve(await service.classify(record_id)))
