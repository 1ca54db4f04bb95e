"""
VectorDB CRUD — Enrichment Service
===================================

What:  Runs one inference task over a stored record's description.
How:   Looks the record up through RecordService, then calls the inference
       provider. Inference failures are captured in an InferenceResult
       instead of propagating, so the HTTP layer decides between
       "200 with null" and "502".
Who:   Enrichment routes (summarize, speech, image, classification).

Failure contract:
    record absent              → NotFoundError raised (404)
    inference failed / circuit → InferenceResult(error=...)
    audio not writable         → FileStorageError raised (500)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Generic, List, Optional, TypeVar, Union

from vectordb_crud.config import settings
from vectordb_crud.exceptions import (
    CircuitBreakerOpenError,
    InferenceServiceError,
    NotFoundError,
)
from vectordb_crud.schemas.record import Classification
from vectordb_crud.services.audio_store import AudioStore
from vectordb_crud.services.inference_base import InferenceProvider
from vectordb_crud.services.record_service import RecordService

logger = logging.getLogger(__name__)

T = TypeVar("T")

InferenceFailure = Union[InferenceServiceError, CircuitBreakerOpenError]


@dataclass(frozen=True)
class InferenceResult(Generic[T]):
    """Outcome of one enrichment call: exactly one of value / error is meaningful."""

    value: Optional[T] = None
    error: Optional[InferenceFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the captured inference error."""
        if self.error is not None:
            raise self.error
        return self.value

    def value_or_none(self) -> Optional[T]:
        return self.value if self.ok else None


class EnrichmentService:

    def __init__(
        self,
        records: RecordService,
        inference: InferenceProvider,
        audio_store: AudioStore,
    ):
        self.records = records
        self.inference = inference
        self.audio_store = audio_store

    async def _description(self, record_id: str) -> str:
        record = await self.records.get_by_id(record_id)
        if record is None:
            raise NotFoundError(resource="record", resource_id=record_id)
        return record.description

    async def _attempt(self, task: str, record_id: str, call: Awaitable[T]) -> InferenceResult[T]:
        try:
            return InferenceResult(value=await call)
        except (InferenceServiceError, CircuitBreakerOpenError) as e:
            logger.error("%s for record %s failed: %s", task, record_id, e.message)
            return InferenceResult(error=e)

    async def summarize(self, record_id: str) -> InferenceResult[str]:
        description = await self._description(record_id)
        return await self._attempt(
            "summarization",
            record_id,
            self.inference.summarize(description, max_length=settings.summary_max_length),
        )

    async def text_to_speech(self, record_id: str) -> InferenceResult[Path]:
        """On success the value is the path of a freshly written audio file."""
        description = await self._description(record_id)
        result = await self._attempt(
            "text-to-speech", record_id, self.inference.text_to_speech(description)
        )
        if not result.ok:
            return InferenceResult(error=result.error)

        path = await self.audio_store.store(record_id, result.value)
        return InferenceResult(value=path)

    async def text_to_image(self, record_id: str) -> InferenceResult[bytes]:
        description = await self._description(record_id)
        return await self._attempt(
            "text-to-image", record_id, self.inference.text_to_image(description)
        )

    async def classify(self, record_id: str) -> InferenceResult[List[Classification]]:
        description = await self._description(record_id)
        return await self._attempt(
            "text-classification", record_id, self.inference.classify(description)
        )
