"""
VectorDB CRUD — Record Service
===============================

What:  CRUD and similarity search over records held in the vector store.
How:   Composes the VectorStore (persistence) and an InferenceProvider
       (embeddings). Title and description travel as vector metadata; the
       vector itself is the embedding of `title + description`.
Who:   Record routes, and EnrichmentService for record lookup.

Orchestration (create / update):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │ Validate │───▶│ title +     │───▶│  Embedding   │───▶│ Upsert / │
    │ fields   │    │ description │    │  (HF API)    │    │ Update   │
    └──────────┘    └─────────────┘    └──────────────┘    └──────────┘

Invariant: the stored vector always reflects the stored metadata. Every
write recomputes the embedding from the text being written.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from vectordb_crud.config import settings
from vectordb_crud.exceptions import (
    CircuitBreakerOpenError,
    EmbeddingError,
    InferenceServiceError,
    NotFoundError,
    ValidationError,
)
from vectordb_crud.schemas.record import CreatedRecord, Record, RecordSummary, SearchMatch
from vectordb_crud.services.inference_base import InferenceProvider
from vectordb_crud.services.vector_store import StoredVector, VectorStore

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class RecordService:
    """
    Business logic layer for record operations.

    Responsibilities:
        - create():    validate → embed → upsert under a fresh uuid4
        - get_all():   page through ids, fetch their metadata
        - get_by_id(): direct fetch (None when absent)
        - update():    validate → ensure exists → re-embed → overwrite
        - delete():    remove by id
        - search():    embed query → top-k similarity query
    """

    def __init__(self, store: VectorStore, inference: InferenceProvider):
        self.store = store
        self.inference = inference

    @staticmethod
    def _validate(title: Optional[str], description: Optional[str]) -> Tuple[str, str]:
        if not title or not title.strip() or not description or not description.strip():
            missing = [
                name
                for name, value in (("title", title), ("description", description))
                if not value or not value.strip()
            ]
            raise ValidationError(
                message="title and description are required",
                field=missing[0],
                context={"missing": missing},
            )
        return title, description

    async def _embed(self, text: str) -> List[float]:
        try:
            return await self.inference.embed(text)
        except InferenceServiceError as e:
            raise EmbeddingError(message=e.message, retry_after=e.retry_after, context=e.context) from e
        except CircuitBreakerOpenError as e:
            raise EmbeddingError(
                message=e.message, retry_after=e.recovery_time, context=e.context
            ) from e

    @staticmethod
    def embedding_text(title: str, description: str) -> str:
        return title + description

    async def create(self, title: Optional[str], description: Optional[str]) -> CreatedRecord:
        """
        Raises:
            ValidationError: title or description missing/blank (nothing is written)
            EmbeddingError: embedding failed or the inference circuit is open
            VectorStoreError: upsert failed
        """
        title, description = self._validate(title, description)

        embedding = await self._embed(self.embedding_text(title, description))
        record_id = str(uuid.uuid4())

        upserted = await self.store.upsert(
            [
                StoredVector(
                    id=record_id,
                    values=embedding,
                    metadata={"title": title, "description": description},
                )
            ]
        )
        logger.info("Record created: %s", record_id)
        return CreatedRecord(id=record_id, upserted_count=upserted)

    async def get_all(
        self,
        limit: Optional[int] = None,
        pagination_token: Optional[str] = None,
    ) -> Tuple[List[RecordSummary], Optional[str]]:
        """
        List one page of records.

        Returns:
            (summaries in listing order, token for the next page or None)
        """
        page_size = min(max(limit or settings.list_page_size, 1), MAX_PAGE_SIZE)

        ids, next_token = await self.store.list_ids(page_size, pagination_token)
        if not ids:
            return [], next_token

        found = await self.store.fetch(ids)
        summaries = [
            RecordSummary(
                id=record_id,
                title=str(found[record_id].metadata.get("title", "")),
                description=str(found[record_id].metadata.get("description", "")),
            )
            for record_id in ids
            if record_id in found
        ]
        return summaries, next_token

    async def get_by_id(self, record_id: str) -> Optional[Record]:
        found = await self.store.fetch([record_id])
        vector = found.get(record_id)
        if vector is None:
            logger.debug("Record %s not found", record_id)
            return None

        return Record(
            id=vector.id,
            title=str(vector.metadata.get("title", "")),
            description=str(vector.metadata.get("description", "")),
            embedding=vector.values,
        )

    async def update(
        self, record_id: str, title: Optional[str], description: Optional[str]
    ) -> None:
        """
        Raises:
            ValidationError: title or description missing/blank
            NotFoundError: no record with this id
        """
        title, description = self._validate(title, description)

        existing = await self.store.fetch([record_id])
        if record_id not in existing:
            raise NotFoundError(resource="record", resource_id=record_id)

        embedding = await self._embed(self.embedding_text(title, description))
        await self.store.update(
            record_id,
            values=embedding,
            metadata={"title": title, "description": description},
        )
        logger.info("Record updated: %s", record_id)

    async def delete(self, record_id: str) -> None:
        await self.store.delete([record_id])
        logger.info("Record deleted: %s", record_id)

    async def search(self, query: str) -> List[SearchMatch]:
        embedding = await self._embed(query)
        matches = await self.store.query(embedding, top_k=settings.search_top_k)

        results = [
            SearchMatch(
                id=match.id,
                score=match.score,
                title=str(match.metadata.get("title", "")),
                description=str(match.metadata.get("description", "")),
            )
            for match in matches
        ]
        results.sort(key=lambda m: m.score, reverse=True)
        return results[: settings.search_top_k]
