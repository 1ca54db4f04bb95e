"""
VectorDB CRUD — Pinecone Vector Store
======================================

What:  Thin async wrapper over one Pinecone index namespace.
How:   The Pinecone SDK is synchronous; every call runs in Starlette's
       threadpool so a slow round-trip never blocks the event loop. SDK
       errors are wrapped in VectorStoreError carrying the raw message.
Who:   Built once in the application lifespan; used by RecordService and
       the health route.
When:  ensure_index() runs at startup, every other method per request.

Index layout (fixed, see config.py):
    name=vectordb-crud, dimension=384, metric=cosine,
    serverless aws/us-east-1, namespace=vDB
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from pinecone import Pinecone, ServerlessSpec
from starlette.concurrency import run_in_threadpool

from vectordb_crud.config import (
    EMBEDDING_DIMENSION,
    INDEX_CLOUD,
    INDEX_METRIC,
    INDEX_NAME,
    INDEX_REGION,
    NAMESPACE,
    settings,
)
from vectordb_crud.exceptions import VectorStoreError

logger = logging.getLogger(__name__)


@dataclass
class StoredVector:
    """An id → (values, metadata) entry as held by the index."""
    id: str
    values: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ScoredVector:
    """A similarity-query match; values are never requested back."""
    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class VectorStore:
    """
    Pinecone index bound to a single namespace.

    Operations:
        ensure_index()  → create the index if absent (idempotent)
        upsert()        → insert or overwrite vectors
        fetch()         → direct lookup by id
        update()        → replace values and metadata of one id
        delete()        → remove ids
        query()         → top-k cosine similarity search
        list_ids()      → paginated id listing (serverless indexes)
        health_check()  → describe_index_stats round-trip
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        index_name: str = INDEX_NAME,
        namespace: str = NAMESPACE,
        client: Optional[Pinecone] = None,
    ):
        self.index_name = index_name
        self.namespace = namespace
        self.client = client or Pinecone(api_key=api_key or settings.pinecone_api_key)
        self._index = None

        logger.info(
            "VectorStore initialized for index=%s namespace=%s",
            self.index_name,
            self.namespace,
        )

    @property
    def index(self):
        """Index handle, resolved on first use (the index may not exist at construction)."""
        if self._index is None:
            self._index = self.client.Index(self.index_name)
        return self._index

    async def _call(self, operation: str, func: Callable[..., Any], **kwargs: Any) -> Any:
        try:
            return await run_in_threadpool(func, **kwargs)
        except Exception as e:
            logger.error("Pinecone %s failed: %s", operation, str(e))
            raise VectorStoreError(
                message=str(e) or f"Pinecone {operation} failed",
                operation=operation,
                context={"index": self.index_name, "error_type": type(e).__name__},
            ) from e

    # ── Bootstrap ─────────────────────────────────────────────────────────

    async def ensure_index(self) -> bool:
        """
        Create the index if it does not exist yet.

        Returns:
            True if the index was created by this call, False if it already existed.
        """
        existing = await self._call("list_indexes", self.client.list_indexes)
        if self.index_name in existing.names():
            logger.info("Index '%s' already exists", self.index_name)
            return False

        await self._call(
            "create_index",
            self.client.create_index,
            name=self.index_name,
            dimension=EMBEDDING_DIMENSION,
            metric=INDEX_METRIC,
            spec=ServerlessSpec(cloud=INDEX_CLOUD, region=INDEX_REGION),
        )
        logger.info(
            "Index '%s' created (dimension=%d, metric=%s, %s/%s)",
            self.index_name,
            EMBEDDING_DIMENSION,
            INDEX_METRIC,
            INDEX_CLOUD,
            INDEX_REGION,
        )
        return True

    # ── CRUD ──────────────────────────────────────────────────────────────

    async def upsert(self, vectors: List[StoredVector]) -> int:
        if not vectors:
            raise ValueError("Cannot upsert empty vector list")

        response = await self._call(
            "upsert",
            self.index.upsert,
            vectors=[
                {"id": v.id, "values": v.values, "metadata": v.metadata}
                for v in vectors
            ],
            namespace=self.namespace,
        )
        return getattr(response, "upserted_count", len(vectors))

    async def fetch(self, ids: List[str]) -> Dict[str, StoredVector]:
        """Absent ids are simply missing from the returned mapping."""
        if not ids:
            return {}

        response = await self._call(
            "fetch", self.index.fetch, ids=ids, namespace=self.namespace
        )
        found: Dict[str, StoredVector] = {}
        for vector_id, vector in (response.vectors or {}).items():
            found[vector_id] = StoredVector(
                id=vector_id,
                values=list(vector.values or []),
                metadata=dict(vector.metadata or {}),
            )
        return found

    async def update(
        self, vector_id: str, values: List[float], metadata: Dict[str, Any]
    ) -> None:
        await self._call(
            "update",
            self.index.update,
            id=vector_id,
            values=values,
            set_metadata=metadata,
            namespace=self.namespace,
        )

    async def delete(self, ids: List[str]) -> None:
        if not ids:
            return
        await self._call("delete", self.index.delete, ids=ids, namespace=self.namespace)

    # ── Queries ───────────────────────────────────────────────────────────

    async def query(self, vector: List[float], top_k: int) -> List[ScoredVector]:
        response = await self._call(
            "query",
            self.index.query,
            vector=vector,
            top_k=top_k,
            namespace=self.namespace,
            include_metadata=True,
            include_values=False,
        )
        return [
            ScoredVector(
                id=match.id,
                score=float(match.score or 0.0),
                metadata=dict(match.metadata or {}),
            )
            for match in (response.matches or [])
        ]

    async def list_ids(
        self, limit: int, pagination_token: Optional[str] = None
    ) -> Tuple[List[str], Optional[str]]:
        """
        Page through the namespace's ids.

        Returns:
            (ids on this page, token for the next page or None on the last page)
        """
        kwargs: Dict[str, Any] = {"limit": limit, "namespace": self.namespace}
        if pagination_token:
            kwargs["pagination_token"] = pagination_token

        response = await self._call("list", self.index.list_paginated, **kwargs)
        ids = [item.id for item in (response.vectors or [])]
        pagination = getattr(response, "pagination", None)
        next_token = getattr(pagination, "next", None) if pagination else None
        return ids, next_token

    async def health_check(self) -> bool:
        try:
            await run_in_threadpool(self.index.describe_index_stats)
            return True
        except Exception as e:
            logger.warning("Pinecone health check failed: %s", str(e))
            return False
