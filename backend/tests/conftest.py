"""
VectorDB CRUD — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── vector_store: In-memory stand-in for the Pinecone namespace
    ├── mock_inference: AsyncMock InferenceProvider with bag-of-words embeddings
    ├── temp_storage: Temporary directory for generated audio
    ├── record_service / enrichment_service: real services over the fakes
    └── test_client: HTTPX AsyncClient bound to a fresh app instance
"""

import os
import tempfile
import zlib
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import numpy as np
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Override settings for testing BEFORE any app imports
os.environ["PINECONE_API"] = "test-pinecone-key"
os.environ["HF_TOKEN"] = "hf_test_token_not_real"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="vectordb_crud_test_")
os.environ["LOG_LEVEL"] = "WARNING"

from vectordb_crud.config import EMBEDDING_DIMENSION  # noqa: E402
from vectordb_crud.schemas.record import Classification  # noqa: E402
from vectordb_crud.services.audio_store import AudioStore  # noqa: E402
from vectordb_crud.services.enrichment_service import EnrichmentService  # noqa: E402
from vectordb_crud.services.inference_base import InferenceProvider  # noqa: E402
from vectordb_crud.services.record_service import RecordService  # noqa: E402
from vectordb_crud.services.vector_store import ScoredVector, StoredVector  # noqa: E402


def bag_of_words_embedding(text: str) -> List[float]:
    """Deterministic unit vector: one hashed bucket per lower-cased word."""
    vector = np.zeros(EMBEDDING_DIMENSION)
    for word in text.lower().split():
        vector[zlib.crc32(word.encode()) % EMBEDDING_DIMENSION] += 1.0
    norm = np.linalg.norm(vector)
    if norm:
        vector = vector / norm
    return vector.tolist()


class FakeVectorStore:
    """
    In-memory namespace with the VectorStore interface.

    Listing walks ids in insertion order; the pagination token is the
    offset of the next page.
    """

    def __init__(self):
        self.vectors: Dict[str, StoredVector] = {}
        self.healthy = True

    async def ensure_index(self) -> bool:
        return False

    async def upsert(self, vectors: List[StoredVector]) -> int:
        for vector in vectors:
            self.vectors[vector.id] = vector
        return len(vectors)

    async def fetch(self, ids: List[str]) -> Dict[str, StoredVector]:
        return {i: self.vectors[i] for i in ids if i in self.vectors}

    async def update(self, vector_id: str, values: List[float], metadata: Dict[str, Any]) -> None:
        current = self.vectors[vector_id]
        self.vectors[vector_id] = StoredVector(
            id=vector_id, values=values, metadata={**current.metadata, **metadata}
        )

    async def delete(self, ids: List[str]) -> None:
        for i in ids:
            self.vectors.pop(i, None)

    async def query(self, vector: List[float], top_k: int) -> List[ScoredVector]:
        scored = [
            ScoredVector(id=v.id, score=float(np.dot(vector, v.values)), metadata=v.metadata)
            for v in self.vectors.values()
        ]
        best = sorted(scored, key=lambda s: s.score, reverse=True)[:top_k]
        # Worst-first, so callers cannot rely on the store's ordering
        return list(reversed(best))

    async def list_ids(
        self, limit: int, pagination_token: Optional[str] = None
    ) -> Tuple[List[str], Optional[str]]:
        ids = list(self.vectors)
        start = int(pagination_token or 0)
        end = start + limit
        return ids[start:end], (str(end) if end < len(ids) else None)

    async def health_check(self) -> bool:
        return self.healthy


@pytest.fixture
def vector_store():
    return FakeVectorStore()


@pytest.fixture
def mock_inference():
    """
    AsyncMock with the InferenceProvider interface.

    embed() returns bag-of-words vectors so similarity search is meaningful;
    the enrichment tasks return fixed values tests can override.
    """
    inference = AsyncMock(spec=InferenceProvider)
    inference.embed.side_effect = bag_of_words_embedding
    inference.summarize.return_value = "A short summary."
    inference.text_to_speech.return_value = b"ID3\x03\x00fake-mp3-frames"
    inference.text_to_image.return_value = b"\x89PNG\r\n\x1a\nfake-png"
    inference.classify.return_value = [
        Classification(label="Technology", score=0.91),
        Classification(label="Finance", score=0.05),
    ]
    inference.health_check.return_value = True
    return inference


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def record_service(vector_store, mock_inference):
    return RecordService(vector_store, mock_inference)


@pytest.fixture
def enrichment_service(record_service, mock_inference, temp_storage):
    return EnrichmentService(record_service, mock_inference, AudioStore(storage_root=temp_storage))


@pytest.fixture
def app(record_service, enrichment_service, vector_store, mock_inference):
    """
    A fresh application wired to the fakes.

    ASGITransport does not run the lifespan, so collaborators are provided
    through dependency overrides and app.state directly.
    """
    from vectordb_crud.dependencies import get_enrichment_service, get_record_service
    from vectordb_crud.main import create_app

    application = create_app()
    application.dependency_overrides[get_record_service] = lambda: record_service
    application.dependency_overrides[get_enrichment_service] = lambda: enrichment_service
    application.state.vector_store = vector_store
    application.state.inference_service = mock_inference
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
