"""
VectorDB CRUD — Enrichment Service Unit Tests
==============================================

What we test:
    ✅ Each task runs over the record's description
    ✅ Absent record raises NotFoundError before any inference call
    ✅ Inference failures and an open circuit are captured, not raised
    ✅ Speech is written to a fresh file per call
"""

from pathlib import Path

import pytest
import pytest_asyncio

from vectordb_crud.config import settings
from vectordb_crud.exceptions import (
    CircuitBreakerOpenError,
    InferenceServiceError,
    NotFoundError,
)
from vectordb_crud.services.enrichment_service import InferenceResult


@pytest_asyncio.fixture
async def record_id(record_service):
    created = await record_service.create("Report", "Quarterly revenue grew by ten percent.")
    return created.id


class TestInferenceResult:

    def test_ok_result(self):
        result = InferenceResult(value="text")
        assert result.ok
        assert result.unwrap() == "text"
        assert result.value_or_none() == "text"

    def test_failed_result_reraises(self):
        error = InferenceServiceError("summarization failed", task="summarization")
        result = InferenceResult(error=error)

        assert not result.ok
        assert result.value_or_none() is None
        with pytest.raises(InferenceServiceError):
            result.unwrap()


class TestEnrichmentService:

    @pytest.mark.asyncio
    async def test_summarize_uses_description(self, enrichment_service, mock_inference, record_id):
        result = await enrichment_service.summarize(record_id)

        assert result.ok
        assert result.value == "A short summary."
        mock_inference.summarize.assert_awaited_once_with(
            "Quarterly revenue grew by ten percent.",
            max_length=settings.summary_max_length,
        )

    @pytest.mark.asyncio
    async def test_absent_record_raises_not_found(self, enrichment_service, mock_inference):
        with pytest.raises(NotFoundError):
            await enrichment_service.summarize("missing")
        mock_inference.summarize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inference_failure_is_captured(self, enrichment_service, mock_inference, record_id):
        mock_inference.classify.side_effect = InferenceServiceError(
            "text-classification failed: model loading", task="text-classification"
        )

        result = await enrichment_service.classify(record_id)

        assert not result.ok
        assert isinstance(result.error, InferenceServiceError)

    @pytest.mark.asyncio
    async def test_open_circuit_is_captured(self, enrichment_service, mock_inference, record_id):
        mock_inference.text_to_image.side_effect = CircuitBreakerOpenError(recovery_time=30)

        result = await enrichment_service.text_to_image(record_id)

        assert isinstance(result.error, CircuitBreakerOpenError)

    @pytest.mark.asyncio
    async def test_text_to_speech_writes_fresh_files(self, enrichment_service, record_id):
        first = await enrichment_service.text_to_speech(record_id)
        second = await enrichment_service.text_to_speech(record_id)

        assert first.ok and second.ok
        assert first.value != second.value
        assert Path(first.value).read_bytes().startswith(b"ID3")
        assert Path(first.value).suffix == ".mp3"

    @pytest.mark.asyncio
    async def test_text_to_speech_failure_writes_nothing(
        self, enrichment_service, mock_inference, record_id
    ):
        mock_inference.text_to_speech.side_effect = InferenceServiceError(
            "text-to-speech failed", task="text-to-speech"
        )

        result = await enrichment_service.text_to_speech(record_id)

        assert not result.ok
        assert list(enrichment_service.audio_store.audio_root.iterdir()) == []

    @pytest.mark.asyncio
    async def test_classify_returns_labels(self, enrichment_service, record_id):
        result = await enrichment_service.classify(record_id)
        assert [c.label for c in result.value] == ["Technology", "Finance"]
