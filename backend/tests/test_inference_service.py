"""
VectorDB CRUD — Inference Service Unit Tests (Mocked)
======================================================

What:  Tests for InferenceService with a mocked AsyncInferenceClient.
How:   The client is a MagicMock whose task methods are AsyncMocks; retry
       waits are zero so retry tests run instantly.

What we test:
    ✅ Circuit breaker state machine
    ✅ Transient failure is retried, exhausted retries raise InferenceServiceError
    ✅ Open circuit rejects calls without touching the client
    ✅ Embedding output is mean-pooled to 384 floats
    ✅ Image output is encoded as PNG, labels sorted by score
    ❌ Real API calls
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from vectordb_crud.exceptions import CircuitBreakerOpenError, InferenceServiceError
from vectordb_crud.services.inference_service import CircuitBreaker, InferenceService


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestCircuitBreaker:
    """Tests for the CircuitBreaker resilience pattern."""

    def test_initial_state_is_closed(self, clock):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60, clock=clock)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self, clock):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60, clock=clock)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == "closed"
        assert cb.can_execute()

    def test_opens_at_threshold(self, clock):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60, clock=clock)
        for _ in range(3):
            cb.record_failure()
        assert cb.state == "open"

    def test_open_circuit_rejects_with_remaining_time(self, clock):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60, clock=clock)
        cb.record_failure()
        clock.now += 20.5

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert exc_info.value.recovery_time == 40

    def test_success_resets_failure_count(self, clock):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60, clock=clock)
        cb.record_failure()
        cb.record_failure()
        assert cb.failure_count == 2

        cb.record_success()
        assert cb.failure_count == 0
        assert cb.state == "closed"

    def test_reading_state_has_no_side_effects(self, clock):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60, clock=clock)
        cb.record_failure()
        clock.now += 60

        assert cb.state == "half_open"
        assert cb.state == "half_open"
        assert cb.can_execute()

    def test_half_open_admits_a_single_trial(self, clock):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60, clock=clock)
        cb.record_failure()
        clock.now += 61

        assert cb.can_execute()
        with pytest.raises(CircuitBreakerOpenError):
            cb.can_execute()

    def test_trial_success_closes(self, clock):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60, clock=clock)
        cb.record_failure()
        clock.now += 61
        cb.can_execute()

        cb.record_success()
        assert cb.state == "closed"
        assert cb.can_execute()

    def test_trial_failure_reopens_with_fresh_timer(self, clock):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60, clock=clock)
        cb.record_failure()
        clock.now += 61
        cb.can_execute()

        cb.record_failure()
        assert cb.state == "open"
        clock.now += 59
        assert cb.state == "open"
        clock.now += 1
        assert cb.state == "half_open"

    def test_abandoned_trial_is_replaced(self, clock):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60, clock=clock)
        cb.record_failure()
        clock.now += 61
        cb.can_execute()

        clock.now += 60
        assert cb.can_execute()


@pytest.fixture
def hf_client():
    client = MagicMock()
    client.feature_extraction = AsyncMock()
    client.summarization = AsyncMock()
    client.text_to_speech = AsyncMock()
    client.text_to_image = AsyncMock()
    client.text_classification = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def service(hf_client):
    return InferenceService(
        client=hf_client, retry_attempts=3, retry_min_wait=0, retry_max_wait=0
    )


class TestInferenceService:

    @pytest.mark.asyncio
    async def test_embed_mean_pools_token_features(self, service, hf_client):
        hf_client.feature_extraction.return_value = [[1.0] * 384, [3.0] * 384]

        vector = await service.embed("hello")

        assert len(vector) == 384
        assert vector[0] == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_embed_accepts_sentence_vector(self, service, hf_client):
        hf_client.feature_extraction.return_value = [0.5] * 384
        assert await service.embed("hello") == [0.5] * 384

    @pytest.mark.asyncio
    async def test_embed_rejects_wrong_dimension(self, service, hf_client):
        hf_client.feature_extraction.return_value = [0.1] * 768
        with pytest.raises(InferenceServiceError):
            await service.embed("hello")

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, service, hf_client):
        hf_client.summarization.side_effect = [
            RuntimeError("503 model loading"),
            SimpleNamespace(summary_text="Short."),
        ]

        assert await service.summarize("long text", max_length=40) == "Short."
        assert hf_client.summarization.await_count == 2
        assert hf_client.summarization.await_args.kwargs["generate_parameters"] == {"max_length": 40}

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise(self, service, hf_client):
        hf_client.summarization.side_effect = RuntimeError("upstream down")

        with pytest.raises(InferenceServiceError) as exc_info:
            await service.summarize("text", max_length=40)

        assert "upstream down" in exc_info.value.message
        assert exc_info.value.task == "summarization"
        assert hf_client.summarization.await_count == 3
        assert service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_open_circuit_skips_client(self, service, hf_client):
        service.circuit_breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        service.circuit_breaker.record_failure()

        with pytest.raises(CircuitBreakerOpenError):
            await service.classify("text")
        hf_client.text_classification.assert_not_awaited()
        assert await service.health_check() is False

    @pytest.mark.asyncio
    async def test_text_to_speech_returns_audio_bytes(self, service, hf_client):
        hf_client.text_to_speech.return_value = b"ID3audio"
        assert await service.text_to_speech("hello") == b"ID3audio"

    @pytest.mark.asyncio
    async def test_text_to_speech_rejects_empty_audio(self, service, hf_client):
        hf_client.text_to_speech.return_value = b""
        with pytest.raises(InferenceServiceError):
            await service.text_to_speech("hello")

    @pytest.mark.asyncio
    async def test_text_to_image_encodes_png(self, service, hf_client):
        hf_client.text_to_image.return_value = Image.new("RGB", (4, 4), color="red")

        data = await service.text_to_image("a red square")

        assert data.startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_classify_sorts_by_score(self, service, hf_client):
        hf_client.text_classification.return_value = [
            SimpleNamespace(label="Retail", score=0.2),
            SimpleNamespace(label="Banking", score=0.7),
        ]

        labels = await service.classify("loans and deposits")

        assert [c.label for c in labels] == ["Banking", "Retail"]

    @pytest.mark.asyncio
    async def test_health_check_and_close(self, service, hf_client):
        assert await service.health_check() is True
        await service.close()
        hf_client.close.assert_awaited_once()
