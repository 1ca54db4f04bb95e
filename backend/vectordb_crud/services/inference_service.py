"""
VectorDB CRUD — Hugging Face Inference Service
===============================================

What:  Concrete InferenceProvider backed by the Hugging Face Inference API.
How:   huggingface_hub.AsyncInferenceClient performs the calls; each call is
       wrapped with a circuit breaker check and tenacity retries.
Who:   Built once in the application lifespan; shared by RecordService
       (embeddings) and EnrichmentService (summary, speech, image, labels).

Resilience Strategy:
    1. Circuit breaker rejects calls instantly after repeated failures
    2. Tenacity retry with exponential backoff + jitter for transient errors
    3. Exhausted retries surface as InferenceServiceError (→ 502)

Models (configurable, see config.py):
    embedding       sentence-transformers/all-MiniLM-L6-v2   (384 dims)
    summarization   facebook/bart-large-cnn
    text-to-speech  espnet/kan-bayashi_ljspeech_vits
    text-to-image   stabilityai/stable-diffusion-3-medium-diffusers
    classification  sampathkethineedi/industry-classification-api
"""

import io
import logging
import math
import time
import uuid
from typing import Any, Awaitable, Callable, List, Optional

import numpy as np
from huggingface_hub import AsyncInferenceClient
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from vectordb_crud.config import EMBEDDING_DIMENSION, settings
from vectordb_crud.exceptions import CircuitBreakerOpenError, InferenceServiceError
from vectordb_crud.schemas.record import Classification
from vectordb_crud.services.inference_base import InferenceProvider

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker guarding the inference API.

    The state is derived, not stored: the breaker is OPEN from the moment it
    trips until `recovery_timeout` seconds have passed, then HALF_OPEN until
    the next recorded outcome. Reading `state` never changes anything.

        CLOSED ──(failure_threshold consecutive failures)──▶ OPEN
        OPEN ──(recovery_timeout elapsed)──▶ HALF_OPEN
        HALF_OPEN ──(trial succeeds)──▶ CLOSED
        HALF_OPEN ──(trial fails)──▶ OPEN (timer restarts)

    HALF_OPEN admits one trial call at a time. A trial that never reports
    back (cancelled request) is abandoned after another recovery_timeout.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.opened_at: Optional[float] = None
        self._clock = clock
        self._trial_started: Optional[float] = None

    @property
    def state(self) -> str:
        if self.opened_at is None:
            return self.CLOSED
        if self._clock() - self.opened_at >= self.recovery_timeout:
            return self.HALF_OPEN
        return self.OPEN

    def retry_in(self) -> int:
        """Whole seconds until the next call may be admitted (at least 1)."""
        reference = self._trial_started if self._trial_started is not None else self.opened_at
        if reference is None:
            return 1
        return max(math.ceil(reference + self.recovery_timeout - self._clock()), 1)

    def can_execute(self) -> bool:
        """
        Admit or reject one call.

        Raises:
            CircuitBreakerOpenError if the circuit is OPEN, or HALF_OPEN with
            a trial call still in flight.
        """
        state = self.state
        if state == self.CLOSED:
            return True

        if state == self.HALF_OPEN:
            now = self._clock()
            trial_abandoned = (
                self._trial_started is not None
                and now - self._trial_started >= self.recovery_timeout
            )
            if self._trial_started is None or trial_abandoned:
                self._trial_started = now
                logger.info("Circuit breaker HALF_OPEN: admitting one trial call")
                return True

        raise CircuitBreakerOpenError(recovery_time=self.retry_in())

    def record_success(self) -> None:
        if self.opened_at is not None:
            logger.info("Circuit breaker CLOSED (service recovered)")
        self.failure_count = 0
        self.opened_at = None
        self._trial_started = None

    def record_failure(self) -> None:
        self.failure_count += 1
        trial_failed = self._trial_started is not None
        self._trial_started = None

        if trial_failed:
            logger.warning("Circuit breaker back to OPEN (trial call failed)")
            self.opened_at = self._clock()
        elif self.opened_at is None and self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPEN after %d consecutive failures", self.failure_count
            )
            self.opened_at = self._clock()


# ══════════════════════════════════════════════════════════════════════════
# Inference Service
# ══════════════════════════════════════════════════════════════════════════

class InferenceService(InferenceProvider):
    """
    Hugging Face Inference API implementation.

    Error Handling Chain:
        API call fails → tenacity retries (retry_max_attempts with backoff)
        → All retries fail → record circuit breaker failure → InferenceServiceError
        → Threshold reached → future calls rejected with CircuitBreakerOpenError
        → Recovery timeout → one test call allowed (HALF_OPEN)
    """

    def __init__(
        self,
        token: Optional[str] = None,
        client: Optional[AsyncInferenceClient] = None,
        retry_attempts: Optional[int] = None,
        retry_min_wait: Optional[int] = None,
        retry_max_wait: Optional[int] = None,
    ):
        self.client = client or AsyncInferenceClient(token=token or settings.hf_token or None)
        self.retry_attempts = retry_attempts or settings.retry_max_attempts
        self.retry_min_wait = settings.retry_min_wait if retry_min_wait is None else retry_min_wait
        self.retry_max_wait = settings.retry_max_wait if retry_max_wait is None else retry_max_wait

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "InferenceService initialized: retries=%d, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            self.retry_attempts,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def _run(
        self,
        task: str,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """
        Execute one inference call under the circuit breaker and retry policy.

        Raises:
            CircuitBreakerOpenError: circuit is open, no call was made
            InferenceServiceError: every attempt failed
        """
        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        start_time = time.time()
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(Exception),
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential_jitter(
                    initial=self.retry_min_wait,
                    max=self.retry_max_wait,
                    jitter=1 if self.retry_max_wait else 0,
                ),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    result = await func(*args, **kwargs)
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] %s failed after %d attempt(s): %s",
                request_id,
                task,
                self.retry_attempts,
                str(e),
            )
            raise InferenceServiceError(
                message=f"{task} failed: {e}" if str(e) else f"{task} failed",
                task=task,
                retry_after=(
                    self.circuit_breaker.retry_in()
                    if self.circuit_breaker.state == CircuitBreaker.OPEN
                    else None
                ),
                context={"request_id": request_id, "error_type": type(e).__name__},
            ) from e

        self.circuit_breaker.record_success()
        logger.info(
            "[%s] %s completed in %.0fms",
            request_id,
            task,
            (time.time() - start_time) * 1000,
        )
        return result

    # ── Tasks ─────────────────────────────────────────────────────────────

    async def embed(self, text: str) -> List[float]:
        output = await self._run(
            "embedding",
            self.client.feature_extraction,
            text,
            model=settings.embedding_model,
        )
        vector = self._pool(np.asarray(output, dtype=float))
        if vector.shape != (EMBEDDING_DIMENSION,):
            raise InferenceServiceError(
                message=(
                    f"Embedding model returned shape {tuple(vector.shape)}, "
                    f"expected ({EMBEDDING_DIMENSION},)"
                ),
                task="embedding",
            )
        return vector.tolist()

    @staticmethod
    def _pool(array: np.ndarray) -> np.ndarray:
        """Reduce token-level feature output to one sentence vector by mean pooling."""
        while array.ndim > 2:
            array = array[0]
        if array.ndim == 2:
            array = array.mean(axis=0)
        return array

    async def summarize(self, text: str, max_length: int) -> str:
        output = await self._run(
            "summarization",
            self.client.summarization,
            text,
            model=settings.summarization_model,
            generate_parameters={"max_length": max_length},
        )
        return output.summary_text

    async def text_to_speech(self, text: str) -> bytes:
        audio = await self._run(
            "text-to-speech",
            self.client.text_to_speech,
            text,
            model=settings.text_to_speech_model,
        )
        if not audio:
            raise InferenceServiceError(
                message="Text-to-speech model returned no audio", task="text-to-speech"
            )
        return audio

    async def text_to_image(self, prompt: str) -> bytes:
        image = await self._run(
            "text-to-image",
            self.client.text_to_image,
            prompt,
            model=settings.text_to_image_model,
        )
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    async def classify(self, text: str) -> List[Classification]:
        output = await self._run(
            "text-classification",
            self.client.text_classification,
            text,
            model=settings.classification_model,
        )
        labels = [Classification(label=item.label, score=float(item.score)) for item in output]
        return sorted(labels, key=lambda c: c.score, reverse=True)

    async def health_check(self) -> bool:
        """Calls are allowed unless the circuit is open; no quota is spent."""
        return self.circuit_breaker.state != CircuitBreaker.OPEN

    async def close(self) -> None:
        await self.client.close()
