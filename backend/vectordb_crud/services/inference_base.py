"""
VectorDB CRUD — Abstract Inference Provider Interface
======================================================

What:  Abstract base class for the hosted-inference collaborator.
How:   Concrete providers inherit from InferenceProvider and implement each task.
Who:   RecordService (embeddings) and EnrichmentService (the four enrichment tasks).

Implementations:
    - InferenceService: Hugging Face Inference API via huggingface_hub
"""

from abc import ABC, abstractmethod
from typing import List

from vectordb_crud.schemas.record import Classification


class InferenceProvider(ABC):
    """
    Contract:
        - Implementations handle their own retry logic and error translation
        - Provider-specific errors surface as InferenceServiceError
        - An open circuit surfaces as CircuitBreakerOpenError
    """

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Compute a sentence embedding.

        Returns:
            List of EMBEDDING_DIMENSION floats.

        Raises:
            InferenceServiceError: model failure or unexpected output shape.
        """
        ...

    @abstractmethod
    async def summarize(self, text: str, max_length: int) -> str:
        """Return an abstractive summary no longer than max_length tokens."""
        ...

    @abstractmethod
    async def text_to_speech(self, text: str) -> bytes:
        """Return encoded audio bytes (MP3/FLAC depending on the model)."""
        ...

    @abstractmethod
    async def text_to_image(self, prompt: str) -> bytes:
        """Return PNG-encoded image bytes."""
        ...

    @abstractmethod
    async def classify(self, text: str) -> List[Classification]:
        """Return labels ordered by descending score."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True when calls are currently allowed through."""
        ...
