"""
VectorDB CRUD — Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions for the different failure scenarios.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return JSON error responses with the matching HTTP status code.
Who:   Raised by services and middleware; caught by global handlers.

Exception Hierarchy:
    VectorCrudError (base)
    ├── ValidationError          → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── VectorStoreError         → 500 Internal Server Error (raw message)
    ├── FileStorageError         → 500 Internal Server Error
    ├── EmbeddingError           → 500 Internal Server Error (raw message)
    ├── InferenceServiceError    → 502 Bad Gateway (enrichment tasks)
    └── CircuitBreakerOpenError  → 503 Service Unavailable (enrichment tasks)
"""

from typing import Any, Dict, Optional


class VectorCrudError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  Error description returned in the `error` field of the response
        context:  Additional debug info (logged, not returned to the client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(VectorCrudError):
    """
    Raised when client input fails validation.

    When:    Missing or blank title/description, malformed JSON body.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(VectorCrudError):
    """
    Raised when a record id is absent from the namespace.

    When:    Updating or enriching a record that does not exist.
    HTTP:    404 Not Found

    GET /get-record/{id} does not raise this; it answers `{"record": null}`.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class VectorStoreError(VectorCrudError):
    """
    Raised when a Pinecone call fails (network, auth, quota, bad request).

    HTTP:    500 Internal Server Error
    The collaborator's own error message is passed through to the client.
    """

    def __init__(
        self,
        message: str = "Vector store operation failed",
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if operation:
            ctx["operation"] = operation
        super().__init__(message=message, context=ctx)
        self.operation = operation


class FileStorageError(VectorCrudError):
    """
    Raised when generated audio cannot be written to the storage volume.

    When:    Disk full, permission denied, directory not writable.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class EmbeddingError(VectorCrudError):
    """
    Raised when a record write or a search cannot obtain its embedding.

    When:    The embedding call failed after retries, or the circuit is open.
    HTTP:    500 Internal Server Error, with the inference error message

    Record and search handlers report every collaborator failure as a 500;
    only the enrichment endpoints use 502 / 503.
    """

    def __init__(
        self,
        message: str = "Embedding failed",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.retry_after = retry_after


class InferenceServiceError(VectorCrudError):
    """
    Raised when a Hugging Face inference call fails after all retries.

    HTTP:    502 Bad Gateway (the upstream model endpoint failed us)

    Attributes:
        task:         Inference task name (embedding, summarization, ...)
        retry_after:  Suggested seconds before the client retries
    """

    def __init__(
        self,
        message: str = "Inference service is temporarily unavailable",
        task: Optional[str] = None,
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if task:
            ctx["task"] = task
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.task = task
        self.retry_after = retry_after


class CircuitBreakerOpenError(VectorCrudError):
    """
    Raised when the inference circuit breaker is OPEN.

    When:    After cb_failure_threshold consecutive inference failures.
    HTTP:    503 Service Unavailable (with Retry-After)

    State machine:
        CLOSED → (N failures) → OPEN → (recovery timeout) → HALF_OPEN
        HALF_OPEN → success → CLOSED
        HALF_OPEN → failure → OPEN
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Inference service is temporarily unavailable due to repeated failures. "
            f"The service will automatically retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class RateLimitExceededError(VectorCrudError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests (with Retry-After)
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
