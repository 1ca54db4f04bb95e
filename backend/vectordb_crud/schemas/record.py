"""
VectorDB CRUD — Pydantic Request/Response Schemas
==================================================

What:  Pydantic models defining the API contract of the record endpoints.
How:   FastAPI uses these models to parse request bodies, serialize responses,
       and generate the OpenAPI documentation.
Who:   Route handlers (as response models) and services (as return types).

Request bodies keep title/description optional at the schema level so that a
missing field is reported by the record service as a 400 validation error
rather than by FastAPI as a 422.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RecordPayload(BaseModel):
    """Body of POST /create-record and POST /update-record/{id}."""
    title: Optional[str] = Field(default=None, description="Record title")
    description: Optional[str] = Field(default=None, description="Record description")


# ══════════════════════════════════════════════════════════════════════════
# Domain / Response Models
# ══════════════════════════════════════════════════════════════════════════


class RecordSummary(BaseModel):
    """
    What:  Compact record representation for the list endpoint.
    Who:   Items of the GET /get-all-records array.
    """
    id: str = Field(description="Record identifier (uuid4)")
    title: str = Field(description="Record title")
    description: str = Field(description="Record description")


class Record(RecordSummary):
    """
    What:  Full record including its stored embedding.
    Who:   Returned by GET /get-record/{id}.

    The embedding is derived from title + description and is recomputed on
    every create and update; clients never send it.
    """
    embedding: List[float] = Field(
        default_factory=list,
        description="Stored embedding vector (384 floats)",
    )


class SearchMatch(BaseModel):
    """One ranked similarity match."""
    id: str = Field(description="Record identifier")
    score: float = Field(description="Cosine similarity score")
    title: str = Field(default="", description="Record title")
    description: str = Field(default="", description="Record description")


class Classification(BaseModel):
    """One text-classification label with its confidence."""
    label: str = Field(description="Predicted label")
    score: float = Field(description="Model confidence in [0, 1]")


class CreatedRecord(BaseModel):
    """Acknowledgement of a successful upsert."""
    id: str = Field(description="Identifier generated for the new record")
    upserted_count: int = Field(default=1, description="Vectors written by the store")


class CreateRecordResponse(BaseModel):
    message: str = Field(default="Record created successfully")
    response: CreatedRecord


class MessageResponse(BaseModel):
    message: str


class RecordResponse(BaseModel):
    """`record` is null when the id is absent from the namespace."""
    record: Optional[Record] = None


class SearchResponse(BaseModel):
    result: List[SearchMatch] = Field(
        description="Matches ordered by non-increasing score (at most search_top_k)"
    )


class SummaryResponse(BaseModel):
    result: Optional[str] = Field(description="Generated summary")


class ImageResponse(BaseModel):
    """
    Generated image, inlined into JSON.

    `blob` holds the image bytes base64-encoded; `content_type` tells the
    client how to decode them.
    """
    blob: Optional[str] = Field(description="Base64-encoded image bytes")
    content_type: str = Field(default="image/png")


class FeaturesResponse(BaseModel):
    features: Optional[List[Classification]] = Field(description="Classification labels")


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Error body shared by every endpoint.

    Example:
        {"error": "title and description are required", "request_id": "a1b2c3d4"}
    """
    error: str = Field(description="Human-readable error message")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    vector_store: str = Field(description="Pinecone status: connected, disconnected")
    inference: str = Field(description="Inference status: available, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
