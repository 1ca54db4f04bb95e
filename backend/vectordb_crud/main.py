"""
VectorDB CRUD — FastAPI Application Factory
============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (`uvicorn vectordb_crud.main:app`) and the test suite.
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware Chain:                                        │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────┐ ┌──────────┐  │
    │  │    Req ID    │→│ Logging  │→│Rate Lim.│→│GZip, CORS│  │
    │  └──────────────┘ └──────────┘ └─────────┘ └──────────┘  │
    │                                                          │
    │  Routes:                                                 │
    │  ┌────────────────┐ ┌──────────────────┐ ┌────────────┐  │
    │  │ record CRUD /  │ │ summarize, tts,  │ │ GET /health│  │
    │  │ search         │ │ image, classify  │ │            │  │
    │  └────────────────┘ └──────────────────┘ └────────────┘  │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ Validation→400 │ NotFound→404 │ VectorStore→500 │   │  │
    │  │ Embedding→500 │ Inference→502 │ CircuitOpen→503   │  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Validate credentials (logged, not fatal)
    3. Build collaborators: InferenceService, VectorStore
    4. Ensure the vector index exists (idempotent bootstrap)
    5. Publish RecordService and EnrichmentService on app.state

    Shutdown:
    1. Close the inference HTTP session
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from vectordb_crud import __version__
from vectordb_crud.config import settings
from vectordb_crud.exceptions import (
    CircuitBreakerOpenError,
    EmbeddingError,
    FileStorageError,
    InferenceServiceError,
    NotFoundError,
    ValidationError,
    VectorCrudError,
    VectorStoreError,
)
from vectordb_crud.middleware.logging import RequestLoggingMiddleware
from vectordb_crud.middleware.rate_limit import RateLimitMiddleware
from vectordb_crud.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    error_response,
)
from vectordb_crud.routes import enrichment, health, records
from vectordb_crud.services.audio_store import AudioStore
from vectordb_crud.services.enrichment_service import EnrichmentService
from vectordb_crud.services.inference_service import InferenceService
from vectordb_crud.services.record_service import RecordService
from vectordb_crud.services.vector_store import VectorStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s
    The request ID comes from RequestIDLogFilter ("-" outside a request).
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Third-party clients log every HTTP round-trip at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("pinecone").setLevel(logging.WARNING)
    logging.getLogger("huggingface_hub").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

async def bootstrap_services(app: FastAPI) -> None:
    """
    Build the process-wide collaborators and store them on app.state.

    The data services are published only once the index is known to exist.
    A failure here is logged and leaves them unset; data requests then fail
    with a 500 "not initialized" and /health reports unhealthy. The inference
    client is published first so shutdown can still close it.
    """
    inference = InferenceService()
    app.state.inference_service = inference

    vector_store = VectorStore()
    await vector_store.ensure_index()

    record_service = RecordService(vector_store, inference)
    app.state.vector_store = vector_store
    app.state.record_service = record_service
    app.state.enrichment_service = EnrichmentService(record_service, inference, AudioStore())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("VectorDB CRUD service starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    try:
        await bootstrap_services(app)
    except Exception as e:
        logger.error("Collaborator bootstrap failed: %s", str(e), exc_info=True)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("VectorDB CRUD service shutting down...")
    inference = getattr(app.state, "inference_service", None)
    if inference is not None:
        await inference.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Handler hierarchy:
        ValidationError, RequestValidationError → 400
        NotFoundError                           → 404
        VectorStoreError                        → 500 (raw collaborator message)
        FileStorageError                        → 500
        EmbeddingError                          → 500 (raw inference message)
        InferenceServiceError                   → 502 (enrichment, raw message)
        CircuitBreakerOpenError                 → 503 + Retry-After (enrichment)
        VectorCrudError (base)                  → 500
        Exception (fallback)                    → 500 (exception message)
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return error_response(400, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        logger.warning("Malformed request: %s", message)
        return error_response(400, message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return error_response(404, exc.message)

    @app.exception_handler(VectorStoreError)
    async def handle_vector_store_error(request: Request, exc: VectorStoreError):
        logger.error("Vector store error: %s | Context: %s", exc.message, exc.context)
        return error_response(500, exc.message)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("File storage error: %s | Context: %s", exc.message, exc.context)
        return error_response(500, exc.message)

    @app.exception_handler(EmbeddingError)
    async def handle_embedding_error(request: Request, exc: EmbeddingError):
        logger.error("Embedding error: %s | Context: %s", exc.message, exc.context)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return error_response(500, exc.message, headers=headers)

    @app.exception_handler(InferenceServiceError)
    async def handle_inference_error(request: Request, exc: InferenceServiceError):
        logger.error("Inference error: %s | Context: %s", exc.message, exc.context)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return error_response(502, exc.message, headers=headers)

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("Circuit breaker open: %s", exc.message)
        return error_response(503, exc.message, headers={"Retry-After": str(exc.recovery_time)})

    @app.exception_handler(VectorCrudError)
    async def handle_app_error(request: Request, exc: VectorCrudError):
        logger.error("Application error: %s | Context: %s", exc.message, exc.context)
        return error_response(500, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return error_response(500, str(exc) or type(exc).__name__)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="VectorDB CRUD API",
        description=(
            "CRUD, similarity search and AI enrichment (summary, speech, image, "
            "classification) over records stored as embeddings in Pinecone."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition (last added runs first)
    origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Next-Page-Token", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(records.router)
    app.include_router(enrichment.router)
    app.include_router(health.router)

    return app


app = create_app()
