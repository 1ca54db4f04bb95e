"""
VectorDB CRUD — Application Package Initializer
================================================

What: Marks the `vectordb_crud` directory as a Python package.
Who:  Used by uvicorn (`vectordb_crud.main:app`), pytest, and the service modules.

Architecture Note:
    The service is a thin orchestration layer over two managed collaborators:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Record / Enrichment Services      │  ← Validation, orchestration
    ├─────────────────────────────────────┤
    │       Schemas (API contracts)       │  ← Pydantic models
    ├─────────────────────────────────────┤
    │  VectorStore (Pinecone) │ Inference │  ← External collaborators
    │                         │ (HF Hub)  │
    └─────────────────────────────────────┘

    Collaborator clients are built once in the application lifespan and handed
    to routes through FastAPI dependencies (see dependencies.py).
"""

__version__ = "1.0.0"
