# Services package init
"""
VectorDB CRUD — Services Layer
===============================

What:  Business logic between routes (HTTP) and the external collaborators.

Service Inventory:
    - VectorStore: Pinecone index/namespace wrapper, index bootstrap
    - InferenceProvider (abstract): interface for the hosted-inference collaborator
    - InferenceService: Hugging Face implementation with retries and circuit breaker
    - RecordService: record CRUD, listing and similarity search
    - EnrichmentService: summary, speech, image and classification over a record
    - AudioStore: per-request storage of synthesized audio
"""
