"""
VectorDB CRUD — Application Configuration
==========================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated in the app lifespan.

The vector index layout (name, namespace, dimension, metric, serverless
placement) is fixed: records written by one deployment must stay readable by
every other, so these are module constants rather than settings.
"""

from typing import List

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

# ── Vector Index Layout ───────────────────────────────────────────────────
INDEX_NAME = "vectordb-crud"
NAMESPACE = "vDB"
EMBEDDING_DIMENSION = 384
INDEX_METRIC = "cosine"
INDEX_CLOUD = "aws"
INDEX_REGION = "us-east-1"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development except the two
    credentials, which must be provided for the service to reach its
    collaborators.
    """

    # ── Pinecone ──────────────────────────────────────────────────────────
    # Accepts PINECONE_API (historical name) or PINECONE_API_KEY
    pinecone_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("pinecone_api", "pinecone_api_key"),
        description="Pinecone API key for the vector index",
    )

    # ── Hugging Face Inference ────────────────────────────────────────────
    hf_token: str = Field(default="", description="Hugging Face inference API token")

    embedding_model: str = Field(default="sentence-transformers/all-MiniLM-L6-v2")
    summarization_model: str = Field(default="facebook/bart-large-cnn")
    text_to_speech_model: str = Field(default="espnet/kan-bayashi_ljspeech_vits")
    text_to_image_model: str = Field(
        default="stabilityai/stable-diffusion-3-medium-diffusers"
    )
    classification_model: str = Field(
        default="sampathkethineedi/industry-classification-api"
    )

    # Max summary length in tokens, passed through to the summarization model
    summary_max_length: int = Field(default=40, ge=5, le=512)

    # ── Record Queries ────────────────────────────────────────────────────
    search_top_k: int = Field(default=10, ge=1, le=10)
    list_page_size: int = Field(default=10, ge=1, le=100)

    # When True, enrichment endpoints answer 200 with a null result on
    # inference failure instead of 502.
    enrichment_null_on_failure: bool = Field(default=False)

    # ── File Storage ──────────────────────────────────────────────────────
    # Root directory for generated audio, relative to backend CWD
    storage_root: str = Field(default="./storage")

    # Speech files are temporary: deleted once streamed unless this is True
    keep_generated_audio: bool = Field(default=False)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Comma-separated origins; "*" allows any origin
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=3000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Retry Configuration ───────────────────────────────────────────────
    # Tenacity retry settings for inference API calls
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: int = Field(default=2, ge=1, le=30)
    retry_max_wait: int = Field(default=10, ge=5, le=120)

    # ── Circuit Breaker ───────────────────────────────────────────────────
    # After N consecutive inference failures, stop calling for M seconds
    cb_failure_threshold: int = Field(default=5, ge=2, le=20)
    cb_recovery_timeout: int = Field(default=60, ge=10, le=300)

    # ── Rate Limiting ─────────────────────────────────────────────────────
    rate_limit_requests: int = Field(default=100, ge=10, le=10000)
    rate_limit_window: int = Field(default=3600, ge=60, le=86400)  # seconds

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "populate_by_name": True,
        "extra": "ignore",
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that both collaborator credentials are configured.
        When:  Called during app startup (lifespan).
        How:   Collects every missing credential and raises one ValueError.
        """
        errors = []
        if not self.pinecone_api_key:
            errors.append(
                "PINECONE_API is not set. "
                "Create a key at https://app.pinecone.io/"
            )
        if not self.hf_token:
            errors.append(
                "HF_TOKEN is not set. "
                "Create a token at https://huggingface.co/settings/tokens"
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance, imported throughout the application
settings = Settings()
