"""Configuration management for the CareGrowth document assistant."""

from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _sanitize_secret(value: str) -> str:
    """Remove BOM characters and whitespace from secrets.

    Secrets copied from dashboards or mounted from secret managers may carry
    a BOM or a trailing newline, which breaks HTTP authorization headers.
    """
    if not value:
        return value
    return value.lstrip("\ufeff").strip()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider credentials
    openai_api_key: str = ""
    google_api_key: str = ""
    google_drive_access_token: str = ""

    # Qdrant settings (only used when chunk_store_backend == "qdrant")
    qdrant_url: str = ""
    qdrant_api_key: str = ""
    qdrant_collection: str = "document_chunks"

    @field_validator(
        "openai_api_key",
        "google_api_key",
        "google_drive_access_token",
        "qdrant_api_key",
        "qdrant_url",
        mode="after",
    )
    @classmethod
    def sanitize_secrets(cls, value: str) -> str:
        """Remove BOM and whitespace from secret values."""
        return _sanitize_secret(value)

    # Model settings
    llm_provider: Literal["openai", "gemini"] = "openai"
    llm_model: str = "gpt-4o"
    categorization_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 1500
    embedding_provider: Literal["openai", "gemini"] = "openai"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 512

    # Storage
    data_dir: Path = Path("./data")
    chunk_store_backend: Literal["sqlite", "qdrant"] = "sqlite"

    # Ingestion
    chunk_size: int = 1000
    chunk_overlap: int = 200
    min_content_length: int = 50

    # Chunk scoring
    vector_threshold_floor: float = 0.1
    vector_threshold_ratio: float = 0.4
    vector_min_keep: int = 3
    vector_max_results: int = 5
    min_vector_results: int = 5
    keyword_max_tokens: int = 10
    keyword_min_score: float = 0.2
    keyword_max_results: int = 5
    max_results: int = 8
    fallback_max_results: int = 3
    fallback_confidence: float = 0.05

    # Answer synthesis
    context_char_budget: int = 4000
    chars_per_page: int = 2800
    excerpt_chars: int = 250
    history_messages: int = 6
    max_query_length: int = 1000

    # Network
    request_timeout: float = 30.0
    llm_timeout: float = 60.0
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    llm_requests_per_minute: int = 60

    # HTTP API
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_file: Path | None = None

    @property
    def sqlite_path(self) -> Path:
        """SQLite database holding documents, chunks and the QA log."""
        return self.data_dir / "caregrowth.db"

    def ensure_directories(self) -> None:
        """Create all required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
