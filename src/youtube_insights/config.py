"""Configuration management for the YouTube insights pipeline."""

from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # YouTube API Configuration
    youtube_api_key: str = ""
    transcript_languages: List[str] = Field(default_factory=lambda: ["en"])
    comments_page_size: int = 100

    # OpenAI Configuration
    openai_api_key: str = ""
    llm_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimension: int = 768

    # Embedding batching
    embedding_batch_size: int = 100
    embedding_pacing_seconds: float = 5.0
    embedding_max_attempts: int = 1

    # Storage
    database_url: str = "sqlite+aiosqlite:///./data/youtube_insights.db"

    # Similarity search
    similarity_top_k: int = 3
    similarity_metric: str = "cosine"

    # Flow execution
    flow_max_visits: int = 100
    parallel_max_visits: int = 5_000_000
    parallel_max_concurrency: Optional[int] = 10

    # Output & logging
    output_dir: str = "./output"
    log_level: str = "INFO"
    log_dir: Optional[str] = "./log"

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @field_validator("similarity_metric")
    @classmethod
    def validate_metric(cls, v: str) -> str:
        """Only metrics the vector index supports."""
        v = v.lower()
        if v not in ("cosine", "euclidean"):
            raise ValueError("similarity_metric must be 'cosine' or 'euclidean'")
        return v

    @field_validator("embedding_batch_size", "embedding_max_attempts")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Batch size and attempt count must be positive."""
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v


# Global settings instance
settings = Settings()
