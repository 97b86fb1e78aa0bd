"""
Configuration management using Pydantic Settings.
Loads from environment variables and .env file.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # CHROMA CONFIGURATION
    # =========================================================================
    chroma_host: Optional[str] = Field(
        default=None,
        description="Chroma server host; embedded client is used when unset",
    )
    chroma_port: int = Field(default=8000)
    chroma_persist_directory: Optional[str] = Field(default="chroma")
    chroma_collection: str = Field(default="pdf-documents")

    # =========================================================================
    # EMBEDDING CONFIGURATION
    # =========================================================================
    embedding_backend: Literal["local", "ollama"] = Field(default="local")
    embedding_model: str = Field(default="all-MiniLM-L6-v2")
    ollama_embedding_model: str = Field(default="nomic-embed-text")

    # =========================================================================
    # GENERATION CONFIGURATION
    # =========================================================================
    generation_backend: Literal["ollama", "local"] = Field(default="ollama")
    ollama_base_url: str = Field(default="http://localhost:11434")
    ollama_model: str = Field(default="llama3.2:3b")
    local_generation_model: str = Field(default="MBZUAI/LaMini-T5-738M")
    generation_temperature: float = Field(default=0.3)
    generation_top_p: float = Field(default=0.9)
    generation_top_k: int = Field(default=40)
    generation_max_tokens: int = Field(default=512)
    generation_timeout: float = Field(default=300.0, description="Seconds per generation call")
    ollama_ready_attempts: int = Field(default=10, description="Max polls of /api/tags after a pull")
    ollama_ready_timeout: float = Field(default=60.0, description="Seconds to wait for a pulled model")
    ollama_pull_timeout: float = Field(default=1800.0)

    # =========================================================================
    # RETRIEVAL CONFIGURATION
    # =========================================================================
    search_timeout: float = Field(default=30.0, description="Seconds per similarity search")

    # =========================================================================
    # CHUNKING CONFIGURATION
    # =========================================================================
    chunk_size: int = Field(default=800)
    chunk_overlap: int = Field(default=200)

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=3000)
    api_prefix: str = Field(default="/api")
    debug: bool = Field(default=False)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses LRU cache to avoid re-reading .env file on every call.
    """
    return Settings()


# Convenience export
settings = get_settings()
