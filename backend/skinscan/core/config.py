"""
SkinScan Configuration
======================

Centralized application settings.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


PACKAGE_DIR = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App info
    app_name: str = "SkinScan Ingredient AI"
    app_version: str = "1.0.0"
    debug: bool = False

    # Generation service (OpenAI-compatible or HyperCLOVA-style endpoint)
    generation_provider: Literal["openai", "clova"] = "openai"
    generation_api_key: str = ""
    generation_api_url: str = ""
    generation_model: str = "gpt-4o-mini"
    generation_temperature: float = 0.2
    generation_top_p: float = 0.8
    generation_repeat_penalty: float = 1.2
    generation_max_tokens_per_ingredient: int = 200
    generation_max_tokens_cap: int = 2500
    generation_timeout_seconds: float = 60.0
    generation_batch_size: int = 5

    # Safety retrieval
    safety_search_provider: Literal["local", "http"] = "local"
    safety_search_url: str = ""
    safety_search_api_key: str = ""
    safety_search_timeout_seconds: float = 10.0
    safety_top_k: int = 1
    safety_min_similarity: float = 0.8
    safety_alert_threshold: float = 0.85
    safety_corpus_path: Path = PACKAGE_DIR / "data" / "safety_substances.json"
    safety_index_mode: Literal["tfidf", "embeddings"] = "tfidf"
    embedding_provider: Literal["openai", "mock"] = "mock"
    embedding_model: str = "text-embedding-3-small"

    # Ingredient cache
    cache_backend: Literal["memory", "upstash"] = "memory"
    upstash_redis_rest_url: str = ""
    upstash_redis_rest_token: str = ""
    cache_key_prefix: str = "ingredient_ai:"

    # Trace logging
    enable_trace_logging: bool = True
    trace_log_path: Path = PACKAGE_DIR.parent / "logs" / "enrichment_traces.jsonl"

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api"

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = False  # Must be False with wildcard origins
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
