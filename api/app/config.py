from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application configuration.

    Loads environment variables from `.env` and provides
    typed access across the API, the worker, and the memory services.
    """

    # ─────────────────────────────────────────────
    # Pydantic Settings Config
    # ─────────────────────────────────────────────
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ─────────────────────────────────────────────
    # Database
    # ─────────────────────────────────────────────
    database_url: str
    database_pool_size: int = 10
    database_max_overflow: int = 20

    # ─────────────────────────────────────────────
    # Completion service (OpenAI or any compatible endpoint)
    # ─────────────────────────────────────────────
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str | None = None
    llm_timeout_seconds: float = 30.0
    llm_max_tokens: int = 1500

    # ─────────────────────────────────────────────
    # API
    # ─────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cron_secret: str | None = None

    # ─────────────────────────────────────────────
    # Memory extraction
    # ─────────────────────────────────────────────
    extraction_dispatch: Literal["inline", "queue"] = "inline"
    extraction_cadence: int = 3
    extraction_history_turns: int = 15
    extraction_temperature: float = 0.3
    regeneration_temperature: float = 0.3

    # ─────────────────────────────────────────────
    # Confidence model
    # ─────────────────────────────────────────────
    memory_confidence_floor: float = 0.3
    memory_decay_rate_per_day: float = 0.005
    memory_decay_grace_days: float = 7.0
    memory_decay_epsilon: float = 0.001
    memory_contradiction_penalty: float = 0.4
    memory_similarity_threshold: float = 0.8
    memory_confirm_boost: float = 0.2
    memory_wrong_penalty: float = 0.3

    # ─────────────────────────────────────────────
    # Maintenance sweep
    # ─────────────────────────────────────────────
    maintenance_user_limit: int = 500
    maintenance_partnership_limit: int = 200

    # ─────────────────────────────────────────────
    # Prompt cache
    # ─────────────────────────────────────────────
    prompt_cache_max_entries: int = 200
    prompt_cache_ttl_seconds: float = 300.0

    # ─────────────────────────────────────────────
    # Worker
    # ─────────────────────────────────────────────
    worker_poll_interval: float = 1.0
    worker_max_retries: int = 3


# ─────────────────────────────────────────────
# Cached Settings Instance
# ─────────────────────────────────────────────
@lru_cache
def get_settings() -> Settings:
    """
    Returns a cached Settings instance so config
    is only loaded once per process.
    """
    return Settings()
