"""webhook-wave configuration."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Environment-driven settings, loaded once at startup."""

    # Shared HMAC secret configured on the provider dashboard
    flutterwave_secret_hash: str = ""

    # Transaction store
    store_backend: Literal["supabase", "postgres", "memory"] = "supabase"
    supabase_url: str = ""
    supabase_anon_key: str = ""
    database_url: str = ""
    transactions_table: str = "transactions"
    store_timeout_seconds: float = 10.0

    # Rate limiting (fixed global window)
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: float = 60.0

    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
