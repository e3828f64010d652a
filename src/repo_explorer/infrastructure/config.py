"""Application configuration — loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    github_token: SecretStr | None = None
    github_api_url: str = "https://api.github.com"
    request_timeout_seconds: float = 30.0

    max_index_files: int = 150
    index_batch_size: int = 10
    retain_file_content: bool = True
    max_query_results: int = 10
    tree_max_depth: int = 4

    profile_path: Path = Path(".repo_explorer/profile.json")
    issue_cache_path: Path = Path(".repo_explorer/issue_cache.json")
    profile_ttl_days: int = 30
    issue_cache_ttl_minutes: int = 60

    search_cache_ttl_seconds: int = 300
    search_max_retries: int = 3
    search_base_delay_seconds: float = 2.0

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
