"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ASHARE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Redis bar cache
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int | None = None  # seconds, None keeps bars forever
    cache_version: str = "v2"  # bump whenever the stored bar layout changes

    # Eastmoney kline API
    eastmoney_base_url: str = "https://push2his.eastmoney.com"
    request_timeout: float = 30.0
    history_begin: str = "20050101"
    history_end: str = "20500101"
    history_limit: int = 100000

    # Upper bound for a single fetch inside a cache sync (None = client timeout only)
    sync_timeout: float | None = 60.0

    # Analysis
    default_secid: str = "1.000001"
    custom_ma_window: int = 148


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
