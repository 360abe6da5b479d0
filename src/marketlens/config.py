"""Application configuration via pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Core
    env: Literal["development", "staging", "production"] = Field(
        default="development", alias="MARKETLENS_ENV"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="MARKETLENS_LOG_LEVEL"
    )

    # Cache
    cache_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Where cached upstream responses live for the process lifetime",
    )
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_prefix: str = Field(default="marketlens")

    # Market data (Yahoo Finance)
    yahoo_base_url: str = Field(default="https://query1.finance.yahoo.com")

    # Filing registry (SEC EDGAR)
    sec_base_url: str = Field(default="https://data.sec.gov")
    sec_www_url: str = Field(default="https://www.sec.gov")
    sec_edgar_user_agent: str = Field(
        default="marketlens research client admin@example.com",
        description="SEC requires a descriptive User-Agent with contact details",
    )

    @field_validator("sec_edgar_user_agent")
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("SEC EDGAR user agent cannot be blank")
        return v

    # Outbound HTTP resilience
    http_timeout: float = Field(default=30.0)
    http_retry_attempts: int = Field(
        default=3,
        ge=0,
        description="Retries after the first attempt for transient failures",
    )
    http_backoff_base: float = Field(
        default=2.0,
        description="Backoff before retry N is base ** N seconds",
    )
    circuit_failure_threshold: int = Field(default=5, ge=1)
    circuit_reset_seconds: float = Field(default=30.0)

    # Cache TTLs (seconds)
    cache_ttl_quote: int = Field(default=900)  # 15 minutes
    cache_ttl_company_profile: int = Field(default=43200)  # 12 hours
    cache_ttl_historical_prices: int = Field(default=86400)
    cache_ttl_financial_summary: int = Field(default=86400)
    cache_ttl_analyst_recommendations: int = Field(default=86400)
    cache_ttl_registry_id: int = Field(default=604800)  # 7 days
    cache_ttl_filings: int = Field(default=21600)  # 6 hours
    cache_ttl_filing_details: int = Field(default=604800)
    cache_ttl_filing_content: int = Field(default=2592000)  # 30 days
    cache_ttl_financial_metrics: int = Field(default=86400)

    @property
    def is_production(self) -> bool:
        return self.env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
