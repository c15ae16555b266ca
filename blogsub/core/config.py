"""Configuration management for the blog subscription service."""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = Field(default="Blog Subscriptions")
    version: str = Field(default="0.1.0")
    docs_url: str | None = Field(default="/docs")
    redoc_url: str | None = Field(default="/redoc")
    openapi_url: str = Field(default="/openapi.json")
    log_level: str = Field(default="INFO")

    database_url: str = Field(default="postgresql+psycopg://blog:blog@db:5432/blog_subscriptions")
    db_pool_timeout_seconds: float = Field(default=10.0)

    enable_metrics: bool = Field(default=True)
    enable_tracing: bool = Field(default=False)
    otel_exporter_endpoint: str | None = Field(default=None)
    audit_log_enabled: bool = Field(default=True)

    jwt_secret_key: str = Field(default="dev-secret-key-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60)
    refresh_token_expire_days: int = Field(default=7)

    bkash_merchant_number: str | None = Field(default=None)
    bkash_qr_code_url: str | None = Field(default=None)
    # Shared secret expected in X-Webhook-Secret; unset leaves the webhook open.
    sms_webhook_secret: str | None = Field(default=None)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]
