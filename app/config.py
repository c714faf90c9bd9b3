from __future__ import annotations

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    api_key: str = Field("test-api-key", alias="API_KEY")
    admin_api_key: str = Field("test-admin-key", alias="ADMIN_API_KEY")
    api_version: str = "v1"

    trusted_proxies: list[str] = Field(
        default_factory=lambda: ["127.0.0.1", "testclient"]
    )
    rate_limit_ip_per_min: int = Field(30, alias="RATE_LIMIT_IP_PER_MIN")
    rate_limit_user_per_min: int = Field(120, alias="RATE_LIMIT_USER_PER_MIN")

    database_url: str = Field("sqlite:////tmp/promo_test.db", alias="DATABASE_URL")
    db_create_all: bool = Field(False, alias="DB_CREATE_ALL")
    db_pool_size: int = Field(20, alias="DB_POOL_SIZE")

    redis_url: str = Field("redis://localhost:6379", alias="REDIS_URL")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = ConfigDict(
        extra="ignore",
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
    )
