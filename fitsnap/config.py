"""
Settings read from environment variables (``pydantic-settings``).

Variable names are the upper-cased field names, e.g. ``DATABASE_URL`` or
``STORAGE_BUCKET``. No ``.env`` file is read.
"""
import os
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./fitsnap.db"
DEFAULT_JWT_SECRET = "jwt-secret-change-in-production"


class Environment(str, Enum):
    DEV = "DEV"
    PRODUCTION = "PRODUCTION"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, case_sensitive=False)

    environment: Environment = Environment.DEV
    app_name: str = "FitSnap API"
    app_version: str = "1.0.0"
    # DEBUG 미지정 시 environment로 결정 (DEV → True)
    debug: bool = False
    region: str = Field(default="", description="Region label on metrics")
    instance_ip: str = Field(default="", description="Instance id in logs/metrics; empty = hostname")

    # Database
    database_url: str = DEFAULT_DATABASE_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    # Auth
    jwt_secret_key: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # S3 호환 오브젝트 스토리지. endpoint 비우면 AWS
    storage_bucket: str = "fitsnap-photos"
    storage_endpoint_url: str = ""
    storage_region_name: str = "us-east-1"
    storage_access_key: str = ""
    storage_secret_key: str = ""
    # True: 이미지 요청을 presigned URL로 302, False: API가 직접 스트리밍
    storage_presigned_redirect: bool = False
    storage_presigned_url_expire_seconds: int = 120

    max_upload_size_mb: int = 10

    # slowapi
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 120
    rate_limit_share_per_minute: int = 30

    cors_allow_origins: str = Field(default="*", description="Comma separated")
    log_dir: str = "/var/log/fitsnap"

    # Prometheus
    node_name: str = ""
    prometheus_pushgateway_url: str = ""
    prometheus_push_interval_seconds: int = 30
    business_metrics_interval_seconds: int = Field(default=60, description="0 disables")

    shutdown_wait_seconds: float = 30.0

    @field_validator("database_url", mode="before")
    @classmethod
    def _blank_database_url(cls, v: object) -> object:
        if v is None or not str(v).strip():
            return DEFAULT_DATABASE_URL
        return v

    @field_validator("prometheus_push_interval_seconds", mode="before")
    @classmethod
    def _blank_push_interval(cls, v: object) -> object:
        return 30 if v in (None, "") else v

    @model_validator(mode="after")
    def _debug_follows_environment(self) -> "Settings":
        if "DEBUG" not in os.environ:
            self.debug = self.environment == Environment.DEV
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
