"""Application settings loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration with sensible defaults."""

    form_rules_file: Path = Field(default=Path("config/form.yaml"), alias="FORM_RULES_FILE")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")
    service_version: str = Field(default="0.3.0", alias="SERVICE_VERSION")

    # Admin gate
    require_api_key: bool = Field(default=False, alias="REQUIRE_API_KEY")
    api_key: str | None = Field(default=None, alias="API_KEY")

    # Request limits
    max_request_size_bytes: int = Field(default=4 * 1024 * 1024, alias="MAX_REQUEST_SIZE_BYTES", ge=1)
    max_signature_bytes: int = Field(default=1024 * 1024, alias="MAX_SIGNATURE_BYTES", ge=1)
    max_lookup_results: int = Field(default=50, alias="MAX_LOOKUP_RESULTS", ge=1, le=1000)

    # Key-value store
    kv_backend: Literal["memory", "cloudflare"] = Field(default="memory", alias="KV_BACKEND")
    cf_account_id: str | None = Field(default=None, alias="CF_ACCOUNT_ID")
    cf_namespace_id: str | None = Field(default=None, alias="CF_NAMESPACE_ID")
    cf_api_token: SecretStr | None = Field(default=None, alias="CF_API_TOKEN")
    cf_api_base_url: str = Field(
        default="https://api.cloudflare.com/client/v4", alias="CF_API_BASE_URL"
    )

    # Blob store
    blob_backend: Literal["memory", "r2"] = Field(default="memory", alias="BLOB_BACKEND")
    r2_endpoint: str | None = Field(default=None, alias="R2_ENDPOINT")
    r2_access_key: str | None = Field(default=None, alias="R2_ACCESS_KEY")
    r2_secret_key: SecretStr | None = Field(default=None, alias="R2_SECRET_KEY")
    r2_bucket: str | None = Field(default=None, alias="R2_BUCKET")

    # Store retries
    store_retry_count: int = Field(default=3, alias="STORE_RETRY_COUNT", ge=1, le=10)
    store_retry_delay: float = Field(default=0.5, alias="STORE_RETRY_DELAY", ge=0.0)
    store_timeout: float = Field(default=10.0, alias="STORE_TIMEOUT", ge=1.0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def form_rules_path(self) -> Path:
        return self.form_rules_file

    def validate_backends(self) -> list[str]:
        """Return configuration problems for the selected store backends."""
        errors = []

        if self.kv_backend == "cloudflare":
            if not self.cf_account_id:
                errors.append("CF_ACCOUNT_ID is required for the cloudflare KV backend")
            if not self.cf_namespace_id:
                errors.append("CF_NAMESPACE_ID is required for the cloudflare KV backend")
            if not self.cf_api_token:
                errors.append("CF_API_TOKEN is required for the cloudflare KV backend")

        if self.blob_backend == "r2":
            if not self.r2_endpoint:
                errors.append("R2_ENDPOINT is required for the r2 blob backend")
            if not self.r2_bucket:
                errors.append("R2_BUCKET is required for the r2 blob backend")
            if not (self.r2_access_key and self.r2_secret_key):
                errors.append("R2_ACCESS_KEY and R2_SECRET_KEY are required for the r2 blob backend")

        return errors


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
