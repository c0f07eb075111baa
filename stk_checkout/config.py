"""Application settings loaded from environment variables (and an optional .env file)."""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SANDBOX_PASSKEY = "bfb279f9aa9bdbcf158e97dd71a467cd2e0c893059b10f78e6b72ada1ed2c919"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Application
    app_name: str = Field(default="stk-checkout", description="Service name")
    debug: bool = Field(default=False, description="Console log rendering when true")
    log_level: str = Field(default="INFO", description="Root log level")

    # Persistence
    database_url: str = Field(default="sqlite:///./transactions.db")
    store_backend: str = Field(default="sql", description="sql or memory")

    # Daraja gateway
    daraja_base_url: str = Field(default="https://sandbox.safaricom.co.ke")
    daraja_consumer_key: Optional[str] = None
    daraja_consumer_secret: Optional[str] = None
    daraja_business_short_code: str = Field(default="174379")
    daraja_passkey: str = Field(default=SANDBOX_PASSKEY)
    daraja_callback_url: str = Field(default="http://localhost:8000/api/callback")
    daraja_timeout_seconds: float = Field(default=30.0)

    # Push request details
    account_reference_prefix: str = Field(default="TechStore")
    transaction_desc: str = Field(default="Payment for TechStore items")

    # Pending records older than this are settled as failed by the resolver.
    # Unset means pending records never expire.
    pending_expiry_seconds: Optional[int] = Field(default=None, ge=1)

    # Client-side polling defaults
    poll_max_attempts: int = Field(default=30, ge=1)
    poll_interval_seconds: float = Field(default=2.0, ge=0)

    @field_validator("store_backend")
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("sql", "memory"):
            raise ValueError("store_backend must be 'sql' or 'memory'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    return Settings()
