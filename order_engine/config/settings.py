"""Pydantic BaseSettings — protocol constants and credentials from env."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from env / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ─────────────────────────────────────────────
    APP_ENV: Literal["dev", "test", "prod"] = "dev"
    APP_NAME: str = "order-engine"
    LOG_LEVEL: str = "INFO"

    # ── Protocol constants (typed-data domain) ──────────────────
    CHAIN_ID: int = 56
    EXCHANGE_ADDRESS: str = "0x5f45344126d6488025b0b84a3a8189f2487a7246"
    COLLATERAL_ADDRESS: str = "0x55d398326f99059ff775485246999027b3197955"
    EXCHANGE_DOMAIN_NAME: str = "OPINION CTF Exchange"
    EXCHANGE_DOMAIN_VERSION: str = "1"
    SIGNATURE_TYPE: int = Field(default=2, ge=0, le=255)
    FEE_RATE_BPS: int = Field(default=0, ge=0)
    ORDER_EXPIRATION_SECONDS: int = Field(default=0, ge=0)

    # ── Accounts (never commit real values) ─────────────────────
    MAKER_ADDRESS: str = ""
    SIGNER_PRIVATE_KEY: SecretStr = SecretStr("")

    # ── Metadata cache ──────────────────────────────────────────
    METADATA_CACHE_PATH: str = "data/metadata_cache.db"
    METADATA_CACHE_TTL_SECONDS: int = Field(default=24 * 60 * 60, gt=0)

    # ── Network / API ───────────────────────────────────────────
    API_BASE_URL: str = "https://proxy.opinion.trade:8443/openapi"
    API_KEY: SecretStr = SecretStr("")
    HTTP_TIMEOUT_SECONDS: float = 10.0


settings = Settings()
