"""Application configuration loaded from environment variables."""

from __future__ import annotations

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings


class PricingConfig(BaseSettings):
    """Exchange rate between the human currency and the ledger's native unit."""

    model_config = {"env_prefix": "LANDREGISTRY_PRICING_"}

    human_per_native: Decimal = Decimal("4000")
    native_decimals: int = 18
    human_currency: str = "RM"


class GatewayConfig(BaseSettings):
    """Content gateways used to resolve metadata, in priority order."""

    model_config = {"env_prefix": "LANDREGISTRY_GATEWAY_"}

    urls: list[str] = Field(
        default_factory=lambda: ["https://gateway.lighthouse.storage/ipfs"]
    )
    timeout_seconds: float = 10.0


class LedgerConfig(BaseSettings):
    """Ledger call bounds."""

    model_config = {"env_prefix": "LANDREGISTRY_LEDGER_"}

    timeout_seconds: float = 30.0
    confirmation_timeout_seconds: float = 120.0


class ContentStoreConfig(BaseSettings):
    """Content store call bounds."""

    model_config = {"env_prefix": "LANDREGISTRY_CONTENT_"}

    timeout_seconds: float = 30.0


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "LANDREGISTRY_"}

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    pricing: PricingConfig = Field(default_factory=PricingConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    content_store: ContentStoreConfig = Field(default_factory=ContentStoreConfig)
