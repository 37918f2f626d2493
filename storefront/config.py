from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Price Source
    price_source: str = Field(
        default="coingecko",
        description="Quote source backing the feed (coingecko or fixed)",
    )
    coingecko_api_key: str = Field(
        default="",
        description="Coingecko API key",
        validation_alias=AliasChoices("coingecko_api_key", "cg_api_key"),
    )
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="Base URL for the Coingecko REST API",
    )

    # Quote Feed
    quote_poll_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between scheduled quote polls",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for a single quote fetch",
    )

    # Wallet / Network Detection
    provider_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound for a wallet provider chain query",
    )
    fallback_chain_id: str = Field(
        default="0x72",
        description="Network shown when the wallet chain cannot be detected",
    )
    wallet_rpc_url: str = Field(
        default="",
        description="Optional JSON-RPC endpoint queried for eth_chainId instead of the browser bridge",
    )

    # Conversion
    default_token_symbol: str = Field(
        default="XRP/USD",
        description="Quoted token selected when a session starts",
    )

    # Purchases
    purchase_store_path: str = Field(
        default="",
        description="JSON file backing the purchase history; in-memory when empty",
    )

    @property
    def has_coingecko_key(self) -> bool:
        return bool(self.coingecko_api_key)

    @property
    def uses_fixed_prices(self) -> bool:
        return self.price_source.lower() in {"fixed", "placeholder", "static"}


# Global settings instance
settings = Settings()
