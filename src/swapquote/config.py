"""Application configuration using pydantic-settings.

Provider endpoints, affiliate identifiers and pipeline tuning constants.
Everything can be overridden from the environment or a .env file.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")

    # ======================
    # Info Server (remote tuning)
    # ======================
    app_id: str = Field(default="", description="Application id sent to the info server")
    info_servers: list[str] = Field(
        default=["https://info1.edge.app"],
        description="Info servers publishing provider tuning, tried in order",
    )
    exchange_info_ttl_ms: int = Field(
        default=60_000, description="How long fetched tuning stays fresh"
    )
    exchange_info_timeout: float = Field(
        default=5.0, description="Timeout for one tuning refresh (seconds)"
    )

    # ======================
    # HTTP
    # ======================
    http_request_timeout: float = Field(
        default=30.0, description="Per-request timeout for a single server (seconds)"
    )
    fetch_timeout: float = Field(
        default=60.0, description="Overall deadline for one waterfall fetch (seconds)"
    )

    # ======================
    # Quotes
    # ======================
    quote_expiration_ms: int = Field(
        default=60_000, description="Validity window of a built swap order"
    )
    convergence_max_attempts: int = Field(
        default=5, description="Quote attempts when solving for an exact output"
    )
    convergence_pad: Decimal = Field(
        default=Decimal("0.001"), description="Extra input scale per solver step (0.1%)"
    )

    # ======================
    # THORChain DEX Aggregator
    # ======================
    thornode_servers: list[str] = Field(
        default=["https://thornode.ninerealms.com"], description="THORNode API servers"
    )
    thorswap_servers: list[str] = Field(
        default=["https://aggregator-prod-aulilvmdlq-uc.a.run.app"],
        description="THORSwap aggregator API servers",
    )
    da_volatility_spread: Decimal = Field(
        default=Decimal("0.03"), description="Slippage allowance for aggregator routes (3%)"
    )
    thorname: str = Field(default="", description="THORName receiving affiliate fees")
    affiliate_fee_basis: str = Field(default="50", description="Affiliate fee in basis points")
    ninerealms_client_id: str = Field(default="", description="Nine Realms x-client-id header")

    # ======================
    # Swapuz
    # ======================
    swapuz_api_key: str = Field(default="", description="Swapuz API key")
    swapuz_servers: list[str] = Field(
        default=["https://api.swapuz.com/api/home/v1"], description="Swapuz API servers"
    )

    # ======================
    # Chain RPC Endpoints (allowance checks)
    # ======================
    eth_rpc_url: str = Field(
        default="https://eth.llamarpc.com", description="Ethereum RPC URL"
    )
    avax_rpc_url: str = Field(
        default="https://api.avax.network/ext/bc/C/rpc", description="Avalanche RPC URL"
    )
    bsc_rpc_url: str = Field(
        default="https://bsc-dataseed.binance.org", description="BSC RPC URL"
    )
    check_allowance: bool = Field(
        default=True, description="Skip approvals when the on-chain allowance suffices"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def get_rpc_url(self, plugin_id: str) -> str:
        """Get RPC URL for a wallet chain plugin id."""
        rpc_map = {
            "ethereum": self.eth_rpc_url,
            "avalanche": self.avax_rpc_url,
            "binancesmartchain": self.bsc_rpc_url,
        }
        return rpc_map.get(plugin_id.lower(), "")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
