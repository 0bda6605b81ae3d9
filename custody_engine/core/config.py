"""Application configuration using pydantic settings with structured sections."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./custody.db", alias="url")
    echo: bool = False
    busy_timeout: float = 15.0
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class SecuritySettings(BaseModel):
    secret_key: str = Field(default="change-me", min_length=8)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60


class VaultSettings(BaseModel):
    """Application-wide secret protecting custodial private keys at rest."""

    encryption_secret: str = Field(default="test_fallback_encryption_key_32bytes", min_length=8)
    kdf_salt: str = Field(default="custody-engine/vault", min_length=8)
    kdf_iterations: int = Field(default=390_000, ge=1)


class ChainSettings(BaseModel):
    chain_id: int = 1074
    chain_type: str = "iota-evm"
    native_symbol: str = "ETH"
    native_aliases: list[str] = Field(default_factory=lambda: ["ETH", "SMR"])
    rpc_urls: list[str] = Field(
        default_factory=lambda: [
            "https://json-rpc.evm.testnet.shimmer.network",
            "https://evm.wasp.sc.iota.org",
            "https://json-rpc.evm.shimmer.network",
        ]
    )
    probe_timeout: float = 5.0
    request_timeout: float = 10.0
    submit_timeout: float = 30.0
    retry_budget: int = Field(default=2, ge=0)
    retry_backoff: float = 1.0
    receipt_timeout: float = 120.0
    receipt_poll_interval: float = 2.0
    transfer_gas_limit: int = 21_000
    approve_gas_limit: int = 100_000
    swap_gas_limit: int = 300_000


class QuoteSettings(BaseModel):
    base_urls: list[str] = Field(default_factory=lambda: ["https://api.0x.org/swap/v1/quote"])
    api_key: Optional[str] = None
    timeout: float = 30.0
    attempts_per_endpoint: int = Field(default=2, ge=1)
    retry_delay: float = 2.0
    chain_id_hosts: list[str] = Field(default_factory=lambda: ["api.0x.org"])


class FundingSettings(BaseModel):
    gas_reserve: Decimal = Decimal("0.002")
    new_wallet_funding: Decimal = Decimal("0.02")
    fund_new_wallets: bool = False
    master_private_key: Optional[str] = Field(default=None, repr=False)
    master_address: str = "0xc808614261dAa667fB1250192c7c047f76081ef3"
    master_min_balance: Decimal = Decimal("0.01")
    settle_delay: float = 2.0


class OfframpSettings(BaseModel):
    bank_name: str = "IOTA Bank"
    account_number: str = "SIM-0001"
    currency: str = "USD"
    estimated_time: str = "10-15 minutes (simulated)"


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Custody Engine"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    security: SecuritySettings = SecuritySettings()
    vault: VaultSettings = VaultSettings()
    chain: ChainSettings = ChainSettings()
    quotes: QuoteSettings = QuoteSettings()
    funding: FundingSettings = FundingSettings()
    offramp: OfframpSettings = OfframpSettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def secret_key(self) -> str:
        return self.security.secret_key

    @property
    def algorithm(self) -> str:
        return self.security.algorithm

    @property
    def chain_id(self) -> int:
        return self.chain.chain_id


@lru_cache()
def get_settings() -> Settings:
    return Settings()
