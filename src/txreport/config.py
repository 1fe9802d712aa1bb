"""
Configuration management using pydantic-settings.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Literal
from urllib.parse import quote

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from txreport.constants import (
    BTC_DECIMALS,
    COINBASE_MATURITY,
    DEFAULT_OUTPUT_PATH,
    DEFAULT_RPC_TIMEOUT,
    DEFAULT_RPC_URL,
    MINING_LABEL,
    RECEIVING_LABEL,
)


class NetworkType(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"


class NodeEndpoint(BaseModel):
    """RPC endpoint of a node, optionally scoped to one wallet."""

    model_config = {"frozen": True}

    url: str = DEFAULT_RPC_URL
    rpc_user: str = ""
    rpc_password: str = ""

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def for_wallet(self, wallet_name: str) -> NodeEndpoint:
        """Endpoint for wallet-scoped calls: ``<base>/wallet/<name>``."""
        return self.model_copy(update={"url": f"{self.url}/wallet/{quote(wallet_name, safe='')}"})


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, frozen=True
    )

    rpc_url: str = DEFAULT_RPC_URL
    rpc_user: str = "alice"
    rpc_password: str = "password"
    rpc_timeout: float = Field(default=DEFAULT_RPC_TIMEOUT, gt=0)

    network: NetworkType = NetworkType.REGTEST

    miner_wallet: str = Field(default="Miner", min_length=1)
    trader_wallet: str = Field(default="Trader", min_length=1)

    transfer_amount_btc: Decimal = Field(default=Decimal("20"), gt=0)
    coinbase_maturity: int = Field(default=COINBASE_MATURITY, ge=0)

    mining_label: str = MINING_LABEL
    receiving_label: str = RECEIVING_LABEL
    payment_method: Literal["sendtoaddress", "send"] = "sendtoaddress"

    output_path: str = DEFAULT_OUTPUT_PATH

    log_level: str = "INFO"

    @field_validator("transfer_amount_btc")
    @classmethod
    def validate_precision(cls, v: Decimal) -> Decimal:
        if v.as_tuple().exponent < -BTC_DECIMALS:  # type: ignore[operator]
            raise ValueError(f"Amount has more than {BTC_DECIMALS} decimal places: {v}")
        return v

    @property
    def wallet_names(self) -> tuple[str, str]:
        return (self.miner_wallet, self.trader_wallet)

    def endpoint(self) -> NodeEndpoint:
        return NodeEndpoint(
            url=self.rpc_url, rpc_user=self.rpc_user, rpc_password=self.rpc_password
        )


def get_settings(**overrides: object) -> Settings:
    """Load settings from the environment, applying explicit overrides."""
    return Settings(**{k: v for k, v in overrides.items() if v is not None})  # type: ignore[arg-type]
