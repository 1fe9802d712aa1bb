"""
Data models.

Node results are validated with Pydantic; domain values are plain dataclasses.
All amounts handled by the domain are integer satoshis.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from txreport.constants import BTC_DECIMALS, SATS_PER_BTC
from txreport.errors import DataShapeError


def btc_to_sats(amount: Decimal | int | str) -> int:
    """Convert a BTC amount to satoshis without floating point."""
    value = Decimal(amount) * SATS_PER_BTC
    if value != value.to_integral_value():
        raise DataShapeError(f"Amount has more than {BTC_DECIMALS} decimal places: {amount}")
    return int(value)


def sats_to_btc(sats: int) -> Decimal:
    return Decimal(sats) / SATS_PER_BTC


def format_btc(sats: int) -> str:
    """Render satoshis as BTC with exactly 8 decimals, e.g. ``20.00000000``."""
    return f"{sats_to_btc(sats):.{BTC_DECIMALS}f}"


# ---------------------------------------------------------------------------
# Node result schemas (Bitcoin Core RPC)
# ---------------------------------------------------------------------------


class BlockchainInfo(BaseModel):
    chain: str
    blocks: int
    bestblockhash: str


class ReceivedByAddress(BaseModel):
    address: str
    amount: Decimal
    confirmations: int = 0
    label: str = ""


class MempoolFees(BaseModel):
    base: Decimal


class MempoolEntry(BaseModel):
    vsize: int | None = None
    fees: MempoolFees | None = None


class ScriptPubKey(BaseModel):
    hex: str
    type: str | None = None
    address: str | None = None


class RawTxInput(BaseModel):
    txid: str | None = None
    vout: int | None = None
    coinbase: str | None = None


class RawTxOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    value: Decimal
    n: int
    script_pubkey: ScriptPubKey = Field(alias="scriptPubKey")


class RawTransaction(BaseModel):
    txid: str
    vin: list[RawTxInput]
    vout: list[RawTxOutput]


class WalletTransaction(BaseModel):
    """Wallet view of a transaction (``gettransaction``)."""

    txid: str
    amount: Decimal
    fee: Decimal | None = None
    confirmations: int = 0
    blockhash: str | None = None
    blockheight: int | None = None


class SendResult(BaseModel):
    """Result of the ``send`` RPC, which has no dedicated wrapper."""

    complete: bool
    txid: str | None = None


# ---------------------------------------------------------------------------
# Domain values
# ---------------------------------------------------------------------------


class WalletStatus(str, Enum):
    ALREADY_LOADED = "already_loaded"
    LOADED = "loaded"
    CREATED = "created"
    FAILED = "failed"


@dataclass(frozen=True)
class WalletHandle:
    name: str
    loaded: bool
    status: WalletStatus


@dataclass(frozen=True)
class UnspentOutput:
    """A previous output referenced by a transaction input."""

    txid: str
    vout: int
    value: int
    script_hex: str


@dataclass(frozen=True)
class SettlementRecord:
    """Economic detail of a confirmed transfer. Amounts in satoshis."""

    txid: str
    sender_address: str
    sender_amount: int
    receiver_address: str
    receiver_amount: int
    change_address: str | None
    change_amount: int
    fee: int
    block_height: int
    block_hash: str

    def is_balanced(self) -> bool:
        """Check receiver + change + fee == sender input."""
        return self.receiver_amount + self.change_amount + self.fee == self.sender_amount
