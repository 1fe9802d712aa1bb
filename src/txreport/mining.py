"""
Coinbase maturation: mine until a wallet holds a spendable balance.

A block reward only becomes spendable once ``maturity`` further blocks are
mined on top of it, so from an empty wallet the first spendable balance shows
up after ``maturity + 1`` blocks.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from txreport.constants import COINBASE_MATURITY, MINING_LABEL
from txreport.errors import MaturationError
from txreport.models import format_btc
from txreport.rpc import RpcClient


@dataclass(frozen=True)
class MaturationResult:
    address: str
    blocks_mined: int
    balance: int


class MaturationDriver:
    def __init__(
        self,
        wallet_rpc: RpcClient,
        maturity: int = COINBASE_MATURITY,
        label: str = MINING_LABEL,
    ):
        if maturity < 0:
            raise ValueError(f"maturity must be non-negative, got {maturity}")
        self.rpc = wallet_rpc
        self.maturity = maturity
        self.label = label

    def mining_address(self) -> str:
        """First address that ever received funds, else a fresh labeled one."""
        received = self.rpc.list_received_by_address()
        if received:
            return received[0].address
        address = self.rpc.get_new_address(self.label)
        logger.info(f"New mining address: {address}")
        return address

    def mature(self) -> MaturationResult:
        address = self.mining_address()
        blocks_mined = 0

        balance = self.rpc.get_balance()
        if balance == 0:
            logger.info(
                f"Mining blocks to {address} until coinbase matures "
                f"(maturity window {self.maturity})..."
            )
            while balance == 0:
                if blocks_mined > self.maturity:
                    raise MaturationError(
                        f"Balance still zero after {blocks_mined} blocks "
                        f"(maturity window {self.maturity})"
                    )
                self.rpc.generate_to_address(1, address)
                blocks_mined += 1
                balance = self.rpc.get_balance()
                logger.debug(f"After {blocks_mined} blocks: balance = {format_btc(balance)} BTC")
            logger.info(f"Balance became spendable after {blocks_mined} blocks")

        # One more block so the transfer starts from a settled state
        self.rpc.generate_to_address(1, address)
        blocks_mined += 1

        balance = self.rpc.get_balance()
        logger.info(f"Total wallet balance: {format_btc(balance)} BTC")
        return MaturationResult(address=address, blocks_mined=blocks_mined, balance=balance)
