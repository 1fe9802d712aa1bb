"""
Transfer between wallets, confirmed by one block.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from loguru import logger

from txreport.constants import RECEIVING_LABEL
from txreport.errors import ContractError, RpcError
from txreport.models import format_btc
from txreport.rpc import RpcClient


@dataclass(frozen=True)
class TransferResult:
    txid: str
    receiver_address: str
    amount: int
    block_hash: str


class TransferExecutor:
    """
    Sends a fixed amount from the sender wallet to a fresh receiver address.

    Fee and change are left to the sender wallet.
    """

    def __init__(
        self,
        sender_rpc: RpcClient,
        receiver_rpc: RpcClient,
        amount: int,
        label: str = RECEIVING_LABEL,
        payment_method: Literal["sendtoaddress", "send"] = "sendtoaddress",
    ):
        if amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {amount}")
        self.sender_rpc = sender_rpc
        self.receiver_rpc = receiver_rpc
        self.amount = amount
        self.label = label
        self.payment_method = payment_method

    def execute(self, sender_address: str) -> TransferResult:
        """
        Pay, check the mempool, and mine one confirming block to sender_address.
        """
        receiver_address = self.receiver_rpc.get_new_address(self.label)
        logger.info(f"Receiver address: {receiver_address}")

        logger.info(f"Sending {format_btc(self.amount)} BTC to {receiver_address}...")
        txid = self._pay(receiver_address)
        logger.info(f"Transaction sent: {txid}")

        try:
            entry = self.sender_rpc.get_mempool_entry(txid)
        except RpcError as e:
            raise ContractError(f"Sent transaction {txid} is not in the mempool: {e}") from e
        if entry.fees is not None:
            logger.debug(f"Mempool entry fee: {entry.fees.base} BTC, vsize {entry.vsize}")

        block_hashes = self.sender_rpc.generate_to_address(1, sender_address)
        if len(block_hashes) != 1:
            raise ContractError(f"Expected one confirming block, got {block_hashes}")
        logger.info(f"Transaction confirmed in block: {block_hashes[0]}")

        return TransferResult(
            txid=txid,
            receiver_address=receiver_address,
            amount=self.amount,
            block_hash=block_hashes[0],
        )

    def _pay(self, address: str) -> str:
        if self.payment_method == "send":
            result = self.sender_rpc.send({address: self.amount})
            return result.txid  # type: ignore[return-value]
        return self.sender_rpc.send_to_address(address, self.amount)
